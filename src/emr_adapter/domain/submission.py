"""Wire schema for note submissions and its mapping to the domain model.

The summarization service sends Title Case keys inside ``notes_json``
("Clinical Note", "Dose Unit", ...). Each key is declared here as an alias
on a fixed schema and copied to its domain field explicitly.
"""

from __future__ import annotations

from typing import Any, Union

import pydantic
from pydantic import BaseModel, ConfigDict, Field

from ..errors import ValidationError
from ..sync.markdown import json_to_markdown
from .models import Certainty, Diagnosis, MedicationOrder, NoteSubmission, Rank


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class SubmittedDiagnosis(_WireModel):
    diagnosis: str = Field(..., alias="Diagnosis")
    certainty: Certainty = Field(..., alias="Certainty")
    rank: Rank = Field(..., alias="Rank")

    def to_domain(self) -> Diagnosis:
        return Diagnosis(
            diagnosis=self.diagnosis,
            certainty=self.certainty,
            rank=self.rank,
        )


class SubmittedMedicationOrder(_WireModel):
    name: str = Field(..., alias="Name")
    strength: str = Field("", alias="Strength")
    dose: float = Field(..., alias="Dose")
    dose_unit: str = Field(..., alias="Dose Unit")
    route: str = Field(..., alias="Route")
    frequency: str = Field(..., alias="Frequency")
    patient_instructions: str = Field("", alias="Patient Instructions")
    prn: bool = Field(False, alias="Prn")
    prn_reason: str = Field("", alias="Prn Reason")
    duration: int = Field(..., alias="Duration")
    duration_unit: str = Field(..., alias="Duration Unit")
    dispense_quantity: float = Field(..., alias="Dispense Quantity")
    dispense_unit: str = Field(..., alias="Dispense Unit")
    refills: int = Field(0, alias="Refills")
    indication: str = Field("", alias="Indication")

    def to_domain(self) -> MedicationOrder:
        return MedicationOrder(
            name=self.name,
            strength=self.strength,
            dose=self.dose,
            dose_unit=self.dose_unit,
            route=self.route,
            frequency=self.frequency,
            patient_instructions=self.patient_instructions,
            prn=self.prn,
            prn_reason=self.prn_reason,
            duration=self.duration,
            duration_unit=self.duration_unit,
            dispense_quantity=self.dispense_quantity,
            dispense_unit=self.dispense_unit,
            refills=self.refills,
            indication=self.indication,
        )


class SubmittedNotes(_WireModel):
    clinical_note: Union[str, dict[str, Any], list[Any]] = Field("", alias="Clinical Note")
    diagnoses: list[SubmittedDiagnosis] = Field(default_factory=list, alias="Diagnoses")
    medications: list[SubmittedMedicationOrder] = Field(default_factory=list, alias="Medications")

    def rendered_note(self) -> str:
        if isinstance(self.clinical_note, str):
            return self.clinical_note
        return json_to_markdown(self.clinical_note)


class PostNoteForm(_WireModel):
    patient_id: str | None = None
    encounter_id: str | None = None
    note_title: str = ""
    notes_json: SubmittedNotes | None = None

    def to_domain(self) -> NoteSubmission:
        if self.notes_json is None:
            raise ValidationError("Expecting notes in structured JSON format.")
        return NoteSubmission(
            patient_id=self.patient_id or None,
            visit_id=self.encounter_id or None,
            note_title=self.note_title,
            clinical_note=self.notes_json.rendered_note(),
            diagnoses=[d.to_domain() for d in self.notes_json.diagnoses],
            medications=[m.to_domain() for m in self.notes_json.medications],
        )


def parse_submission(payload: dict | PostNoteForm) -> NoteSubmission:
    """Validate a raw ``PostNoteForm`` body and map it to a ``NoteSubmission``.

    Raises:
        ValidationError: when the body does not match the wire schema.
    """
    if isinstance(payload, PostNoteForm):
        return payload.to_domain()
    try:
        form = PostNoteForm.model_validate(payload)
    except pydantic.ValidationError as exc:
        raise ValidationError(f"Invalid note submission: {exc}") from exc
    return form.to_domain()

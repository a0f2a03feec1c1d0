"""Pydantic models for the integration-side clinical domain."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class Certainty(str, Enum):
    CONFIRMED = "Confirmed"
    PROVISIONAL = "Provisional"


class Rank(str, Enum):
    PRIMARY = "Primary"
    SECONDARY = "Secondary"

    @property
    def priority(self) -> int:
        """OpenMRS diagnosis rank: 1 for primary, 0 otherwise."""
        return 1 if self is Rank.PRIMARY else 0

    @classmethod
    def from_priority(cls, value: object) -> "Rank":
        return cls.PRIMARY if value == 1 else cls.SECONDARY


class Diagnosis(BaseModel):
    """A visit diagnosis as submitted by the summarization service."""

    diagnosis: str = Field(..., min_length=1, description="Free-text diagnosis name")
    certainty: Certainty
    rank: Rank


class RecordedDiagnosis(Diagnosis):
    """A diagnosis read back from the EMR."""

    uuid: str


class MedicationOrder(BaseModel):
    """A drug order in the integration's flat representation."""

    name: str = Field(..., min_length=1)
    strength: str = ""
    dose: float
    dose_unit: str
    route: str
    frequency: str
    patient_instructions: str = ""
    prn: bool = False
    prn_reason: str = ""
    duration: int
    duration_unit: str
    dispense_quantity: float
    dispense_unit: str
    refills: int = 0
    indication: str = ""

    @property
    def as_needed(self) -> bool:
        return len(self.prn_reason.strip()) > 0

    @property
    def full_name(self) -> str:
        return f"{self.name} {self.strength}".strip()


class Patient(BaseModel):
    id: str
    display_name: str
    display_id: str = ""
    display_gender: str = ""
    display_birthdate: str | None = None


class VisitSummary(BaseModel):
    id: str
    display_name: str
    date: str | None = None


class ActiveCondition(BaseModel):
    name: str


class MedicationRecord(BaseModel):
    """A medication request as stored in the EMR, flattened for display."""

    name: str
    status: str = ""
    dosage_instruction: str = ""
    dose: float | str = ""
    dose_unit: str = ""
    route: str = ""
    frequency: str = ""
    duration: float = 0
    duration_unit: str = "Days"
    dispense_quantity: float = 0
    dispense_unit: str = "N/A"
    refills: int = 0
    start_time: str | None = None


class OrderedLabTest(BaseModel):
    name: str
    date: str | None = None


class NoteSubmission(BaseModel):
    """One note submission after mapping from the wire schema."""

    patient_id: str | None = None
    visit_id: str | None = None
    note_title: str = ""
    clinical_note: str = ""
    diagnoses: list[Diagnosis] = Field(default_factory=list)
    medications: list[MedicationOrder] = Field(default_factory=list)

    @property
    def is_new(self) -> bool:
        return not self.visit_id


class EncounterNote(BaseModel):
    """Rendered note for a visit.

    ``found`` is False when the visit has no note record at all; the
    markdown is still rendered with placeholders in that case.
    """

    visit_id: str
    found: bool
    markdown: str

"""Read-side views rebuilt from several independent EMR queries."""

from __future__ import annotations

import contextvars
from concurrent.futures import ThreadPoolExecutor

import structlog

from ..domain.models import (
    ActiveCondition,
    EncounterNote,
    MedicationRecord,
    OrderedLabTest,
    RecordedDiagnosis,
)
from ..emr.rest_client import OpenMRSRestClient
from ..errors import error_context
from ..fhir.fhir_client import FHIRClient
from ..fhir.resources import find_note_observation
from .mapper import (
    condition_from_fhir,
    lab_test_from_fhir,
    medication_from_fhir,
    recorded_diagnoses_from_encounter,
)
from .markdown import render_encounter_note, render_patient_summary
from .navigator import EncounterNavigator

logger = structlog.get_logger(__name__)


class RecordReader:
    """Patient summaries, visit notes and per-visit order history."""

    def __init__(
        self,
        fhir: FHIRClient,
        rest: OpenMRSRestClient,
        navigator: EncounterNavigator | None = None,
    ) -> None:
        self._fhir = fhir
        self._rest = rest
        self._navigator = navigator or EncounterNavigator(fhir)

    # ------------------------------------------------------------------
    # Patient summary
    # ------------------------------------------------------------------

    def active_conditions(self, patient_id: str) -> list[ActiveCondition]:
        entries = self._fhir.search_all(
            "Condition", {"patient": patient_id, "clinical-status": "active"}
        )
        return [condition_from_fhir(e["resource"]) for e in entries]

    def active_medications(self, patient_id: str) -> list[MedicationRecord]:
        entries = self._fhir.search_all("MedicationRequest", {"patient": patient_id})
        return [
            medication_from_fhir(e["resource"])
            for e in entries
            if e["resource"].get("status") == "active"
        ]

    def patient_summary(self, patient_id: str) -> str:
        """Markdown of active conditions and medications ("" when both empty).

        The two reads are independent and run concurrently on the shared FHIR
        session. Each worker runs in a copy of the caller's context so bound
        structlog contextvars reach its log lines.
        """
        with error_context("fetch_patient_summary", f"Patient/{patient_id}"):
            with ThreadPoolExecutor(max_workers=2, thread_name_prefix="patient-summary") as pool:
                conditions = pool.submit(contextvars.copy_context().run, self.active_conditions, patient_id)
                medications = pool.submit(contextvars.copy_context().run, self.active_medications, patient_id)
                summary = render_patient_summary(conditions.result(), medications.result())
        logger.info("patient_summary_built", patient_id=patient_id, empty=not summary)
        return summary

    # ------------------------------------------------------------------
    # Visit note
    # ------------------------------------------------------------------

    def note_text(self, note_record_id: str) -> str:
        """Value of the narrative observation on the note record ("" when absent)."""
        entries = self._fhir.search_all("Observation", {"encounter": note_record_id})
        observation = find_note_observation(entries)
        if observation is None:
            return ""
        return observation.get("valueString") or ""

    def note_diagnoses(self, note_record_id: str) -> list[RecordedDiagnosis]:
        return recorded_diagnoses_from_encounter(self._rest.get_encounter(note_record_id))

    def encounter_note(self, visit_id: str) -> EncounterNote:
        """Diagnoses and clinical note of a visit.

        ``found`` is False when the visit has no note record; the markdown
        then carries only the placeholders.
        """
        with error_context("fetch_encounter_note", f"Encounter/{visit_id}"):
            note_record = self._navigator.find_note_record(visit_id)
            if note_record is None:
                return EncounterNote(
                    visit_id=visit_id,
                    found=False,
                    markdown=render_encounter_note([], ""),
                )
            text = self.note_text(note_record["id"])
            diagnoses = self.note_diagnoses(note_record["id"])

        return EncounterNote(
            visit_id=visit_id,
            found=True,
            markdown=render_encounter_note(diagnoses, text),
        )

    # ------------------------------------------------------------------
    # Orders placed under a visit
    # ------------------------------------------------------------------

    def visit_medications(self, visit_id: str) -> list[MedicationRecord]:
        """Medication requests attached to the visit's order encounters."""
        with error_context("fetch_visit_medications", f"Encounter/{visit_id}"):
            encounter_ids = self._order_encounter_ids(visit_id)
            if not encounter_ids:
                return []
            entries = self._fhir.search_all("MedicationRequest", {"encounter": encounter_ids})
        return [medication_from_fhir(e["resource"]) for e in entries]

    def ordered_lab_tests(self, visit_id: str) -> list[OrderedLabTest]:
        """Lab tests (ServiceRequests) attached to the visit's order encounters."""
        with error_context("fetch_ordered_lab_tests", f"Encounter/{visit_id}"):
            encounter_ids = self._order_encounter_ids(visit_id)
            if not encounter_ids:
                return []
            entries = self._fhir.search_all("ServiceRequest", {"encounter": encounter_ids})
        return [lab_test_from_fhir(e["resource"]) for e in entries]

    def _order_encounter_ids(self, visit_id: str) -> str:
        return ",".join(enc["id"] for enc in self._navigator.find_order_records(visit_id))

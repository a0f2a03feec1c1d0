"""Boundary facade: one method per operation the calling service needs.

An HTTP layer (routing, API-key checks, response envelopes) sits in front of
this class; it only has to translate ``EMRAdapterError`` into responses.
"""

from __future__ import annotations

import requests
import structlog

from .config import EMRSettings
from .domain.models import (
    EncounterNote,
    MedicationOrder,
    MedicationRecord,
    NoteSubmission,
    OrderedLabTest,
    Patient,
    VisitSummary,
)
from .domain.submission import PostNoteForm, parse_submission
from .domain.templates import medication_templates
from .emr.rest_client import OpenMRSRestClient
from .errors import error_context
from .fhir.fhir_client import FHIRClient
from .fhir.resources import VISIT_TYPES
from .sync.mapper import patient_from_fhir, visit_from_fhir
from .sync.navigator import EncounterNavigator
from .sync.orchestrator import NoteSynchronizer
from .sync.reconstructor import RecordReader

logger = structlog.get_logger(__name__)


class EMRAdapter:
    """Wire the EMR clients and sync components from one ``EMRSettings``."""

    def __init__(
        self,
        settings: EMRSettings,
        fhir_session: requests.Session | None = None,
        rest_session: requests.Session | None = None,
    ) -> None:
        self.settings = settings
        self.fhir = FHIRClient(
            settings.fhir_base_url,
            auth=settings.basic_auth,
            session=fhir_session,
            timeout=settings.request_timeout,
        )
        self.rest = OpenMRSRestClient(
            settings.rest_base_url,
            auth=settings.basic_auth,
            session=rest_session,
            timeout=settings.request_timeout,
        )
        navigator = EncounterNavigator(self.fhir)
        self.synchronizer = NoteSynchronizer(self.fhir, self.rest, settings, navigator=navigator)
        self.reader = RecordReader(self.fhir, self.rest, navigator=navigator)

    def __enter__(self) -> "EMRAdapter":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self.fhir.close()
        self.rest.close()

    # ------------------------------------------------------------------
    # Read operations
    # ------------------------------------------------------------------

    def list_patients(self) -> list[Patient]:
        with error_context("list_patients"):
            entries = self.fhir.search_all("Patient", {"_summary": "true"})
        return [patient_from_fhir(e["resource"]) for e in entries]

    def list_patient_visits(self, patient_id: str) -> list[VisitSummary]:
        """Past visits of a patient, newest first."""
        with error_context("list_patient_visits", f"Patient/{patient_id}"):
            entries = self.fhir.search_all(
                "Encounter",
                {
                    "patient": patient_id,
                    "type": ",".join(VISIT_TYPES.values()),
                    "_sort": "-date",
                },
            )
        return [visit_from_fhir(e["resource"]) for e in entries]

    def get_patient_summary(self, patient_id: str) -> str:
        return self.reader.patient_summary(patient_id)

    def get_encounter_note(self, visit_id: str) -> EncounterNote:
        return self.reader.encounter_note(visit_id)

    def get_visit_medications(self, visit_id: str) -> list[MedicationRecord]:
        return self.reader.visit_medications(visit_id)

    def get_ordered_lab_tests(self, visit_id: str) -> list[OrderedLabTest]:
        return self.reader.ordered_lab_tests(visit_id)

    def medication_templates(self) -> list[MedicationOrder]:
        return medication_templates()

    # ------------------------------------------------------------------
    # Write operations
    # ------------------------------------------------------------------

    def post_note(self, form: dict | PostNoteForm | NoteSubmission) -> str:
        """Create or update a visit from a note submission; returns the visit id."""
        submission = form if isinstance(form, NoteSubmission) else parse_submission(form)
        mode = "new" if submission.is_new else "existing"
        logger.info("note_submission_received", mode=mode, patient_id=submission.patient_id, visit_id=submission.visit_id)
        return self.synchronizer.submit(submission)

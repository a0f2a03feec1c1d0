"""Note submission -> EMR resource graph synchronization.

A submission without a visit id creates a new visit; one with a visit id
updates that visit. Either way the work is a linear list of EMR calls:

  NEW       visit -> note record -> note observation -> orders -> diagnoses
  EXISTING  note record (find or create) -> note observation (update or
            create) -> diagnoses -> orders

There is no retry and no rollback. The first failing step raises, tagged with
the step name, and everything written before it stays in the EMR.
"""

from __future__ import annotations

from collections.abc import Sequence

import structlog

from ..config import EMRSettings
from ..domain.models import Diagnosis, MedicationOrder, NoteSubmission
from ..emr.rest_client import OpenMRSRestClient
from ..errors import EMRAdapterError, ValidationError, VocabularyResolutionError, error_context
from ..fhir.fhir_client import FHIRClient
from ..fhir.resources import ResourceBuilder, find_note_observation
from .mapper import OrderCodes, diagnosis_payload, drug_order_payload, recorded_diagnoses_from_encounter
from .navigator import EncounterNavigator
from .vocabulary import VocabularyResolver

logger = structlog.get_logger(__name__)


class NoteSynchronizer:
    """Upsert a note submission into the EMR."""

    def __init__(
        self,
        fhir: FHIRClient,
        rest: OpenMRSRestClient,
        settings: EMRSettings,
        navigator: EncounterNavigator | None = None,
        resolver: VocabularyResolver | None = None,
    ) -> None:
        self._fhir = fhir
        self._rest = rest
        self._settings = settings
        self._navigator = navigator or EncounterNavigator(fhir)
        self._resolver = resolver or VocabularyResolver(rest)

    def submit(self, submission: NoteSubmission) -> str:
        """Create or update the visit for ``submission``; returns the visit id.

        Raises:
            ValidationError: NEW submission without a patient id.
            NotFoundError: the supplied visit does not exist.
            VocabularyResolutionError: a drug or unit of an order is unknown.
            UpstreamWriteError: the EMR rejected a write.
        """
        if submission.is_new:
            if not submission.patient_id:
                raise ValidationError("patient_id is required to create a new encounter.")
            return self._create_visit(submission)
        return self._update_visit(submission)

    # ------------------------------------------------------------------
    # NEW / EXISTING sequences
    # ------------------------------------------------------------------

    def _create_visit(self, submission: NoteSubmission) -> str:
        patient_id = submission.patient_id
        log = logger.bind(patient_id=patient_id)
        log.info("visit_create_started", orders=len(submission.medications), diagnoses=len(submission.diagnoses))

        with error_context("create_visit", f"Patient/{patient_id}"):
            visit = self._fhir.create(
                "Encounter",
                ResourceBuilder.visit(patient_id, self._settings.default_location_uuid),
            )
        visit_id = visit["id"]
        log = log.bind(visit_id=visit_id)
        log.info("visit_created")

        try:
            with error_context("create_note_record", f"Encounter/{visit_id}"):
                note_record = self.create_note_record(patient_id, visit_id)

            with error_context("create_note_observation", f"Encounter/{note_record['id']}"):
                self._fhir.create(
                    "Observation",
                    ResourceBuilder.note_observation(
                        f"Patient/{patient_id}", note_record["id"], submission.clinical_note
                    ),
                )

            self.append_medication_orders(patient_id, visit_id, submission.medications)

            if submission.diagnoses:
                self.replace_diagnoses(patient_id, visit_id, submission.diagnoses, note_record=note_record)
        except EMRAdapterError as exc:
            # Nothing is rolled back; the visit stays in the EMR.
            log.error("visit_partially_synced", failed_step=exc.step)
            raise

        log.info("visit_create_finished")
        return visit_id

    def _update_visit(self, submission: NoteSubmission) -> str:
        visit_id = submission.visit_id
        log = logger.bind(visit_id=visit_id)
        log.info("visit_update_started", orders=len(submission.medications), diagnoses=len(submission.diagnoses))

        with error_context("locate_note_record", f"Encounter/{visit_id}"):
            patient_id = submission.patient_id or self._navigator.visit_patient_id(visit_id)
            note_record = self.ensure_note_record(patient_id, visit_id)

        with error_context("upsert_note_observation", f"Encounter/{note_record['id']}"):
            self.upsert_note_observation(note_record, submission.clinical_note)

        if submission.diagnoses:
            self.replace_diagnoses(patient_id, visit_id, submission.diagnoses, note_record=note_record)

        self.append_medication_orders(patient_id, visit_id, submission.medications)

        log.info("visit_update_finished")
        return visit_id

    # ------------------------------------------------------------------
    # Note record and observation
    # ------------------------------------------------------------------

    def create_note_record(self, patient_id: str, visit_id: str) -> dict:
        note_record = self._fhir.create(
            "Encounter",
            ResourceBuilder.note_encounter(
                patient_id,
                visit_id,
                self._settings.default_location_uuid,
                self._settings.default_practitioner_uuid,
            ),
        )
        logger.info("note_record_created", visit_id=visit_id, note_record_id=note_record["id"])
        return note_record

    def ensure_note_record(self, patient_id: str, visit_id: str) -> dict:
        """Existing note record of the visit, or a newly created one."""
        note_record = self._navigator.find_note_record(visit_id)
        if note_record is not None:
            return note_record
        logger.info("note_record_missing", visit_id=visit_id)
        return self.create_note_record(patient_id, visit_id)

    def upsert_note_observation(self, note_record: dict, text: str) -> dict:
        """Overwrite the narrative observation's value in place, or create it.

        Other observations on the note record (vitals and the like) are left alone.
        """
        entries = self._fhir.search_all("Observation", {"encounter": note_record["id"]})
        existing = find_note_observation(entries)
        if existing is not None:
            updated = {**existing, "valueString": text}
            logger.info("note_observation_updated", observation_id=existing["id"])
            return self._fhir.update("Observation", existing["id"], updated)

        subject = (note_record.get("subject") or {}).get("reference", "")
        logger.info("note_observation_created", note_record_id=note_record["id"])
        return self._fhir.create(
            "Observation",
            ResourceBuilder.note_observation(subject, note_record["id"], text),
        )

    # ------------------------------------------------------------------
    # Medication orders (append-only)
    # ------------------------------------------------------------------

    def append_medication_orders(
        self,
        patient_id: str,
        visit_id: str,
        orders: Sequence[MedicationOrder],
    ) -> None:
        """Create each order in input order; the first failure stops the rest."""
        for order in orders:
            self.create_medication_order(patient_id, visit_id, order)

    def create_medication_order(self, patient_id: str, visit_id: str, order: MedicationOrder) -> dict:
        """Order sub-encounter, vocabulary resolution, then the legacy drug order."""
        entity = f"drug order {order.full_name!r}"

        with error_context("create_order_encounter", entity):
            order_encounter = self._fhir.create(
                "Encounter",
                ResourceBuilder.order_encounter(patient_id, visit_id, self._settings.default_location_uuid),
            )

        with error_context("resolve_order_vocabulary", entity):
            codes = self.resolve_order_codes(order)

        with error_context("create_drug_order", entity):
            created = self._rest.create_order(
                drug_order_payload(
                    order,
                    codes,
                    patient_id=patient_id,
                    order_encounter_id=order_encounter["id"],
                    orderer_uuid=self._settings.default_practitioner_uuid,
                    care_setting_uuid=self._settings.care_setting_uuid,
                )
            )
        logger.info(
            "drug_order_created",
            visit_id=visit_id,
            order_encounter_id=order_encounter["id"],
            drug=order.full_name,
        )
        return created

    def resolve_order_codes(self, order: MedicationOrder) -> OrderCodes:
        resolve = self._resolver.resolve_concept
        return OrderCodes(
            drug=self._resolver.resolve_drug(order.name, order.strength),
            dose_units=resolve(order.dose_unit),
            route=resolve(order.route),
            frequency=resolve(order.frequency),
            duration_units=resolve(order.duration_unit),
            quantity_units=resolve(order.dispense_unit),
        )

    # ------------------------------------------------------------------
    # Diagnoses (replace-all)
    # ------------------------------------------------------------------

    def replace_diagnoses(
        self,
        patient_id: str,
        visit_id: str,
        diagnoses: Sequence[Diagnosis],
        note_record: dict | None = None,
    ) -> None:
        """Delete every current diagnosis of the visit, then insert ``diagnoses``.

        Deletes are fire-and-forget: a failed delete is logged and the
        inserts still run. A crash between the two phases can leave the
        visit with no diagnoses or a mix of old and new.
        """
        if note_record is None:
            with error_context("locate_note_record", f"Encounter/{visit_id}"):
                note_record = self.ensure_note_record(patient_id, visit_id)
        note_record_id = note_record["id"]

        with error_context("fetch_diagnoses", f"Encounter/{note_record_id}"):
            existing = recorded_diagnoses_from_encounter(self._rest.get_encounter(note_record_id))

        for old in existing:
            try:
                self._rest.delete_patient_diagnosis(old.uuid)
            except EMRAdapterError as exc:
                logger.warning("diagnosis_delete_failed", diagnosis=old.diagnosis, uuid=old.uuid, error=str(exc))
            else:
                logger.info("diagnosis_deleted", diagnosis=old.diagnosis, uuid=old.uuid)

        for diagnosis in diagnoses:
            entity = f"diagnosis {diagnosis.diagnosis!r}"
            with error_context("resolve_diagnosis_vocabulary", entity):
                concept_uuid = self._diagnosis_concept(diagnosis)
            with error_context("create_diagnosis", entity):
                self._rest.create_patient_diagnosis(
                    diagnosis_payload(diagnosis, patient_id, note_record_id, concept_uuid)
                )
            logger.info("diagnosis_created", diagnosis=diagnosis.diagnosis, coded=concept_uuid is not None)

    def _diagnosis_concept(self, diagnosis: Diagnosis) -> str | None:
        try:
            return self._resolver.resolve_concept(diagnosis.diagnosis)
        except VocabularyResolutionError:
            logger.warning("diagnosis_stored_non_coded", diagnosis=diagnosis.diagnosis)
            return None

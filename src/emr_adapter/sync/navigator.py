"""Locating a visit's child encounters.

The OpenMRS FHIR module cannot search encounters by ``part-of``. To find the
"Visit Note" or "Order" encounters under a visit we:

  1. read the visit to learn its patient,
  2. fetch every encounter of the child type for that patient (all pages),
  3. keep the ones whose ``partOf`` points at the visit.

Each lookup costs O(number of the patient's encounters of that type). That
is fine for clinic-sized histories but grows with the patient's record.
"""

from __future__ import annotations

from collections.abc import Iterable

import structlog

from ..errors import NotFoundError
from ..fhir.fhir_client import FHIRClient
from ..fhir.resources import NOTE_ENCOUNTER_TYPES, ORDER_ENCOUNTER_TYPES, reference_id

logger = structlog.get_logger(__name__)


def find_part_of_children(entries: Iterable[dict], parent_visit_id: str) -> list[dict]:
    """Return the resources in Bundle ``entries`` that are ``partOf`` the visit.

    Input order is preserved.
    """
    target = f"Encounter/{parent_visit_id}"
    return [
        entry["resource"]
        for entry in entries
        if ((entry.get("resource") or {}).get("partOf") or {}).get("reference") == target
    ]


class EncounterNavigator:
    """Walk from a visit to its note record and order encounters."""

    def __init__(self, fhir: FHIRClient) -> None:
        self._fhir = fhir

    def visit_patient_id(self, visit_id: str) -> str:
        """Patient id of the visit's ``subject`` reference.

        Raises:
            NotFoundError: if the visit does not exist or has no patient.
        """
        visit = self._fhir.read("Encounter", visit_id)
        patient_id = reference_id(visit.get("subject"))
        if not patient_id:
            raise NotFoundError(f"Could not determine patient for visit {visit_id}")
        return patient_id

    def find_note_record(self, visit_id: str) -> dict | None:
        """The "Visit Note" encounter under the visit, or None."""
        children = self._children(visit_id, NOTE_ENCOUNTER_TYPES.values())
        return children[0] if children else None

    def find_order_records(self, visit_id: str) -> list[dict]:
        """All "Order" encounters under the visit."""
        return self._children(visit_id, ORDER_ENCOUNTER_TYPES.values())

    def _children(self, visit_id: str, type_uuids: Iterable[str]) -> list[dict]:
        patient_id = self.visit_patient_id(visit_id)
        entries = self._fhir.search_all(
            "Encounter",
            {"patient": patient_id, "type": ",".join(type_uuids)},
        )
        children = find_part_of_children(entries, visit_id)
        logger.debug(
            "child_encounters_scanned",
            visit_id=visit_id,
            scanned=len(entries),
            matched=len(children),
        )
        return children

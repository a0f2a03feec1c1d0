"""FHIR R4 Encounter and Observation builders for the OpenMRS FHIR module.

A submitted note is stored as a small graph of resources:

    Visit (Encounter, visit type)
      +-- Visit Note (Encounter, partOf Visit)
      |     +-- Observation (CIEL 162169, valueString = note text)
      +-- Order (Encounter, partOf Visit)   one per medication order

OpenMRS identifies visit and encounter types by UUID in ``type.coding.code``.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any

from ..errors import ValidationError


VISIT_TYPES: dict[str, str] = {
    "OPD Visit":      "287463d3-2233-4c69-9851-5841a1f5e109",
    "Facility Visit": "7b0f5697-27e3-40c4-8bae-f4049abfb4ed",
    "Home Visit":     "d66e9fe0-7d51-4801-a550-5d462ad1c944",
}

NOTE_ENCOUNTER_TYPES: dict[str, str] = {
    "Visit Note": "d7151f82-c1f3-4152-a605-2f9ea7414a79",
}

ORDER_ENCOUNTER_TYPES: dict[str, str] = {
    "Order": "39da3525-afe4-45ff-8977-c53b7b359158",
}

_ACT_CODE_SYSTEM       = "http://terminology.hl7.org/CodeSystem/v3-ActCode"
_VISIT_TYPE_SYSTEM     = "http://fhir.openmrs.org/code-system/visit-type"
_ENCOUNTER_TYPE_SYSTEM = "http://fhir.openmrs.org/code-system/encounter-type"
_CIEL_SYSTEM           = "https://cielterminology.org"
_CIEL_ENCOUNTER_NOTE   = "162169"

_VALID_ENCOUNTER_STATUSES = {
    "planned", "arrived", "triaged", "in-progress", "onleave",
    "finished", "cancelled", "entered-in-error", "unknown",
}
_FHIR_REFERENCE_RE = re.compile(r"^[A-Z][A-Za-z]+/.+$")


class FHIRValidationError(ValidationError):
    """Raised when a built resource fails the structural checks below."""


def fhir_now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def reference(resource_type: str, resource_id: str) -> dict[str, str]:
    return {"reference": f"{resource_type}/{resource_id}"}


def reference_id(ref: dict | None) -> str | None:
    """``{"reference": "Patient/abc"}`` -> ``"abc"``."""
    value = (ref or {}).get("reference") or ""
    if "/" not in value:
        return None
    return value.rsplit("/", 1)[1] or None


def is_note_observation(resource: dict) -> bool:
    """True for the CIEL "Text of encounter note" observation."""
    codings = (resource.get("code") or {}).get("coding") or []
    return any(c.get("code") == _CIEL_ENCOUNTER_NOTE for c in codings)


def find_note_observation(entries: list[dict]) -> dict | None:
    """First narrative observation among Bundle entries; other observations are skipped."""
    for entry in entries:
        resource = entry.get("resource") or {}
        if is_note_observation(resource):
            return resource
    return None


class ResourceBuilder:
    """Build validated OpenMRS FHIR Encounter/Observation dicts."""

    @staticmethod
    def visit(
        patient_id: str,
        location_uuid: str,
        visit_type: str = "OPD Visit",
        start: str | None = None,
    ) -> dict:
        """Top-level visit encounter for a patient."""
        if visit_type not in VISIT_TYPES:
            raise ValueError(f"Unknown visit type {visit_type!r}; expected one of {sorted(VISIT_TYPES)}")

        resource: dict[str, Any] = {
            "resourceType": "Encounter",
            "status": "finished",
            "class": {"system": _ACT_CODE_SYSTEM, "code": "AMB"},
            "type": [{
                "coding": [{
                    "system":  _VISIT_TYPE_SYSTEM,
                    "code":    VISIT_TYPES[visit_type],
                    "display": visit_type,
                }]
            }],
            "subject": reference("Patient", patient_id),
            "period": {"start": start or fhir_now()},
            "location": [{"location": reference("Location", location_uuid)}],
        }
        ResourceBuilder.validate_encounter(resource)
        return resource

    @staticmethod
    def note_encounter(
        patient_id: str,
        visit_id: str,
        location_uuid: str,
        practitioner_uuid: str,
        start: str | None = None,
    ) -> dict:
        """"Visit Note" sub-encounter that carries the narrative observation."""
        resource = _child_encounter(
            patient_id, visit_id, location_uuid, "Visit Note",
            NOTE_ENCOUNTER_TYPES["Visit Note"], start,
        )
        resource["participant"] = [{"individual": reference("Practitioner", practitioner_uuid)}]
        ResourceBuilder.validate_encounter(resource)
        return resource

    @staticmethod
    def order_encounter(
        patient_id: str,
        visit_id: str,
        location_uuid: str,
        start: str | None = None,
    ) -> dict:
        """"Order" sub-encounter that carries exactly one drug order."""
        resource = _child_encounter(
            patient_id, visit_id, location_uuid, "Order",
            ORDER_ENCOUNTER_TYPES["Order"], start,
        )
        ResourceBuilder.validate_encounter(resource)
        return resource

    @staticmethod
    def note_observation(
        patient_reference: str,
        note_encounter_id: str,
        text: str,
        effective: str | None = None,
    ) -> dict:
        """Observation holding the clinical note text.

        Args:
            patient_reference: Full reference string, e.g. ``Patient/abc``.
            note_encounter_id: Id of the "Visit Note" encounter.
            text: Rendered note (plain text or markdown).
            effective: FHIR instant; defaults to now.
        """
        if not _FHIR_REFERENCE_RE.match(patient_reference or ""):
            raise FHIRValidationError(
                f"subject.reference {patient_reference!r} must match 'ResourceType/id'"
            )
        if not note_encounter_id:
            raise FHIRValidationError("encounter id is required for the note observation")

        return {
            "resourceType": "Observation",
            "status": "final",
            "code": {
                "coding": [{
                    "system":  _CIEL_SYSTEM,
                    "code":    _CIEL_ENCOUNTER_NOTE,
                    "display": "Text of encounter note",
                }]
            },
            "subject": {"reference": patient_reference},
            "encounter": reference("Encounter", note_encounter_id),
            "valueString": text,
            "effectiveDateTime": effective or fhir_now(),
        }

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    @staticmethod
    def validate_encounter(resource: dict) -> None:
        """Check the fields OpenMRS needs to accept an Encounter.

        Checks:
          - resourceType is 'Encounter' and status is a valid R4 code
          - type.coding[0] carries a code
          - subject, location and partOf references match 'ResourceType/id'

        Raises:
            FHIRValidationError: listing every problem found.
        """
        errors: list[str] = []

        if resource.get("resourceType") != "Encounter":
            errors.append(f"resourceType must be 'Encounter', got {resource.get('resourceType')!r}")

        status = resource.get("status")
        if status not in _VALID_ENCOUNTER_STATUSES:
            errors.append(f"status {status!r} is not a valid R4 code")

        types = resource.get("type") or []
        coding = (types[0].get("coding") or [{}])[0] if types else {}
        if not coding.get("code"):
            errors.append("type[0].coding[0].code is required")

        refs = [("subject", resource.get("subject"))]
        refs += [(f"location[{i}]", loc.get("location")) for i, loc in enumerate(resource.get("location", []))]
        if "partOf" in resource:
            refs.append(("partOf", resource["partOf"]))
        for name, ref in refs:
            value = (ref or {}).get("reference", "")
            if not _FHIR_REFERENCE_RE.match(value):
                errors.append(f"{name}.reference {value!r} must match 'ResourceType/id'")

        if errors:
            bullet_list = "\n  - ".join(errors)
            raise FHIRValidationError(
                f"FHIR R4 Encounter validation failed ({len(errors)} error(s)):\n  - {bullet_list}"
            )


def _child_encounter(
    patient_id: str,
    visit_id: str,
    location_uuid: str,
    type_display: str,
    type_uuid: str,
    start: str | None,
) -> dict[str, Any]:
    return {
        "resourceType": "Encounter",
        "status": "finished",
        "class": {"system": _ACT_CODE_SYSTEM, "code": "AMB"},
        "type": [{
            "coding": [{
                "system":  _ENCOUNTER_TYPE_SYSTEM,
                "code":    type_uuid,
                "display": type_display,
            }]
        }],
        "subject": reference("Patient", patient_id),
        "period": {"start": start or fhir_now()},
        "location": [{"location": reference("Location", location_uuid)}],
        "partOf": reference("Encounter", visit_id),
    }

"""Pure translations between EMR resources and the domain model.

Nothing here performs I/O. Coded identifiers needed by write payloads are
resolved by the orchestrator beforehand and passed in.
"""

from __future__ import annotations

from pydantic import BaseModel

from ..domain.models import (
    ActiveCondition,
    Certainty,
    Diagnosis,
    MedicationOrder,
    MedicationRecord,
    OrderedLabTest,
    Patient,
    Rank,
    RecordedDiagnosis,
    VisitSummary,
)

NO_NAME = "No Name Provided"
SIMPLE_DOSING = "org.openmrs.SimpleDosingInstructions"

# FHIR duration unit codes -> display units
_DURATION_UNITS: dict[str, str] = {
    "d": "Days",
    "day": "Days",
    "wk": "Weeks",
    "week": "Weeks",
    "mo": "Months",
    "month": "Months",
}


class OrderCodes(BaseModel):
    """Coded identifiers resolved for one medication order."""

    drug: str
    dose_units: str
    route: str
    frequency: str
    duration_units: str
    quantity_units: str


def capitalize_first(value: str | None) -> str:
    """``"male"`` -> ``"Male"``; rest of the string lower-cased."""
    if not value:
        return ""
    return value[0].upper() + value[1:].lower()


# ------------------------------------------------------------------
# EMR -> domain
# ------------------------------------------------------------------

def patient_from_fhir(resource: dict) -> Patient:
    names = resource.get("name") or [{}]
    identifiers = resource.get("identifier") or [{}]
    return Patient(
        id=resource["id"],
        display_name=names[0].get("text") or NO_NAME,
        display_id=identifiers[0].get("value") or "",
        display_gender=capitalize_first(resource.get("gender")),
        display_birthdate=resource.get("birthDate"),
    )


def visit_from_fhir(resource: dict) -> VisitSummary:
    types = resource.get("type") or [{}]
    codings = types[0].get("coding") or [{}]
    locations = resource.get("location") or [{}]

    type_display = codings[0].get("display") or "Unknown visit type"
    location_display = (locations[0].get("location") or {}).get("display") or "Unknown location"
    end = (resource.get("period") or {}).get("end")

    return VisitSummary(
        id=resource["id"],
        display_name=f"{type_display} - {location_display}",
        date=end.split("T")[0] if end else None,
    )


def condition_from_fhir(resource: dict) -> ActiveCondition:
    code = resource.get("code") or {}
    name = code.get("text") or ((code.get("coding") or [{}])[0].get("display")) or "Unknown condition"
    return ActiveCondition(name=name)


def medication_from_fhir(resource: dict) -> MedicationRecord:
    dosage = (resource.get("dosageInstruction") or [{}])[0]
    dispense = resource.get("dispenseRequest") or {}
    dose_quantity = (dosage.get("doseAndRate") or [{}])[0].get("doseQuantity") or {}
    timing = dosage.get("timing") or {}
    repeat = timing.get("repeat") or {}
    supply = dispense.get("expectedSupplyDuration") or {}
    quantity = dispense.get("quantity") or {}

    name = (
        (resource.get("medicationCodeableConcept") or {}).get("text")
        or (resource.get("medicationReference") or {}).get("display")
        or "Unknown medication"
    )
    duration_unit = (
        _DURATION_UNITS.get(supply.get("unit") or "")
        or _DURATION_UNITS.get(repeat.get("durationUnit") or "")
        or "Days"
    )

    return MedicationRecord(
        name=name,
        status=resource.get("status") or "",
        dosage_instruction=dosage.get("text") or "",
        dose=dose_quantity.get("value") or "",
        dose_unit=dose_quantity.get("unit") or "",
        route=(dosage.get("route") or {}).get("text") or "",
        frequency=(timing.get("code") or {}).get("text") or "",
        duration=supply.get("value") or repeat.get("duration") or 0,
        duration_unit=duration_unit,
        dispense_quantity=quantity.get("value") or 0,
        dispense_unit=quantity.get("unit") or "N/A",
        refills=dispense.get("numberOfRepeatsAllowed") or 0,
        start_time=(dispense.get("validityPeriod") or {}).get("start") or resource.get("authoredOn"),
    )


def lab_test_from_fhir(resource: dict) -> OrderedLabTest:
    return OrderedLabTest(
        name=(resource.get("code") or {}).get("text") or "Unknown test",
        date=(resource.get("occurrencePeriod") or {}).get("start"),
    )


def recorded_diagnoses_from_encounter(encounter: dict) -> list[RecordedDiagnosis]:
    """Non-voided diagnoses of a legacy REST encounter representation."""
    recorded = []
    for entry in encounter.get("diagnoses") or []:
        if entry.get("voided"):
            continue
        recorded.append(
            RecordedDiagnosis(
                uuid=entry["uuid"],
                diagnosis=entry.get("display") or "Unknown diagnosis",
                rank=Rank.from_priority(entry.get("rank")),
                certainty=_certainty(entry.get("certainty")),
            )
        )
    return recorded


def _certainty(value: str | None) -> Certainty:
    try:
        return Certainty(capitalize_first(value))
    except ValueError:
        return Certainty.PROVISIONAL


# ------------------------------------------------------------------
# domain -> EMR
# ------------------------------------------------------------------

def drug_order_payload(
    order: MedicationOrder,
    codes: OrderCodes,
    patient_id: str,
    order_encounter_id: str,
    orderer_uuid: str,
    care_setting_uuid: str,
) -> dict:
    """Legacy REST ``drugorder`` body with simple dosing instructions."""
    return {
        "type": "drugorder",
        "patient": patient_id,
        "encounter": order_encounter_id,
        "action": "NEW",
        "urgency": "ROUTINE",
        "careSetting": care_setting_uuid,
        "orderer": orderer_uuid,
        "drug": codes.drug,
        "dosingType": SIMPLE_DOSING,
        "dose": order.dose,
        "doseUnits": codes.dose_units,
        "route": codes.route,
        "frequency": codes.frequency,
        "duration": order.duration,
        "durationUnits": codes.duration_units,
        "quantity": order.dispense_quantity,
        "quantityUnits": codes.quantity_units,
        "numRefills": order.refills,
        "dosingInstructions": order.patient_instructions,
        "asNeeded": order.as_needed,
        "asNeededCondition": order.prn_reason,
        "orderReasonNonCoded": order.indication,
    }


def diagnosis_payload(
    diagnosis: Diagnosis,
    patient_id: str,
    note_encounter_id: str,
    concept_uuid: str | None,
) -> dict:
    """Legacy REST ``patientdiagnoses`` body; free text when uncoded."""
    coded = {"coded": concept_uuid} if concept_uuid else {"nonCoded": diagnosis.diagnosis}
    return {
        "patient": patient_id,
        "diagnosis": coded,
        "certainty": diagnosis.certainty.value,
        "rank": diagnosis.rank.priority,
        "condition": None,
        "encounter": note_encounter_id,
    }

"""Static medication order templates offered to the summarization service."""

from __future__ import annotations

from .models import MedicationOrder


MEDICATION_TEMPLATES: tuple[MedicationOrder, ...] = (
    MedicationOrder(
        name="Aspirin",
        strength="81 mg",
        dose=1,
        dose_unit="Tablet",
        route="Oral",
        frequency="Once daily",
        duration=7,
        duration_unit="Days",
        dispense_quantity=7,
        dispense_unit="Tablet",
        refills=0,
        indication="Fever",
    ),
    MedicationOrder(
        name="Lisinopril",
        strength="10 mg",
        dose=1,
        dose_unit="Tablet",
        route="Oral",
        frequency="Once daily",
        duration=7,
        duration_unit="Days",
        dispense_quantity=7,
        dispense_unit="Tablet",
        refills=0,
        indication="Hypertension",
    ),
    MedicationOrder(
        name="Paracetamol",
        strength="500 mg",
        dose=1,
        dose_unit="Tablet",
        route="Oral",
        frequency="Twice daily",
        patient_instructions="Take after meals",
        duration=7,
        duration_unit="Days",
        dispense_quantity=14,
        dispense_unit="Tablet",
        refills=0,
        indication="Fever",
    ),
)


def medication_templates() -> list[MedicationOrder]:
    """Fresh copies, so callers cannot mutate the shared templates."""
    return [template.model_copy() for template in MEDICATION_TEMPLATES]

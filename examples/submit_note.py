"""Example: submit a structured note to OpenMRS, then read the visit back.

Requires the OPENMRS_* environment variables (see emr_adapter.config).

Usage:
    python examples/submit_note.py <patient-uuid>
"""

from __future__ import annotations

import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from emr_adapter import EMRAdapter, configure_logging, load_settings


SAMPLE_FORM = {
    "note_title": "Follow-up visit",
    "notes_json": {
        "Clinical Note": {
            "chief_complaint": "Persistent dry cough for two weeks.",
            "history": ["No fever", "Non-smoker"],
            "plan": {"follow_up": "Two weeks", "tests": "Chest X-ray if no improvement"},
        },
        "Diagnoses": [
            {"Diagnosis": "Hypertension", "Certainty": "Confirmed", "Rank": "Primary"},
        ],
        "Medications": [
            {
                "Name": "Aspirin",
                "Strength": "81 mg",
                "Dose": 1,
                "Dose Unit": "Tablet",
                "Route": "Oral",
                "Frequency": "Once daily",
                "Patient Instructions": "",
                "Prn Reason": "",
                "Duration": 7,
                "Duration Unit": "Days",
                "Dispense Quantity": 7,
                "Dispense Unit": "Tablet",
                "Refills": 0,
                "Indication": "Fever",
            }
        ],
    },
}


def main() -> None:
    if len(sys.argv) != 2:
        print(__doc__)
        sys.exit(1)

    settings = load_settings()
    configure_logging(settings.log_level, settings.json_logs)

    form = {**SAMPLE_FORM, "patient_id": sys.argv[1]}

    with EMRAdapter(settings) as adapter:
        visit_id = adapter.post_note(form)
        print(f"Visit: {visit_id}\n")

        note = adapter.get_encounter_note(visit_id)
        print(note.markdown)

        meds = adapter.get_visit_medications(visit_id)
        print(json.dumps([m.model_dump() for m in meds], indent=2))


if __name__ == "__main__":
    main()

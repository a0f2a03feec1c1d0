"""Shared pytest fixtures, payload factories, and test markers.

Test tiers
----------
  unit        Fast, fully offline, zero external dependencies.
              Always run.

  integration Full note submission and read-back flows against the
              in-memory OpenMRS in tests/fixtures/fake_emr.py. Always run.

  quality     Resource structure checks and property-based (Hypothesis)
              tests of the pure mapping and rendering functions.

  live        Real calls to an OpenMRS server. Skipped unless the
              OPENMRS_* variables are set. See tests/live/conftest.py.

Run specific tiers:
  pytest tests/unit tests/integration tests/quality   # offline only
  pytest tests/live -m live                           # live only
  pytest tests/ -v                                    # everything
"""

from __future__ import annotations

from collections.abc import Iterator

import pytest
import requests_mock as req_mock

from emr_adapter import EMRAdapter, EMRSettings
from tests.fixtures.fake_emr import FHIR_BASE, REST_BASE, FakeOpenMRS

PATIENT_ID = "patient-jane"
LOCATION_UUID = "loc-1"
PRACTITIONER_UUID = "prac-1"


# ---------------------------------------------------------------------------
# Pytest markers
# ---------------------------------------------------------------------------

def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast offline unit tests")
    config.addinivalue_line("markers", "integration: fake-EMR integration tests")
    config.addinivalue_line("markers", "quality: schema and property-based checks")
    config.addinivalue_line("markers", "live: requires a real OpenMRS server (skipped by default)")


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

@pytest.fixture
def settings() -> EMRSettings:
    return EMRSettings(
        rest_base_url=REST_BASE,
        fhir_base_url=FHIR_BASE,
        username="admin",
        password="Admin123",
        default_location_uuid=LOCATION_UUID,
        default_practitioner_uuid=PRACTITIONER_UUID,
        _env_file=None,
    )


# ---------------------------------------------------------------------------
# Fake EMR + adapter
# ---------------------------------------------------------------------------

@pytest.fixture
def fake_emr() -> Iterator[FakeOpenMRS]:
    """An in-memory OpenMRS with one patient, mounted for the test's duration."""
    emr = FakeOpenMRS()
    emr.add_patient(PATIENT_ID)
    with req_mock.Mocker() as m:
        emr.install(m)
        yield emr


@pytest.fixture
def adapter(settings: EMRSettings, fake_emr: FakeOpenMRS) -> Iterator[EMRAdapter]:
    with EMRAdapter(settings) as emr_adapter:
        yield emr_adapter


# ---------------------------------------------------------------------------
# Wire payload factories
# ---------------------------------------------------------------------------

def make_medication(**overrides) -> dict:
    """A ``Medications`` entry as the summarization service sends it."""
    medication = {
        "Name": "Aspirin",
        "Strength": "81 mg",
        "Dose": 1,
        "Dose Unit": "Tablet",
        "Route": "Oral",
        "Frequency": "Once daily",
        "Patient Instructions": "Take with water",
        "Prn Reason": "",
        "Duration": 7,
        "Duration Unit": "Days",
        "Dispense Quantity": 7,
        "Dispense Unit": "Tablet",
        "Refills": 0,
        "Indication": "Fever",
    }
    medication.update(overrides)
    return medication


def make_diagnosis(name: str, certainty: str = "Confirmed", rank: str = "Primary") -> dict:
    return {"Diagnosis": name, "Certainty": certainty, "Rank": rank}


def make_form(
    clinical_note="Patient reports mild cough.",
    diagnoses: list[dict] | None = None,
    medications: list[dict] | None = None,
    patient_id: str | None = PATIENT_ID,
    encounter_id: str | None = None,
) -> dict:
    """A ``PostNoteForm`` body; NEW when ``encounter_id`` is None."""
    return {
        "patient_id": patient_id,
        "encounter_id": encounter_id,
        "note_title": "Visit note",
        "notes_json": {
            "Clinical Note": clinical_note,
            "Diagnoses": diagnoses or [],
            "Medications": medications or [],
        },
    }

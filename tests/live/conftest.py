"""Skip guards for live tests.

Every live test that requires a real OpenMRS server is guarded by a
pytest.mark.skipif that checks for the required environment variables. Tests
silently skip when they are absent; they never fail due to missing config.

Required environment variables:
  OPENMRS_FHIR_BASE_URL              e.g. https://dev3.openmrs.org/openmrs/ws/fhir2/R4
  OPENMRS_REST_BASE_URL              e.g. https://dev3.openmrs.org/openmrs/ws/rest/v1
  OPENMRS_USERNAME / OPENMRS_PASSWORD
  OPENMRS_DEFAULT_LOCATION_UUID
  OPENMRS_DEFAULT_PRACTITIONER_UUID
  OPENMRS_LIVE_PATIENT_UUID          a patient the tests may write visits for

Set them in your shell before running:
  export OPENMRS_FHIR_BASE_URL=...
  pytest tests/live -v -m live
"""

from __future__ import annotations

import os

import pytest

from emr_adapter import EMRAdapter, EMRSettings, load_settings


def _skip_unless(env_var: str, reason: str | None = None):
    """Return a pytest.mark.skipif that skips when env_var is not set."""
    msg = reason or f"Set {env_var} to run this test"
    return pytest.mark.skipif(not os.environ.get(env_var), reason=msg)


# Convenience marks; import these in live test files
skip_no_openmrs = _skip_unless(
    "OPENMRS_FHIR_BASE_URL", "Set OPENMRS_FHIR_BASE_URL and the other OPENMRS_* variables to run live tests"
)
skip_no_patient = _skip_unless(
    "OPENMRS_LIVE_PATIENT_UUID", "Set OPENMRS_LIVE_PATIENT_UUID to run live write tests"
)


@pytest.fixture(scope="session")
def live_settings() -> EMRSettings:
    if not os.environ.get("OPENMRS_FHIR_BASE_URL"):
        pytest.skip("OPENMRS_FHIR_BASE_URL not set")
    return load_settings()


@pytest.fixture(scope="session")
def live_adapter(live_settings: EMRSettings):
    with EMRAdapter(live_settings) as adapter:
        yield adapter


@pytest.fixture(scope="session")
def live_patient_id() -> str:
    patient_id = os.environ.get("OPENMRS_LIVE_PATIENT_UUID", "")
    if not patient_id:
        pytest.skip("OPENMRS_LIVE_PATIENT_UUID not set")
    return patient_id

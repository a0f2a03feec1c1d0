"""OpenMRS legacy REST (``/ws/rest/v1``) client.

The FHIR module cannot create drug orders or visit diagnoses, and offers no
free-text dictionary search, so those calls go through the legacy API.
"""

from __future__ import annotations

from .base_emr_client import BaseEMRClient


class OpenMRSRestClient(BaseEMRClient):
    """Dictionary search, drug orders and patient diagnoses over legacy REST."""

    def search_concepts(self, term: str) -> list[dict]:
        """Concepts whose names match ``term`` (``uuid`` + ``display`` each)."""
        return self._request("GET", "concept", params={"q": term}).get("results", [])

    def search_drugs(self, term: str) -> list[dict]:
        """Drugs whose names match ``term`` (``uuid`` + ``display`` each)."""
        return self._request("GET", "drug", params={"q": term}).get("results", [])

    def get_encounter(self, encounter_uuid: str) -> dict:
        """Fetch an encounter including its ``diagnoses`` list."""
        return self._request("GET", f"encounter/{encounter_uuid}")

    def create_order(self, payload: dict) -> dict:
        return self._request("POST", "order", json=payload)

    def create_patient_diagnosis(self, payload: dict) -> dict:
        return self._request("POST", "patientdiagnoses", json=payload)

    def delete_patient_diagnosis(self, diagnosis_uuid: str) -> None:
        self._request("DELETE", f"patientdiagnoses/{diagnosis_uuid}")

"""OpenMRS FHIR R4 HTTP client."""

from __future__ import annotations

from typing import Any

import requests

from ..emr.base_emr_client import BaseEMRClient


class FHIRClient(BaseEMRClient):
    """Minimal FHIR R4 REST client: read, search, create and update."""

    content_type = "application/fhir+json;charset=utf-8"
    accept = "application/fhir+json"

    def __init__(
        self,
        base_url: str,
        auth: tuple[str, str] | None = None,
        session: requests.Session | None = None,
        timeout: float | None = None,
    ) -> None:
        super().__init__(base_url, auth=auth, session=session, timeout=timeout)

    def read(self, resource_type: str, resource_id: str) -> dict:
        """GET a FHIR resource by type and logical ID."""
        return self._request("GET", f"{resource_type}/{resource_id}")

    def search(self, resource_type: str, params: dict[str, Any] | None = None) -> dict:
        """Run a search and return only the first Bundle page."""
        return self._request("GET", resource_type, params=params)

    def search_all(self, resource_type: str, params: dict[str, Any] | None = None) -> list[dict]:
        """Run a search and return the entries of every page.

        The server returns bounded pages; the ``next`` link of each Bundle is
        followed until a page has none.
        """
        bundle = self.search(resource_type, params)
        entries: list[dict] = list(bundle.get("entry") or [])

        next_url = next_link(bundle)
        while next_url is not None:
            bundle = self._request("GET", next_url)
            entries.extend(bundle.get("entry") or [])
            next_url = next_link(bundle)
        return entries

    def create(self, resource_type: str, resource: dict) -> dict:
        """POST a FHIR resource and return the stored resource (with its id)."""
        return self._request("POST", resource_type, json=resource)

    def update(self, resource_type: str, resource_id: str, resource: dict) -> dict:
        """PUT a full replacement of an existing FHIR resource."""
        return self._request("PUT", f"{resource_type}/{resource_id}", json=resource)


def next_link(bundle: dict) -> str | None:
    """Return the Bundle's ``next`` page URL, or None on the last page."""
    for link in bundle.get("link") or []:
        if link.get("relation") == "next" and link.get("url"):
            return link["url"]
    return None

"""Shared HTTP plumbing for the OpenMRS FHIR and legacy REST clients."""

from __future__ import annotations

from typing import Any

import requests
import structlog

from ..errors import NotFoundError, UpstreamError, UpstreamWriteError

logger = structlog.get_logger(__name__)

_WRITE_METHODS = {"POST", "PUT", "PATCH", "DELETE"}


class BaseEMRClient:
    """Basic-auth JSON client bound to one API root of the EMR."""

    content_type = "application/json"
    accept = "application/json"

    def __init__(
        self,
        base_url: str,
        auth: tuple[str, str] | None = None,
        session: requests.Session | None = None,
        timeout: float | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._session = session or requests.Session()
        if auth is not None:
            self._session.auth = auth
        self._timeout = timeout

    def close(self) -> None:
        self._session.close()

    def _url(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    def _request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json: dict | None = None,
    ) -> dict[str, Any]:
        """Send a request and return the decoded JSON body ({} when empty).

        Raises:
            NotFoundError: on HTTP 404 for a read.
            UpstreamWriteError: when a write is rejected, 404 included.
            UpstreamError: when a read fails or the EMR is unreachable.
        """
        url = self._url(path)
        headers = {"Accept": self.accept}
        if json is not None:
            headers["Content-Type"] = self.content_type
        try:
            response = self._session.request(
                method,
                url,
                params=params,
                json=json,
                headers=headers,
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            logger.error("emr_request_unreachable", method=method, url=url, error=str(exc))
            raise UpstreamError(f"EMR unreachable: {exc}") from exc

        is_write = method.upper() in _WRITE_METHODS
        if response.status_code == 404 and not is_write:
            raise NotFoundError(f"{method} {url} returned 404")

        if not response.ok:
            detail = self._error_detail(response)
            logger.error(
                "emr_request_failed",
                method=method,
                url=url,
                status_code=response.status_code,
                detail=detail,
            )
            error_cls = UpstreamWriteError if is_write else UpstreamError
            raise error_cls(
                f"{method} {url} failed with HTTP {response.status_code}: {detail}",
                status_code=response.status_code,
                detail=detail,
            )

        if not response.content:
            return {}
        return response.json()

    @staticmethod
    def _error_detail(response: requests.Response) -> str:
        """Pull a human-readable message out of a structured error payload."""
        try:
            body = response.json()
        except ValueError:
            return response.text or response.reason or ""

        if isinstance(body, dict):
            # Legacy REST: {"error": {"message": ..., "code": ...}}
            error = body.get("error")
            if isinstance(error, dict) and error.get("message"):
                return str(error["message"])
            # FHIR: OperationOutcome
            if body.get("resourceType") == "OperationOutcome":
                messages = [
                    issue.get("diagnostics") or issue.get("details", {}).get("text", "")
                    for issue in body.get("issue", [])
                ]
                return "; ".join(m for m in messages if m)
        return str(body)

"""Error taxonomy for EMR synchronization.

Every failure raised out of this package is an ``EMRAdapterError``. The
orchestrator stamps the failing step and entity onto the error through
``error_context`` so callers can report which part of a multi-step
submission broke. Earlier successful writes are never rolled back.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

import requests
import structlog

logger = structlog.get_logger(__name__)


class EMRAdapterError(Exception):
    """Base class for all adapter failures."""

    def __init__(
        self,
        message: str,
        *,
        step: str | None = None,
        entity: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.step = step
        self.entity = entity

    def __str__(self) -> str:
        if self.step and self.entity:
            return f"{self.step} failed for {self.entity}: {self.message}"
        if self.step:
            return f"{self.step} failed: {self.message}"
        return self.message


class NotFoundError(EMRAdapterError):
    """A referenced visit, patient or encounter does not exist."""


class VocabularyResolutionError(NotFoundError):
    """A free-text clinical term has no coded match in the EMR dictionary."""

    def __init__(self, term: str, kind: str = "concept", **kwargs: str | None) -> None:
        super().__init__(f"{kind.capitalize()} UUID not found for {term!r}", **kwargs)
        self.term = term
        self.kind = kind


class UpstreamError(EMRAdapterError):
    """The EMR failed a request or could not be reached."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        detail: str | None = None,
        **kwargs: str | None,
    ) -> None:
        super().__init__(message, **kwargs)
        self.status_code = status_code
        self.detail = detail


class UpstreamWriteError(UpstreamError):
    """The EMR rejected or failed a create, update or delete."""


class ValidationError(EMRAdapterError, ValueError):
    """A note submission is missing a required field or is malformed."""


@contextmanager
def error_context(step: str, entity: str | None = None) -> Iterator[None]:
    """Attach ``step``/``entity`` to any adapter error raised inside the block.

    Raw ``requests`` transport failures are translated to ``UpstreamError``.
    The innermost step wins: context already present on an error is kept.
    """
    try:
        yield
    except EMRAdapterError as exc:
        if exc.step is None:
            exc.step = step
            exc.entity = entity
            logger.error("sync_step_failed", step=step, entity=entity, error=exc.message)
        raise
    except requests.RequestException as exc:
        logger.error("sync_step_failed", step=step, entity=entity, error=str(exc))
        raise UpstreamError(str(exc), step=step, entity=entity) from exc

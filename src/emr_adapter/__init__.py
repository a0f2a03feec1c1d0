"""Synchronize structured clinical notes with an OpenMRS EMR."""

from .config import EMRSettings, load_settings
from .errors import (
    EMRAdapterError,
    NotFoundError,
    UpstreamError,
    UpstreamWriteError,
    ValidationError,
    VocabularyResolutionError,
)
from .log_config import configure_logging
from .service import EMRAdapter

__all__ = [
    "EMRAdapter",
    "EMRAdapterError",
    "EMRSettings",
    "NotFoundError",
    "UpstreamError",
    "UpstreamWriteError",
    "ValidationError",
    "VocabularyResolutionError",
    "configure_logging",
    "load_settings",
]

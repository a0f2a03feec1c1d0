"""Free-text to coded-identifier resolution against the EMR dictionary."""

from __future__ import annotations

import structlog

from ..emr.rest_client import OpenMRSRestClient
from ..errors import VocabularyResolutionError

logger = structlog.get_logger(__name__)


def normalize_drug_label(label: str) -> str:
    """Lower-case and drop all whitespace: ``"Aspirin 81 mg"`` -> ``"aspirin81mg"``."""
    return "".join(label.split()).lower()


class VocabularyResolver:
    """Resolve concept and drug names to EMR UUIDs by search-and-match.

    Each call is a fresh dictionary search; nothing is cached.
    """

    def __init__(self, rest: OpenMRSRestClient) -> None:
        self._rest = rest

    def resolve_concept(self, name: str) -> str:
        """UUID of the concept whose display equals ``name`` (case-insensitive).

        Raises:
            VocabularyResolutionError: if no search result matches exactly.
        """
        wanted = name.strip().lower()
        for candidate in self._rest.search_concepts(name):
            if (candidate.get("display") or "").lower() == wanted:
                return candidate["uuid"]
        logger.info("concept_unresolved", term=name)
        raise VocabularyResolutionError(name, kind="concept")

    def resolve_drug(self, name: str, strength: str = "") -> str:
        """UUID of the drug whose display equals ``"<name> <strength>"``.

        Comparison ignores case and all whitespace, so ``Aspirin 81mg``
        matches ``aspirin 81 mg``.

        Raises:
            VocabularyResolutionError: if no search result matches.
        """
        full_name = f"{name} {strength}".strip()
        wanted = normalize_drug_label(full_name)
        for candidate in self._rest.search_drugs(name):
            if normalize_drug_label(candidate.get("display") or "") == wanted:
                return candidate["uuid"]
        logger.info("drug_unresolved", term=full_name)
        raise VocabularyResolutionError(full_name, kind="drug")

"""Fuzzy resolver: query → prebuilt / assemble / generate strategy.

Matches the normalized query against a static alias table with rapidfuzz's
token-sort ratio (word order and small typos are tolerated). Scores are
turned into a distance in [0, 1] where 0 is an exact alias match.
"""

from __future__ import annotations

import json
from pathlib import Path

from rapidfuzz import fuzz, process

from valuemap.models.schemas import ResolutionDecision
from valuemap.utils.exceptions import LibraryAssetError
from valuemap.utils.logging import get_logger
from valuemap.utils.text_processing import normalize_query

logger = get_logger(__name__)


def load_aliases(path: Path) -> dict[str, list[str]]:
    """Read ``{subject_key: [alias, ...]}``. The subject key is always an alias of itself."""
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise LibraryAssetError(f"alias table unreadable: {path}: {exc}") from exc
    if not isinstance(raw, dict):
        raise LibraryAssetError(f"alias table must be an object: {path}")
    return {str(key): [str(alias) for alias in aliases] for key, aliases in raw.items() if isinstance(aliases, list)}


class FuzzyResolver:
    """Pure given a fixed alias table: the same query always gets the same decision."""

    def __init__(
        self,
        aliases: dict[str, list[str]],
        *,
        strict_threshold: float = 0.3,
        loose_threshold: float = 0.5,
    ) -> None:
        if strict_threshold > loose_threshold:
            raise ValueError("strict_threshold must not exceed loose_threshold")
        self._strict = strict_threshold
        self._loose = loose_threshold

        # Flat (normalized alias, subject) pairs in deterministic order; ties go to the first.
        choices: list[str] = []
        subjects: list[str] = []
        for subject in sorted(aliases):
            for alias in [subject.replace("-", " "), *aliases[subject]]:
                normalized = normalize_query(alias)
                if normalized and normalized not in choices:
                    choices.append(normalized)
                    subjects.append(subject)
        self._choices = choices
        self._subjects = subjects

    @property
    def subjects(self) -> list[str]:
        return sorted(set(self._subjects))

    def best_match(self, query: str) -> tuple[str, float] | None:
        """Best (subject, distance) for a query, or None when there is nothing to match."""
        normalized = normalize_query(query)
        if not normalized or not self._choices:
            return None
        match = process.extractOne(normalized, self._choices, scorer=fuzz.token_sort_ratio)
        if match is None:
            return None
        _, score, index = match
        return self._subjects[index], round(1.0 - score / 100.0, 4)

    def resolve(self, query: str) -> ResolutionDecision:
        match = self.best_match(query)
        if match is None:
            return ResolutionDecision(strategy="generate")

        subject, distance = match
        if distance < self._strict:
            decision = ResolutionDecision(strategy="prebuilt", library_key=subject, distance=distance)
        elif distance < self._loose:
            decision = ResolutionDecision(strategy="assemble", library_key=subject, distance=distance)
        else:
            decision = ResolutionDecision(strategy="generate", distance=distance)

        logger.debug(
            "query_resolved",
            query=query,
            strategy=decision.strategy,
            library_key=decision.library_key,
            distance=distance,
        )
        return decision

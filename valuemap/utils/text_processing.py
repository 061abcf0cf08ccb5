"""Query normalization, key derivation, and slug helpers."""

from __future__ import annotations

import re
import unicodedata

from valuemap.utils.exceptions import InvalidQueryError

_NON_ALNUM = re.compile(r"[^a-z0-9 ]")
_WHITESPACE = re.compile(r"\s+")
_SLUG_SEPARATORS = re.compile(r"[^a-z0-9]+")


def normalize_query(text: str) -> str:
    """Lowercase, trim, strip everything but ASCII letters, digits and spaces."""
    text = unicodedata.normalize("NFKD", text).encode("ascii", "ignore").decode("ascii")
    text = _NON_ALNUM.sub("", _WHITESPACE.sub(" ", text.lower()))
    return _WHITESPACE.sub(" ", text).strip()


def cache_key(query: str) -> str:
    """Canonical cache/dedup key. Distinct raw queries may share a key."""
    return normalize_query(query).replace(" ", "-")


def slugify(name: str, max_length: int = 80) -> str:
    """URL-friendly kebab-case slug, used for node ids and library keys."""
    name = unicodedata.normalize("NFKD", name).encode("ascii", "ignore").decode("ascii")
    return _SLUG_SEPARATORS.sub("-", name.lower()).strip("-")[:max_length]


def check_query(query: str, max_length: int) -> str:
    """Reject degenerate input before any collaborator call. Returns the trimmed query."""
    trimmed = (query or "").strip()
    if not trimmed:
        raise InvalidQueryError("Query must not be empty")
    if len(trimmed) > max_length:
        raise InvalidQueryError(f"Query too long (max {max_length} characters)")
    if any(unicodedata.category(ch) == "Cc" for ch in trimmed):
        raise InvalidQueryError("Query must not contain control characters")
    if not normalize_query(trimmed):
        raise InvalidQueryError("Query must contain letters or digits")
    return trimmed

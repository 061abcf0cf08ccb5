"""Unit tests for query normalization helpers."""

from __future__ import annotations

import pytest

from valuemap.utils.exceptions import InvalidQueryError
from valuemap.utils.text_processing import cache_key, check_query, normalize_query, slugify


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("Wheat Farming", "wheat farming"),
        ("  wheat\tfarming  ", "wheat farming"),
        ("Café & Bakery!", "cafe bakery"),
        ("B2B SaaS", "b2b saas"),
        ("???", ""),
    ],
)
def test_normalize_query(raw, expected):
    assert normalize_query(raw) == expected


def test_cache_key_collapses_variants():
    assert cache_key("Wheat Farming") == cache_key("wheat   farming!") == "wheat-farming"


def test_slugify():
    assert slugify("Seed & Crop Inputs") == "seed-crop-inputs"
    assert slugify("  Ünïcode  Name ") == "unicode-name"
    assert len(slugify("x" * 200)) == 80


def test_check_query_trims():
    assert check_query("  dairy  ", 200) == "dairy"


@pytest.mark.parametrize("bad", ["", "   ", "!!!", "line\nbreak", "a" * 201])
def test_check_query_rejects(bad):
    with pytest.raises(InvalidQueryError):
        check_query(bad, 200)

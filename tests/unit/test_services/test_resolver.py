"""Unit tests for the fuzzy resolver."""

from __future__ import annotations

import pytest

from valuemap.services.resolver import FuzzyResolver, load_aliases
from valuemap.utils.exceptions import LibraryAssetError


@pytest.fixture
def resolver(aliases):
    return FuzzyResolver(aliases)


def test_exact_subject_is_prebuilt(resolver):
    decision = resolver.resolve("grains")
    assert decision.strategy == "prebuilt"
    assert decision.library_key == "grains"
    assert decision.distance == 0.0


def test_alias_match_ignores_case_and_punctuation(resolver):
    decision = resolver.resolve("  Financial   Services! ")
    assert decision.strategy == "prebuilt"
    assert decision.library_key == "financial-services"


def test_word_order_is_tolerated(resolver):
    decision = resolver.resolve("farming grain")
    assert decision.strategy == "prebuilt"
    assert decision.library_key == "grains"


def test_unrelated_query_generates(resolver):
    decision = resolver.resolve("qqzxnonsense123")
    assert decision.strategy == "generate"
    assert decision.library_key is None
    assert decision.distance >= 0.5


def test_punctuation_only_query_generates(resolver):
    assert resolver.resolve("!!!").strategy == "generate"


def test_resolution_is_deterministic(resolver):
    decisions = {resolver.resolve("wheat farming").model_dump_json() for _ in range(5)}
    assert len(decisions) == 1


def test_middle_band_assembles():
    resolver = FuzzyResolver({"dairy": ["dairy farming"]}, strict_threshold=0.1, loose_threshold=0.9)
    decision = resolver.resolve("goat dairy farming")
    assert decision.strategy == "assemble"
    assert decision.library_key == "dairy"
    assert 0.1 <= decision.distance < 0.9


def test_empty_alias_table_generates():
    assert FuzzyResolver({}).resolve("grains").strategy == "generate"


def test_strict_above_loose_rejected():
    with pytest.raises(ValueError):
        FuzzyResolver({}, strict_threshold=0.6, loose_threshold=0.5)


def test_subjects_listed(resolver):
    assert "grains" in resolver.subjects
    assert resolver.subjects == sorted(resolver.subjects)


def test_load_aliases_rejects_non_object(tmp_path):
    path = tmp_path / "aliases.json"
    path.write_text("[1, 2]")
    with pytest.raises(LibraryAssetError):
        load_aliases(path)


def test_load_aliases_missing_file(tmp_path):
    with pytest.raises(LibraryAssetError):
        load_aliases(tmp_path / "missing.json")

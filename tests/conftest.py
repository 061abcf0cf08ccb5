"""Shared test fixtures."""

from __future__ import annotations

import asyncio
import re
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

_ROOT_ID = re.compile(r"\(id: ([^,]+),")


class FakeCollaborator:
    """Scripted collaborator with a call log.

    ``responses`` maps a task to a payload, an exception to raise, or a
    callable taking the prompt and returning either.
    """

    def __init__(self, responses: dict[str, Any] | None = None, *, available: bool = True, delay: float = 0.0) -> None:
        self.responses = responses or {}
        self.available = available
        self.delay = delay
        self.calls: list[tuple[str, str]] = []

    def calls_for(self, task: str) -> int:
        return sum(1 for called, _ in self.calls if called == task)

    async def complete_text(self, prompt: str, options) -> str:
        return str(await self.complete_structured(prompt, "", options))

    async def complete_structured(self, prompt: str, schema_hint: str, options) -> Any:
        self.calls.append((options.task, prompt))
        if self.delay:
            await asyncio.sleep(self.delay)
        response = self.responses.get(options.task, {})
        if callable(response):
            response = response(prompt)
        if isinstance(response, Exception):
            raise response
        return response


def detail_for(prompt: str) -> dict:
    root_id = _ROOT_ID.search(prompt).group(1)
    return {
        "children": [
            {
                "id": f"{root_id}-ops",
                "label": "Operations",
                "category": "not-a-category",
                "children": [{"id": f"{root_id}-ops-staff", "label": "Staff"}],
            },
            {"label": "Suppliers", "id": f"{root_id}-suppliers", "category": "inputs"},
        ]
    }


def scripted_responses() -> dict[str, Any]:
    return {
        "classify": {"archetype": "asset-manufacturing", "subject": "Wheat Farming", "region": "Global"},
        "structure": {
            "roots": [
                {"id": "seed-supply", "label": "Seed Supply", "category": "inputs", "tools": ["Granular"]},
                {"id": "cultivation", "label": "Cultivation", "category": "production"},
                {"id": "milling", "label": "Milling", "category": "processing"},
            ]
        },
        "detail": detail_for,
        "edges": {
            "edges": [
                {"source": "seed-supply", "target": "cultivation"},
                {"source": "cultivation", "target": "milling"},
                {"source": "cultivation", "target": "cultivation"},
                {"source": "milling", "target": "ghost"},
                {"source": "seed-supply", "target": "cultivation"},
            ]
        },
    }


@pytest.fixture(autouse=True)
def _env_setup(monkeypatch, tmp_path):
    """Set required environment variables for tests."""
    monkeypatch.setenv("OPENROUTER_API_KEY", "test-key")
    monkeypatch.setenv("REDIS_URL", "redis://localhost:6379/0")
    monkeypatch.setenv("CACHE_BACKEND", "file")
    monkeypatch.setenv("CACHE_DIR", str(tmp_path / "cache"))
    monkeypatch.setenv("LANGSMITH_API_KEY", "")
    monkeypatch.setenv("LANGCHAIN_TRACING_V2", "false")


@pytest.fixture
def settings(tmp_path):
    from valuemap.config import Settings

    return Settings(
        OPENROUTER_API_KEY="test-key",
        LANGSMITH_API_KEY="",
        LANGCHAIN_TRACING_V2=False,
        CACHE_DIR=str(tmp_path / "cache"),
    )


@pytest.fixture
def mock_registry(settings):
    """LLM registry with mocked models."""
    from valuemap.models.llm_registry import MODEL_CONFIG, LLMRegistry

    with patch.object(LLMRegistry, "__init__", lambda self, s: None):
        registry = LLMRegistry.__new__(LLMRegistry)
        registry._settings = settings
        registry._models = {}
        registry._slug_cache = {}
        registry._call_stats = {}

        mock_model = MagicMock()
        mock_model.ainvoke = AsyncMock(return_value=MagicMock(content="{}", usage_metadata=None))
        mock_model.bind.return_value = mock_model
        mock_model.model_name = "test-model"

        for task in MODEL_CONFIG:
            registry._models[task] = mock_model
            registry._call_stats[task] = {"calls": 0, "tokens": 0, "failures": 0}

        return registry


@pytest.fixture
def mock_router(mock_registry):
    from valuemap.models.model_router import ModelRouter

    return ModelRouter(mock_registry)


@pytest.fixture
def fake_collaborator() -> FakeCollaborator:
    return FakeCollaborator(scripted_responses())


@pytest.fixture
def collaborator_factory():
    return FakeCollaborator


@pytest.fixture
def responses() -> dict[str, Any]:
    """A fresh copy of the default scripted responses, safe to modify per test."""
    return scripted_responses()


@pytest.fixture
def library_dir() -> Path:
    from valuemap.config import DATA_DIR

    return DATA_DIR / "library"


@pytest.fixture
def aliases() -> dict[str, list[str]]:
    from valuemap.config import DATA_DIR
    from valuemap.services.resolver import load_aliases

    return load_aliases(DATA_DIR / "aliases.json")


@pytest.fixture
def make_orchestrator(settings, library_dir, aliases):
    """Build an orchestrator around a collaborator double with an in-memory cache."""
    from valuemap.generation.pipeline import SynthesisPipeline
    from valuemap.services.cache_service import MemoryLRU, TieredCacheStore
    from valuemap.services.library import LibraryLoader
    from valuemap.services.orchestrator import GenerationOrchestrator
    from valuemap.services.resolver import FuzzyResolver
    from valuemap.utils.rate_limiter import SlidingWindowRateLimiter

    def _make(collaborator, *, rate_limiter=None, cache=None, library=None):
        library = library or LibraryLoader(library_dir)
        return GenerationOrchestrator(
            settings=settings,
            cache=cache or TieredCacheStore(MemoryLRU(10), None),
            resolver=FuzzyResolver(aliases),
            library=library,
            rate_limiter=rate_limiter or SlidingWindowRateLimiter(100, 60.0),
            pipeline=SynthesisPipeline(collaborator, library, settings),
        )

    return _make

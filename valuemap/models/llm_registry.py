"""Per-task LLM registry via OpenRouter.

All models are accessed through OpenRouter's OpenAI-compatible API.
Each synthesis task maps to a model chosen for that task's size and cost.
"""

from __future__ import annotations

from dataclasses import dataclass

from langchain_openai import ChatOpenAI

from valuemap.config import Settings
from valuemap.utils.exceptions import CollaboratorUnavailableError
from valuemap.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ModelSpec:
    slug: str
    temperature: float
    purpose: str
    max_tokens: int | None = None


MODEL_CONFIG: dict[str, ModelSpec] = {
    "classify": ModelSpec(
        slug="openai/gpt-4.1-mini",
        temperature=0.1,
        purpose="Archetype, subject name, and region classification",
        max_tokens=500,
    ),
    "structure": ModelSpec(
        slug="openai/gpt-4.1",
        temperature=0.3,
        purpose="Enriched root segments of the value chain",
        max_tokens=8000,
    ),
    "detail": ModelSpec(
        slug="openai/gpt-4.1-mini",
        temperature=0.3,
        purpose="Bounded-depth subtree for one root segment",
        max_tokens=6000,
    ),
    "edges": ModelSpec(
        slug="openai/gpt-4.1-mini",
        temperature=0.2,
        purpose="Directed links between root segments",
        max_tokens=3000,
    ),
    "select": ModelSpec(
        slug="openai/gpt-4.1-mini",
        temperature=0.3,
        purpose="Pick and extend library roots for a partially matched query",
        max_tokens=4000,
    ),
}

FALLBACK_CHAINS: dict[str, list[str]] = {
    "openai/gpt-4.1": ["anthropic/claude-sonnet-4.6", "google/gemini-2.5-pro"],
    "openai/gpt-4.1-mini": ["google/gemini-2.5-flash", "anthropic/claude-haiku-4.5"],
}


class LLMRegistry:
    """Manages per-task LLM instances via OpenRouter with fallback support.

    Without an API key no models are built and every lookup raises
    CollaboratorUnavailableError, so callers degrade to the fallback graph.
    """

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._models: dict[str, ChatOpenAI] = {}
        self._slug_cache: dict[str, ChatOpenAI] = {}
        self._call_stats: dict[str, dict] = {}

        for task_name in MODEL_CONFIG:
            self._call_stats[task_name] = {"calls": 0, "tokens": 0, "failures": 0}

        if not settings.collaborator_configured:
            logger.warning("collaborator_not_configured", hint="Set OPENROUTER_API_KEY")
            return

        for task_name, spec in MODEL_CONFIG.items():
            self._models[task_name] = self._build_model(spec)

    @property
    def configured(self) -> bool:
        return bool(self._models)

    def _build_model(self, spec: ModelSpec) -> ChatOpenAI:
        cache_key = f"{spec.slug}:{spec.temperature}:{spec.max_tokens}"
        if cache_key in self._slug_cache:
            return self._slug_cache[cache_key]

        kwargs: dict = {
            "model": spec.slug,
            "openai_api_key": self._settings.OPENROUTER_API_KEY,
            "openai_api_base": self._settings.OPENROUTER_BASE_URL,
            "temperature": spec.temperature,
            "default_headers": {
                "HTTP-Referer": "https://valuemap.local",
                "X-Title": "ValueMap",
            },
        }
        if spec.max_tokens is not None:
            kwargs["max_tokens"] = spec.max_tokens

        model = ChatOpenAI(**kwargs)
        self._slug_cache[cache_key] = model
        return model

    def get_model(self, task: str) -> ChatOpenAI:
        """Get the primary model assigned to a task."""
        if task not in MODEL_CONFIG:
            raise KeyError(f"No model registered for task '{task}'")
        if task not in self._models:
            raise CollaboratorUnavailableError("Generation collaborator is not configured")
        return self._models[task]

    def get_fallback_chain(self, task: str) -> list[ChatOpenAI]:
        """Return all fallback models for a task, in order."""
        spec = MODEL_CONFIG.get(task)
        if spec is None or not self.configured:
            return []
        result: list[ChatOpenAI] = []
        for slug in FALLBACK_CHAINS.get(spec.slug, []):
            fb_spec = ModelSpec(
                slug=slug,
                temperature=spec.temperature,
                max_tokens=spec.max_tokens,
                purpose=f"Fallback for {task}",
            )
            result.append(self._build_model(fb_spec))
        return result

    def record_usage(self, task: str, tokens: int) -> None:
        if task in self._call_stats:
            self._call_stats[task]["calls"] += 1
            self._call_stats[task]["tokens"] += tokens

    def record_failure(self, task: str) -> None:
        if task in self._call_stats:
            self._call_stats[task]["failures"] += 1

    @property
    def stats(self) -> dict[str, dict]:
        return {task: dict(values) for task, values in self._call_stats.items()}

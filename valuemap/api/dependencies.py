"""Shared FastAPI dependency injection."""

from __future__ import annotations

from fastapi import Request

from valuemap.config import Settings
from valuemap.models.llm_registry import LLMRegistry
from valuemap.services.library import LibraryLoader
from valuemap.services.orchestrator import GenerationOrchestrator
from valuemap.services.resolver import FuzzyResolver

_settings: Settings | None = None
_registry: LLMRegistry | None = None
_orchestrator: GenerationOrchestrator | None = None


def set_settings(settings: Settings) -> None:
    global _settings
    _settings = settings


def set_registry(registry: LLMRegistry) -> None:
    global _registry
    _registry = registry


def set_orchestrator(orchestrator: GenerationOrchestrator) -> None:
    global _orchestrator
    _orchestrator = orchestrator


def get_app_settings() -> Settings:
    if _settings is None:
        raise RuntimeError("Settings not initialized")
    return _settings


def get_registry() -> LLMRegistry:
    if _registry is None:
        raise RuntimeError("LLM registry not initialized")
    return _registry


def get_orchestrator() -> GenerationOrchestrator:
    if _orchestrator is None:
        raise RuntimeError("Orchestrator not initialized")
    return _orchestrator


def get_resolver() -> FuzzyResolver:
    return get_orchestrator().resolver


def get_library() -> LibraryLoader:
    return get_orchestrator().library


def get_caller_id(request: Request) -> str:
    """Rate-limit identity: first X-Forwarded-For hop, else the client host."""
    forwarded = request.headers.get("X-Forwarded-For", "")
    first = forwarded.split(",")[0].strip()
    if first:
        return first
    return request.client.host if request.client else "anonymous"

"""Health and readiness probe endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from valuemap.api.dependencies import get_app_settings, get_registry
from valuemap.config import Settings
from valuemap.models.llm_registry import LLMRegistry

router = APIRouter(tags=["health"])


@router.get("/health")
async def health() -> dict:
    return {"status": "healthy"}


@router.get("/ready")
async def ready(
    settings: Settings = Depends(get_app_settings),
    registry: LLMRegistry = Depends(get_registry),
) -> dict:
    return {
        "status": "ready" if registry.configured else "degraded",
        "collaborator": registry.configured,
        "cache_backend": settings.CACHE_BACKEND,
    }

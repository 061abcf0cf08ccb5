"""FastAPI application factory with lifespan events."""

from __future__ import annotations

import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from valuemap.api.dependencies import set_orchestrator, set_registry, set_settings
from valuemap.api.router import api_router
from valuemap.config import get_settings
from valuemap.models.collaborator import LLMCollaborator
from valuemap.models.llm_registry import LLMRegistry
from valuemap.models.model_router import ModelRouter
from valuemap.services.orchestrator import build_orchestrator
from valuemap.utils.logging import bind_request_context, get_logger, setup_logging

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application startup and shutdown resources."""
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)
    set_settings(settings)

    # Generation collaborator
    registry = LLMRegistry(settings)
    set_registry(registry)
    collaborator = LLMCollaborator(ModelRouter(registry))

    orchestrator = build_orchestrator(settings, collaborator)
    set_orchestrator(orchestrator)

    logger.info(
        "app_started",
        collaborator=registry.configured,
        library=orchestrator.library.list_keys(),
        cache_backend=settings.CACHE_BACKEND,
    )
    yield

    # Shutdown
    await orchestrator.close()
    logger.info("app_stopped")


def create_app() -> FastAPI:
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)

    application = FastAPI(
        title="ValueMap",
        description="Industry value-chain graph generation",
        version="0.1.0",
        lifespan=lifespan,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Source", "X-Request-ID", "Retry-After"],
    )

    application.include_router(api_router)

    @application.middleware("http")
    async def request_id_middleware(request: Request, call_next) -> Response:
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
        bind_request_context(request_id=request_id)
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response

    @application.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error("unhandled_exception", error=str(exc), path=request.url.path)
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error", "type": type(exc).__name__},
        )

    return application


app = create_app()

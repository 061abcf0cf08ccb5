"""Generation endpoints: plain JSON or an SSE progress stream."""

from __future__ import annotations

import asyncio
import json

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from sse_starlette.sse import EventSourceResponse

from valuemap.api.dependencies import (
    get_app_settings,
    get_caller_id,
    get_library,
    get_orchestrator,
    get_resolver,
)
from valuemap.api.v1.schemas.generate import GenerateRequest, GenerateResponse, LibraryListing
from valuemap.config import Settings
from valuemap.models.schemas import GenerationOutcome, ProgressEvent, ResolutionDecision
from valuemap.services.library import LibraryLoader
from valuemap.services.orchestrator import GenerationOrchestrator
from valuemap.services.progress import ProgressReporter
from valuemap.services.resolver import FuzzyResolver
from valuemap.utils.exceptions import InvalidQueryError
from valuemap.utils.logging import get_logger
from valuemap.utils.text_processing import check_query

logger = get_logger(__name__)
router = APIRouter(tags=["generate"])

# Runs keep going after a stream client disconnects so their result still reaches the cache.
_background_runs: set[asyncio.Task] = set()


def _validated(query: str, settings: Settings) -> str:
    try:
        return check_query(query, settings.MAX_QUERY_LENGTH)
    except InvalidQueryError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def _outcome_response(outcome: GenerationOutcome) -> JSONResponse:
    body = GenerateResponse(data=outcome.graph.to_wire(), source=outcome.source, error=outcome.error)
    headers = {"X-Source": outcome.source}
    if outcome.ok:
        status = 200
    elif outcome.error_kind == "rate_limited":
        status = 429
        headers["Retry-After"] = str(outcome.retry_after or 1)
    else:
        status = 503
    return JSONResponse(status_code=status, content=body.model_dump(exclude_none=True), headers=headers)


def _stream(orchestrator: GenerationOrchestrator, query: str, caller_id: str, settings: Settings) -> EventSourceResponse:
    queue: asyncio.Queue[ProgressEvent | None] = asyncio.Queue()
    reporter = ProgressReporter(queue.put_nowait)

    task = asyncio.create_task(orchestrator.run(query, caller_id=caller_id, reporter=reporter))
    _background_runs.add(task)
    task.add_done_callback(_background_runs.discard)
    # Unblocks the stream if the run dies without a terminal event.
    task.add_done_callback(lambda _: queue.put_nowait(None))

    async def event_generator():
        try:
            while True:
                event = await queue.get()
                if event is None:
                    return
                name = event.step if event.is_terminal else "progress"
                yield {"event": name, "data": json.dumps(event.to_payload())}
                if event.is_terminal:
                    return
        finally:
            reporter.close()
            if not task.done():
                logger.info("stream_client_detached", query=query)

    return EventSourceResponse(event_generator(), ping=settings.STREAM_PING_SECONDS)


async def _generate(
    query: str,
    stream: bool,
    request: Request,
    orchestrator: GenerationOrchestrator,
    settings: Settings,
):
    query = _validated(query, settings)
    caller_id = get_caller_id(request)
    logger.info("generate_requested", query=query, stream=stream, caller_id=caller_id)
    if stream:
        return _stream(orchestrator, query, caller_id, settings)
    outcome = await orchestrator.run(query, caller_id=caller_id)
    return _outcome_response(outcome)


@router.get("/generate")
async def generate_get(
    request: Request,
    q: str = Query(..., description="Industry or job to map"),
    stream: bool = Query(default=False),
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
    settings: Settings = Depends(get_app_settings),
):
    return await _generate(q, stream, request, orchestrator, settings)


@router.post("/generate")
async def generate_post(
    body: GenerateRequest,
    request: Request,
    orchestrator: GenerationOrchestrator = Depends(get_orchestrator),
    settings: Settings = Depends(get_app_settings),
):
    return await _generate(body.query, body.stream, request, orchestrator, settings)


@router.get("/resolve", response_model=ResolutionDecision)
async def resolve(
    q: str = Query(...),
    resolver: FuzzyResolver = Depends(get_resolver),
    settings: Settings = Depends(get_app_settings),
) -> ResolutionDecision:
    return resolver.resolve(_validated(q, settings))


@router.get("/library", response_model=LibraryListing)
async def library(
    loader: LibraryLoader = Depends(get_library),
    resolver: FuzzyResolver = Depends(get_resolver),
) -> LibraryListing:
    return LibraryListing(keys=loader.list_keys(), aliased_subjects=resolver.subjects)

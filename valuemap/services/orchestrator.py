"""Generation orchestrator: cache → resolve → library → rate limit → coalesced synthesis.

Every run ends with exactly one terminal progress event and always hands the
caller a usable graph, falling back to the static skeleton on failure.
"""

from __future__ import annotations

from pathlib import Path

from valuemap.config import Settings
from valuemap.generation.fallback import fallback_graph
from valuemap.generation.pipeline import SynthesisPipeline
from valuemap.models.collaborator import Collaborator
from valuemap.models.schemas import GenerationOutcome, Graph, ResolutionDecision, Source
from valuemap.services.cache_service import CacheStore, build_cache_store
from valuemap.services.coalescer import RequestCoalescer
from valuemap.services.library import LibraryLoader
from valuemap.services.progress import ProgressReporter
from valuemap.services.resolver import FuzzyResolver, load_aliases
from valuemap.utils.exceptions import CollaboratorUnavailableError, LibraryAssetError, RateLimitExceededError
from valuemap.utils.logging import get_logger
from valuemap.utils.rate_limiter import RateLimiter, SlidingWindowRateLimiter
from valuemap.utils.text_processing import cache_key, check_query

logger = get_logger(__name__)


class GenerationOrchestrator:
    def __init__(
        self,
        *,
        settings: Settings,
        cache: CacheStore,
        resolver: FuzzyResolver,
        library: LibraryLoader,
        rate_limiter: RateLimiter,
        pipeline: SynthesisPipeline,
        coalescer: RequestCoalescer[Graph] | None = None,
    ) -> None:
        self._settings = settings
        self._cache = cache
        self._resolver = resolver
        self._library = library
        self._rate_limiter = rate_limiter
        self._pipeline = pipeline
        self._coalescer: RequestCoalescer[Graph] = coalescer or RequestCoalescer()

    @property
    def coalescer(self) -> RequestCoalescer[Graph]:
        return self._coalescer

    @property
    def resolver(self) -> FuzzyResolver:
        return self._resolver

    @property
    def library(self) -> LibraryLoader:
        return self._library

    async def close(self) -> None:
        await self._cache.close()

    async def run(
        self,
        query: str,
        *,
        caller_id: str = "anonymous",
        reporter: ProgressReporter | None = None,
    ) -> GenerationOutcome:
        """Produce a graph for ``query``. Raises only ``InvalidQueryError``, before any work."""
        query = check_query(query, self._settings.MAX_QUERY_LENGTH)
        reporter = reporter or ProgressReporter()

        reporter.report("cache", "Checking cache…", 1)
        entry = await self._cache.get(query)
        if entry is not None:
            logger.info("cache_hit", query=query, original_source=entry.strategy_source)
            return self._finish(reporter, entry.graph, "cache")

        reporter.report("resolving", "Resolving query…", 3)
        decision = self._resolver.resolve(query)
        logger.info(
            "query_strategy",
            query=query,
            strategy=decision.strategy,
            library_key=decision.library_key,
            distance=decision.distance,
        )

        if decision.strategy == "prebuilt" and decision.library_key:
            reporter.report("library", f"Loading {decision.library_key} library…", 4)
            graph = await self._library.load(decision.library_key)
            if graph is not None:
                await self._cache.set(query, graph, "prebuilt")
                return self._finish(reporter, graph, "prebuilt")
            logger.warning("library_fallthrough", query=query, library_key=decision.library_key)
            decision = ResolutionDecision(strategy="generate", distance=decision.distance)

        try:
            await self._rate_limiter.acquire(caller_id)
        except RateLimitExceededError as exc:
            fallback = fallback_graph(query)
            message = f"Rate limit exceeded. Try again in {exc.retry_after}s."
            reporter.error(message, fallback, "fallback", retryAfter=exc.retry_after)
            return GenerationOutcome(
                graph=fallback,
                source="fallback",
                error=message,
                error_kind="rate_limited",
                retry_after=exc.retry_after,
            )

        async def synthesize() -> Graph:
            # Runs once per key; coalesced waiters share the stored result.
            graph = await self._pipeline.run(query, decision, reporter.report)
            reporter.report("storing", "Saving to cache…", 96)
            await self._cache.set(query, graph, decision.strategy)
            return graph

        try:
            graph = await self._coalescer.dedup(cache_key(query), synthesize)
        except Exception as exc:
            unavailable = isinstance(exc, CollaboratorUnavailableError)
            logger.error(
                "generation_failed",
                query=query,
                strategy=decision.strategy,
                error=str(exc),
                exc_type=type(exc).__name__,
            )
            fallback = fallback_graph(query)
            message = "Generation service unavailable" if unavailable else f"Generation failed: {exc}"
            reporter.error(message, fallback, "fallback")
            return GenerationOutcome(
                graph=fallback,
                source="fallback",
                error=message,
                error_kind="collaborator_unavailable" if unavailable else "generation_failed",
            )

        return self._finish(reporter, graph, decision.strategy)

    @staticmethod
    def _finish(reporter: ProgressReporter, graph: Graph, source: Source) -> GenerationOutcome:
        reporter.done(graph, source)
        return GenerationOutcome(graph=graph, source=source)


def build_orchestrator(settings: Settings, collaborator: Collaborator) -> GenerationOrchestrator:
    """Wire the production components for one process."""
    library = LibraryLoader(Path(settings.LIBRARY_DIR))
    try:
        aliases = load_aliases(Path(settings.ALIASES_PATH))
    except LibraryAssetError as exc:
        logger.warning("alias_table_unavailable", error=str(exc))
        aliases = {}
    resolver = FuzzyResolver(
        aliases,
        strict_threshold=settings.RESOLVER_STRICT_THRESHOLD,
        loose_threshold=settings.RESOLVER_LOOSE_THRESHOLD,
    )
    return GenerationOrchestrator(
        settings=settings,
        cache=build_cache_store(settings),
        resolver=resolver,
        library=library,
        rate_limiter=SlidingWindowRateLimiter(settings.RATE_LIMIT_MAX_REQUESTS, settings.RATE_LIMIT_WINDOW_SECONDS),
        pipeline=SynthesisPipeline(collaborator, library, settings),
    )

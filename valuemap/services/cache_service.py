"""Two-tier graph cache: in-process LRU in front of a durable TTL store.

The fast tier is a bounded LRU; ``get`` promotes, inserting past capacity
evicts the single oldest entry. The durable tier (JSON files or Redis) keeps
entries for ``ttl_seconds``; expiry is checked lazily on read. Durable write
failures are logged and never fail the caller.
"""

from __future__ import annotations

import asyncio
import tempfile
import threading
import time
from collections import OrderedDict
from pathlib import Path
from typing import Callable, Protocol

import redis.asyncio as aioredis
from pydantic import ValidationError

from valuemap.config import Settings
from valuemap.models.schemas import CacheEntry, Graph
from valuemap.utils.logging import get_logger
from valuemap.utils.text_processing import cache_key

logger = get_logger(__name__)

Clock = Callable[[], float]


class CacheStore(Protocol):
    async def get(self, query: str) -> CacheEntry | None: ...

    async def set(self, query: str, graph: Graph, source: str) -> None: ...

    async def close(self) -> None: ...


class DurableStore(Protocol):
    async def read(self, key: str) -> CacheEntry | None: ...

    async def write(self, key: str, entry: CacheEntry) -> None: ...


class MemoryLRU:
    """Bounded LRU map, safe under concurrent access."""

    def __init__(self, max_entries: int = 100) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self._max = max_entries
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: str) -> CacheEntry | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None:
                self._entries.move_to_end(key)
            return entry

    def set(self, key: str, entry: CacheEntry) -> None:
        with self._lock:
            self._entries[key] = entry
            self._entries.move_to_end(key)
            while len(self._entries) > self._max:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("cache_evicted", key=evicted)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class FileDurableStore:
    """One ``<key>.json`` file per entry; file I/O runs off the event loop."""

    def __init__(self, directory: Path, ttl_seconds: int, *, clock: Clock = time.time) -> None:
        self._dir = Path(directory)
        self._ttl = ttl_seconds
        self._clock = clock

    def _path(self, key: str) -> Path:
        return self._dir / f"{key}.json"

    def _read_sync(self, key: str) -> CacheEntry | None:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            entry = CacheEntry.model_validate_json(path.read_text(encoding="utf-8"))
        except (OSError, ValidationError) as exc:
            logger.warning("cache_file_unreadable", path=str(path), error=str(exc))
            return None
        if self._clock() - entry.created_at > self._ttl:
            logger.debug("cache_expired", key=key)
            return None
        return entry

    def _write_sync(self, key: str, entry: CacheEntry) -> None:
        self._dir.mkdir(parents=True, exist_ok=True)
        # Unique temp name per write; concurrent writers never share a file.
        with tempfile.NamedTemporaryFile("w", dir=self._dir, suffix=".tmp", delete=False, encoding="utf-8") as tmp:
            tmp.write(entry.model_dump_json(by_alias=True, exclude_none=True))
        Path(tmp.name).replace(self._path(key))

    async def read(self, key: str) -> CacheEntry | None:
        return await asyncio.to_thread(self._read_sync, key)

    async def write(self, key: str, entry: CacheEntry) -> None:
        await asyncio.to_thread(self._write_sync, key, entry)


class RedisDurableStore:
    """Redis-backed durable tier; Redis enforces the TTL, reads double-check the age."""

    def __init__(self, redis_url: str, ttl_seconds: int, *, prefix: str = "valuemap:graph:", clock: Clock = time.time) -> None:
        self._client = aioredis.from_url(redis_url, decode_responses=True)
        self._ttl = ttl_seconds
        self._prefix = prefix
        self._clock = clock

    async def read(self, key: str) -> CacheEntry | None:
        raw = await self._client.get(self._prefix + key)
        if raw is None:
            return None
        try:
            entry = CacheEntry.model_validate_json(raw)
        except ValidationError as exc:
            logger.warning("cache_entry_invalid", key=key, error=str(exc))
            return None
        if self._clock() - entry.created_at > self._ttl:
            return None
        return entry

    async def write(self, key: str, entry: CacheEntry) -> None:
        await self._client.set(
            self._prefix + key,
            entry.model_dump_json(by_alias=True, exclude_none=True),
            ex=self._ttl,
        )

    async def close(self) -> None:
        await self._client.aclose()


class TieredCacheStore:
    """Memory LRU over a durable store, keyed by the normalized query."""

    def __init__(self, memory: MemoryLRU, durable: DurableStore | None, *, clock: Clock = time.time) -> None:
        self._memory = memory
        self._durable = durable
        self._clock = clock

    @property
    def memory(self) -> MemoryLRU:
        return self._memory

    async def get(self, query: str) -> CacheEntry | None:
        key = cache_key(query)
        if not key:
            return None

        entry = self._memory.get(key)
        if entry is not None:
            logger.debug("cache_hit", key=key, tier="memory")
            return entry

        if self._durable is None:
            return None
        try:
            entry = await self._durable.read(key)
        except Exception as exc:
            logger.warning("cache_read_failed", key=key, error=str(exc), exc_type=type(exc).__name__)
            return None
        if entry is not None:
            logger.debug("cache_hit", key=key, tier="durable")
            self._memory.set(key, entry)
        return entry

    async def set(self, query: str, graph: Graph, source: str) -> None:
        key = cache_key(query)
        if not key:
            return
        entry = CacheEntry(graph=graph, strategy_source=source, created_at=self._clock())
        self._memory.set(key, entry)

        if self._durable is None:
            return
        try:
            await self._durable.write(key, entry)
        except Exception as exc:
            logger.warning("cache_write_failed", key=key, error=str(exc), exc_type=type(exc).__name__)

    async def close(self) -> None:
        if isinstance(self._durable, RedisDurableStore):
            await self._durable.close()


def build_cache_store(settings: Settings) -> TieredCacheStore:
    memory = MemoryLRU(settings.CACHE_MEMORY_MAX_ENTRIES)
    durable: DurableStore
    if settings.CACHE_BACKEND == "redis":
        durable = RedisDurableStore(settings.REDIS_URL, settings.CACHE_TTL_SECONDS)
    else:
        durable = FileDurableStore(Path(settings.CACHE_DIR), settings.CACHE_TTL_SECONDS)
    logger.info("cache_configured", backend=settings.CACHE_BACKEND, memory_entries=settings.CACHE_MEMORY_MAX_ENTRIES)
    return TieredCacheStore(memory, durable)

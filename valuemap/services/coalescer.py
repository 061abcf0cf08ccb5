"""Request coalescing: at most one in-flight synthesis per key."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Generic, TypeVar

from valuemap.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class RequestCoalescer(Generic[T]):
    """Concurrent callers with the same key share one task.

    The registration is removed when the task settles (success or failure),
    so the next call after settlement starts fresh. Each caller awaits the
    task through ``asyncio.shield``: a caller that goes away cancels only its
    own wait, never the shared work.
    """

    def __init__(self) -> None:
        self._in_flight: dict[str, asyncio.Task[T]] = {}

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    def __contains__(self, key: object) -> bool:
        return key in self._in_flight

    async def dedup(self, key: str, factory: Callable[[], Awaitable[T]]) -> T:
        task = self._in_flight.get(key)
        if task is None:
            task = asyncio.create_task(self._run(factory), name=f"coalesced:{key}")
            self._in_flight[key] = task
            task.add_done_callback(lambda done: self._settle(key, done))
        else:
            logger.info("request_coalesced", key=key)
        return await asyncio.shield(task)

    @staticmethod
    async def _run(factory: Callable[[], Awaitable[T]]) -> T:
        return await factory()

    def _settle(self, key: str, task: asyncio.Task[T]) -> None:
        if self._in_flight.get(key) is task:
            del self._in_flight[key]
        # Mark the exception retrieved when every waiter has gone away.
        if not task.cancelled():
            task.exception()

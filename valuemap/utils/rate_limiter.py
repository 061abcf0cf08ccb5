"""Per-caller sliding-window rate limiter guarding collaborator-bound requests."""

from __future__ import annotations

import asyncio
import time
from collections import deque
from typing import Callable, Protocol

from valuemap.utils.exceptions import RateLimitExceededError
from valuemap.utils.logging import get_logger

logger = get_logger(__name__)


class RateLimiter(Protocol):
    async def acquire(self, caller_id: str) -> None:
        """Admit one request for the caller or raise RateLimitExceededError."""
        ...


class SlidingWindowRateLimiter:
    """In-process sliding window: at most ``max_requests`` per ``window_seconds``.

    The check and the record happen under one lock, so concurrent requests
    from the same caller cannot both be admitted past the quota. Callers with
    no request inside the window are dropped, at most one sweep per window.
    For limiting across processes, a Redis-backed implementation can replace
    this.
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._max_requests = max_requests
        self._window = window_seconds
        self._clock = clock
        self._history: dict[str, deque[float]] = {}
        self._last_sweep = clock()
        self._lock = asyncio.Lock()

    @property
    def tracked_callers(self) -> int:
        return len(self._history)

    async def acquire(self, caller_id: str) -> None:
        async with self._lock:
            now = self._clock()
            if now - self._last_sweep >= self._window:
                self._sweep(now)

            history = self._history.setdefault(caller_id, deque())
            self._evict(history, now)

            if len(history) >= self._max_requests:
                retry_after = int(self._window - (now - history[0])) + 1
                logger.warning(
                    "rate_limit_exceeded",
                    caller_id=caller_id,
                    current_count=len(history),
                    max_requests=self._max_requests,
                    retry_after=retry_after,
                )
                raise RateLimitExceededError(caller_id, retry_after)

            history.append(now)

    def remaining(self, caller_id: str) -> int:
        history = self._history.get(caller_id)
        if history is None:
            return self._max_requests
        self._evict(history, self._clock())
        return max(0, self._max_requests - len(history))

    def _evict(self, history: deque[float], now: float) -> None:
        cutoff = now - self._window
        while history and history[0] <= cutoff:
            history.popleft()

    def _sweep(self, now: float) -> None:
        cutoff = now - self._window
        stale = [caller for caller, history in self._history.items() if not history or history[-1] <= cutoff]
        for caller in stale:
            del self._history[caller]
        self._last_sweep = now
        if stale:
            logger.debug("rate_limit_callers_swept", removed=len(stale), tracked=len(self._history))

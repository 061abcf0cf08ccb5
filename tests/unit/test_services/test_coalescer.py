"""Unit tests for request coalescing."""

from __future__ import annotations

import asyncio

import pytest

from valuemap.services.coalescer import RequestCoalescer


@pytest.mark.asyncio
async def test_concurrent_callers_share_one_run():
    coalescer: RequestCoalescer[dict] = RequestCoalescer()
    runs = 0

    async def work() -> dict:
        nonlocal runs
        runs += 1
        await asyncio.sleep(0.01)
        return {"value": 42}

    results = await asyncio.gather(*(coalescer.dedup("k", work) for _ in range(5)))

    assert runs == 1
    assert all(result is results[0] for result in results)
    assert "k" not in coalescer
    assert coalescer.in_flight == 0


@pytest.mark.asyncio
async def test_failure_reaches_every_waiter_and_clears_registration():
    coalescer: RequestCoalescer[int] = RequestCoalescer()

    async def boom() -> int:
        await asyncio.sleep(0.01)
        raise RuntimeError("synthesis failed")

    results = await asyncio.gather(
        coalescer.dedup("k", boom), coalescer.dedup("k", boom), return_exceptions=True
    )

    assert all(isinstance(result, RuntimeError) for result in results)
    assert "k" not in coalescer


@pytest.mark.asyncio
async def test_call_after_settlement_starts_fresh():
    coalescer: RequestCoalescer[int] = RequestCoalescer()
    counter = iter(range(10))

    async def work() -> int:
        return next(counter)

    assert await coalescer.dedup("k", work) == 0
    assert await coalescer.dedup("k", work) == 1


@pytest.mark.asyncio
async def test_distinct_keys_run_independently():
    coalescer: RequestCoalescer[str] = RequestCoalescer()

    async def work(value: str) -> str:
        await asyncio.sleep(0.01)
        return value

    a, b = await asyncio.gather(coalescer.dedup("a", lambda: work("a")), coalescer.dedup("b", lambda: work("b")))

    assert (a, b) == ("a", "b")


@pytest.mark.asyncio
async def test_cancelled_waiter_does_not_cancel_shared_work():
    coalescer: RequestCoalescer[str] = RequestCoalescer()
    release = asyncio.Event()

    async def work() -> str:
        await release.wait()
        return "done"

    first = asyncio.create_task(coalescer.dedup("k", work))
    second = asyncio.create_task(coalescer.dedup("k", work))
    await asyncio.sleep(0)
    first.cancel()
    await asyncio.sleep(0)
    release.set()

    assert await second == "done"
    with pytest.raises(asyncio.CancelledError):
        await first

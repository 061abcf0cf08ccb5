"""Integration tests for the FastAPI application."""

from __future__ import annotations

import asyncio
import json
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from valuemap.api.dependencies import set_orchestrator
from valuemap.api.v1.generate import _background_runs, _stream
from valuemap.services.cache_service import MemoryLRU, TieredCacheStore
from valuemap.utils.exceptions import RateLimitExceededError


@pytest.fixture
def client_for(make_orchestrator):
    """Create test clients whose orchestrator wraps the given collaborator double."""
    clients = []

    def _client(collaborator, **kwargs):
        with patch("valuemap.main.LLMRegistry") as MockRegistry:
            MockRegistry.return_value.configured = collaborator.available

            from valuemap.main import create_app

            client = TestClient(create_app())
            client.__enter__()
            clients.append(client)
        set_orchestrator(make_orchestrator(collaborator, **kwargs))
        return client

    yield _client
    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture
def client(client_for, fake_collaborator):
    return client_for(fake_collaborator)


def _sse_events(body: str) -> list[tuple[str, dict]]:
    events = []
    name, data = None, None
    for line in body.splitlines():
        if line.startswith("event:"):
            name = line.split(":", 1)[1].strip()
        elif line.startswith("data:"):
            data = json.loads(line.split(":", 1)[1].strip())
        elif not line.strip() and name is not None:
            events.append((name, data))
            name, data = None, None
    if name is not None:
        events.append((name, data))
    return events


def test_health_endpoint(client):
    resp = client.get("/api/v1/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "healthy"


def test_ready_reports_degraded_without_collaborator(client_for, collaborator_factory):
    resp = client_for(collaborator_factory(available=False)).get("/api/v1/ready")
    assert resp.status_code == 200
    assert resp.json()["status"] == "degraded"
    assert resp.json()["cache_backend"] == "file"


def test_generate_prebuilt(client, fake_collaborator):
    resp = client.get("/api/v1/generate", params={"q": "grains"})

    assert resp.status_code == 200
    assert resp.headers["X-Source"] == "prebuilt"
    assert "X-Request-ID" in resp.headers
    body = resp.json()
    assert body["source"] == "prebuilt"
    assert len(body["data"]["nodes"]) == 9
    assert fake_collaborator.calls == []


def test_generate_post_synthesizes(client):
    resp = client.post("/api/v1/generate", json={"query": "hydroponic lettuce"})

    assert resp.status_code == 200
    assert resp.headers["X-Source"] == "generate"
    nodes = resp.json()["data"]["nodes"]
    assert [node["id"] for node in nodes] == ["seed-supply", "cultivation", "milling"]
    assert nodes[0]["children"]


def test_generate_second_call_hits_cache(client):
    client.get("/api/v1/generate", params={"q": "hydroponic lettuce"})
    resp = client.get("/api/v1/generate", params={"q": "Hydroponic Lettuce"})

    assert resp.headers["X-Source"] == "cache"


@pytest.mark.parametrize("query", ["", "   ", "%%%"])
def test_generate_rejects_invalid_query(client, query):
    resp = client.get("/api/v1/generate", params={"q": query})
    assert resp.status_code == 400


def test_generate_rate_limited(client_for, fake_collaborator):
    limiter = AsyncMock()
    limiter.acquire.side_effect = RateLimitExceededError("testclient", 42)
    client = client_for(fake_collaborator, rate_limiter=limiter)

    resp = client.get("/api/v1/generate", params={"q": "hydroponic lettuce"})

    assert resp.status_code == 429
    assert resp.headers["Retry-After"] == "42"
    assert resp.headers["X-Source"] == "fallback"
    assert resp.json()["data"]["nodes"]
    assert "Rate limit" in resp.json()["error"]


def test_generate_collaborator_unavailable(client_for, collaborator_factory, responses):
    client = client_for(collaborator_factory(responses, available=False))

    resp = client.get("/api/v1/generate", params={"q": "hydroponic lettuce"})

    assert resp.status_code == 503
    assert resp.headers["X-Source"] == "fallback"
    assert len(resp.json()["data"]["nodes"]) == 8


def test_caller_id_from_forwarded_header(client_for, fake_collaborator):
    limiter = AsyncMock()
    client = client_for(fake_collaborator, rate_limiter=limiter)

    client.get(
        "/api/v1/generate",
        params={"q": "hydroponic lettuce"},
        headers={"X-Forwarded-For": "203.0.113.7, 10.0.0.1"},
    )

    limiter.acquire.assert_awaited_once_with("203.0.113.7")


def test_generate_stream_events(client):
    resp = client.get("/api/v1/generate", params={"q": "hydroponic lettuce", "stream": "true"})

    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/event-stream")
    events = _sse_events(resp.text)
    names = [name for name, _ in events]
    assert names[-1] == "done"
    assert names.count("done") == 1
    assert set(names[:-1]) == {"progress"}

    steps = [data["step"] for _, data in events]
    assert steps[:2] == ["cache", "resolving"]
    assert "classify" in steps and "edges-done" in steps
    pcts = [data["pct"] for _, data in events]
    assert pcts == sorted(pcts)

    done = events[-1][1]
    assert done["pct"] == 100
    assert done["source"] == "generate"
    assert len(done["data"]["nodes"]) == 3


def test_generate_stream_error_event(client_for, collaborator_factory, responses):
    client = client_for(collaborator_factory(responses, available=False))

    resp = client.post("/api/v1/generate", json={"query": "hydroponic lettuce", "stream": True})

    events = _sse_events(resp.text)
    assert events[-1][0] == "error"
    assert events[-1][1]["source"] == "fallback"
    assert events[-1][1]["data"]["nodes"]


def test_resolve_endpoint(client):
    resp = client.get("/api/v1/resolve", params={"q": "Grain Farming"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["strategy"] == "prebuilt"
    assert body["libraryKey"] == "grains"


def test_library_endpoint(client):
    resp = client.get("/api/v1/library")

    assert resp.status_code == 200
    body = resp.json()
    assert "grains" in body["keys"]
    assert "dairy" in body["aliased_subjects"]


@pytest.mark.asyncio
async def test_stream_disconnect_keeps_run_alive(make_orchestrator, collaborator_factory, responses, settings):
    cache = TieredCacheStore(MemoryLRU(10), None)
    orchestrator = make_orchestrator(collaborator_factory(responses, delay=0.02), cache=cache)

    response = _stream(orchestrator, "hydroponic lettuce", "testclient", settings)
    events = response.body_iterator
    first = await events.__anext__()
    # Client goes away after the first event.
    await events.aclose()

    assert json.loads(first["data"])["step"] == "cache"
    await asyncio.gather(*list(_background_runs))
    entry = await cache.get("hydroponic lettuce")
    assert entry is not None
    assert entry.strategy_source == "generate"

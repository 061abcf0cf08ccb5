"""Verify API keys, the cache backend and packaged library assets."""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import httpx

from valuemap.config import get_settings
from valuemap.models.llm_registry import FALLBACK_CHAINS, MODEL_CONFIG
from valuemap.services.library import LibraryLoader
from valuemap.services.resolver import load_aliases
from valuemap.utils.exceptions import LibraryAssetError

settings = get_settings()


async def check_redis() -> bool:
    if settings.CACHE_BACKEND != "redis":
        print("[SKIP] Redis: CACHE_BACKEND is 'file'")
        return True
    try:
        from redis.asyncio import from_url

        client = from_url(settings.REDIS_URL)
        pong = await client.ping()
        assert pong is True
        await client.aclose()
        print("[OK] Redis connection successful")
        return True
    except Exception as exc:
        print(f"[FAIL] Redis: {exc}")
        return False


async def check_cache_dir() -> bool:
    if settings.CACHE_BACKEND != "file":
        return True
    cache_dir = Path(settings.CACHE_DIR)
    probe = cache_dir / ".write-probe"
    try:
        cache_dir.mkdir(parents=True, exist_ok=True)
        probe.write_text("ok", encoding="utf-8")
        probe.unlink()
        print(f"[OK] Cache directory writable: {cache_dir}")
        return True
    except OSError as exc:
        print(f"[FAIL] Cache directory {cache_dir}: {exc}")
        return False


async def check_openrouter() -> bool:
    if not settings.OPENROUTER_API_KEY:
        print("[FAIL] OpenRouter: OPENROUTER_API_KEY not set (every query will get the fallback skeleton)")
        return False
    try:
        async with httpx.AsyncClient() as client:
            resp = await client.get(
                f"{settings.OPENROUTER_BASE_URL}/models",
                headers={"Authorization": f"Bearer {settings.OPENROUTER_API_KEY}"},
                timeout=15,
            )
            resp.raise_for_status()
            models = {m["id"] for m in resp.json().get("data", [])}
            needed = sorted({spec.slug for spec in MODEL_CONFIG.values()} | {
                slug for chain in FALLBACK_CHAINS.values() for slug in chain
            })
            for slug in needed:
                found = slug in models
                status = "OK" if found else "WARN"
                print(f"  [{status}] Model {slug}: {'available' if found else 'not found'}")
        print("[OK] OpenRouter API accessible")
        return True
    except Exception as exc:
        print(f"[FAIL] OpenRouter: {exc}")
        return False


async def check_library() -> bool:
    try:
        aliases = load_aliases(Path(settings.ALIASES_PATH))
    except LibraryAssetError as exc:
        print(f"[FAIL] Alias table: {exc}")
        return False

    loader = LibraryLoader(Path(settings.LIBRARY_DIR))
    ok = True
    for key in sorted(aliases):
        if not loader.path_for(key).exists():
            print(f"  [INFO] {key}: no library asset (served by synthesis)")
            continue
        graph = await loader.load(key)
        if graph is None:
            print(f"  [FAIL] {key}: library asset does not load")
            ok = False
        else:
            print(f"  [OK] {key}: {len(graph.nodes)} roots, {graph.node_count()} nodes, {len(graph.edges)} edges")
    print(f"[{'OK' if ok else 'FAIL'}] Library: {len(aliases)} aliased subjects")
    return ok


async def check_langsmith() -> bool:
    if not settings.LANGSMITH_API_KEY:
        print("[SKIP] LangSmith: LANGSMITH_API_KEY not set (optional)")
        return True
    try:
        async with httpx.AsyncClient() as client:
            resp = await client.get(
                "https://api.smith.langchain.com/info",
                headers={"x-api-key": settings.LANGSMITH_API_KEY},
                timeout=10,
            )
            resp.raise_for_status()
        print("[OK] LangSmith API accessible")
        return True
    except Exception as exc:
        print(f"[FAIL] LangSmith: {exc}")
        return False


async def main() -> None:
    print("=" * 50)
    print("ValueMap: Setup Verification")
    print("=" * 50)

    results = await asyncio.gather(
        check_redis(),
        check_cache_dir(),
        check_openrouter(),
        check_library(),
        check_langsmith(),
    )

    print("=" * 50)
    passed = sum(results)
    total = len(results)
    print(f"Results: {passed}/{total} checks passed")
    if not all(results):
        print("Some checks failed. Review output above.")
        sys.exit(1)
    print("All systems operational.")


if __name__ == "__main__":
    asyncio.run(main())

"""Pre-populate the graph cache by running the orchestrator for a list of queries.

Usage:
    python scripts/warm_cache.py "wheat farming" "dairy" --file queries.txt
"""

from __future__ import annotations

import argparse
import asyncio
from pathlib import Path

from valuemap.config import get_settings
from valuemap.models.collaborator import LLMCollaborator
from valuemap.models.llm_registry import LLMRegistry
from valuemap.models.model_router import ModelRouter
from valuemap.services.orchestrator import build_orchestrator
from valuemap.utils.exceptions import InvalidQueryError
from valuemap.utils.logging import setup_logging


async def main() -> None:
    parser = argparse.ArgumentParser(description="Warm the graph cache")
    parser.add_argument("queries", nargs="*", help="Queries to generate")
    parser.add_argument("--file", type=Path, default=None, help="File with one query per line")
    args = parser.parse_args()

    queries = list(args.queries)
    if args.file:
        queries += [line.strip() for line in args.file.read_text(encoding="utf-8").splitlines() if line.strip()]
    if not queries:
        parser.error("no queries given")

    setup_logging(log_level="INFO", log_format="console")
    settings = get_settings()
    collaborator = LLMCollaborator(ModelRouter(LLMRegistry(settings)))
    orchestrator = build_orchestrator(settings, collaborator)

    failed = 0
    try:
        for query in queries:
            try:
                outcome = await orchestrator.run(query, caller_id="warm-cache")
                if outcome.error_kind == "rate_limited":
                    print(f"  rate limited, waiting {outcome.retry_after}s")
                    await asyncio.sleep(outcome.retry_after or 1)
                    outcome = await orchestrator.run(query, caller_id="warm-cache")
            except InvalidQueryError as exc:
                print(f"[SKIP] {query!r}: {exc}")
                continue
            status = "OK" if outcome.ok else "FAIL"
            failed += not outcome.ok
            print(f"[{status}] {query!r}: source={outcome.source} roots={len(outcome.graph.nodes)}")
    finally:
        await orchestrator.close()

    print(f"Warmed {len(queries) - failed}/{len(queries)} queries.")


if __name__ == "__main__":
    asyncio.run(main())

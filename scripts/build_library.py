"""Generate a library asset for a subject and register its aliases.

Usage:
    python scripts/build_library.py dairy --query "dairy farming" --alias milk --alias cheese
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path

from valuemap.config import get_settings
from valuemap.generation.pipeline import SynthesisPipeline
from valuemap.models.collaborator import LLMCollaborator
from valuemap.models.llm_registry import LLMRegistry
from valuemap.models.model_router import ModelRouter
from valuemap.models.schemas import ResolutionDecision
from valuemap.services.library import LibraryLoader
from valuemap.utils.exceptions import CollaboratorUnavailableError
from valuemap.utils.logging import setup_logging
from valuemap.utils.text_processing import slugify


def _print_progress(step: str, message: str, pct: int) -> None:
    print(f"  [{pct:3d}%] {step}: {message}")


def register_aliases(path: Path, key: str, aliases: list[str]) -> None:
    table = json.loads(path.read_text(encoding="utf-8")) if path.exists() else {}
    existing = table.get(key, [])
    for alias in aliases:
        if alias not in existing:
            existing.append(alias)
    table[key] = existing
    path.write_text(json.dumps(table, indent=2) + "\n", encoding="utf-8")


async def main() -> None:
    parser = argparse.ArgumentParser(description="Build a prebuilt library graph")
    parser.add_argument("subject", help="Subject name; its slug becomes the library key")
    parser.add_argument("--query", default=None, help="Query sent to the pipeline (defaults to the subject)")
    parser.add_argument("--alias", action="append", default=[], help="Extra alias (repeatable)")
    parser.add_argument("--force", action="store_true", help="Overwrite an existing asset")
    args = parser.parse_args()

    setup_logging(log_level="INFO", log_format="console")
    settings = get_settings()

    key = slugify(args.subject)
    library = LibraryLoader(Path(settings.LIBRARY_DIR))
    if library.path_for(key).exists() and not args.force:
        print(f"Library asset '{key}' already exists (use --force to overwrite).")
        sys.exit(1)

    collaborator = LLMCollaborator(ModelRouter(LLMRegistry(settings)))
    pipeline = SynthesisPipeline(collaborator, library, settings)

    query = args.query or args.subject
    print(f"Building '{key}' from query: {query}")
    try:
        graph = await pipeline.run(query, ResolutionDecision(strategy="generate"), _print_progress)
    except CollaboratorUnavailableError as exc:
        print(f"Collaborator unavailable: {exc}")
        sys.exit(1)

    if not graph.nodes:
        print("Pipeline produced no root segments; nothing written.")
        sys.exit(1)

    path = library.save(key, graph)
    register_aliases(Path(settings.ALIASES_PATH), key, [args.subject.lower(), *args.alias])
    print(f"Wrote {path}")
    print(f"  Roots: {len(graph.nodes)}")
    print(f"  Nodes: {graph.node_count()}")
    print(f"  Edges: {len(graph.edges)}")


if __name__ == "__main__":
    asyncio.run(main())

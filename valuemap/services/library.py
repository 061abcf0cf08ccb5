"""Library assets: prebuilt graphs stored as ``<key>.json``."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

from valuemap.generation.validation import validate_and_repair, validate_payload
from valuemap.models.schemas import Graph
from valuemap.utils.exceptions import LibraryAssetError, MalformedOutputError
from valuemap.utils.logging import get_logger

logger = get_logger(__name__)


class LibraryLoader:
    """Loads and memoizes library graphs. Missing or corrupt assets load as ``None``."""

    def __init__(self, library_dir: Path) -> None:
        self._dir = Path(library_dir)
        self._loaded: dict[str, Graph] = {}

    @property
    def directory(self) -> Path:
        return self._dir

    def list_keys(self) -> list[str]:
        if not self._dir.is_dir():
            return []
        return sorted(path.stem for path in self._dir.glob("*.json"))

    def path_for(self, key: str) -> Path:
        return self._dir / f"{key}.json"

    async def load(self, key: str) -> Graph | None:
        if key in self._loaded:
            return self._loaded[key]
        try:
            graph = await asyncio.to_thread(self._read, key)
        except LibraryAssetError as exc:
            logger.warning("library_asset_invalid", key=key, error=str(exc))
            return None
        if graph is None:
            logger.debug("library_asset_missing", key=key)
            return None
        self._loaded[key] = graph
        return graph

    def _read(self, key: str) -> Graph | None:
        path = self.path_for(key)
        if not path.is_file():
            return None
        try:
            graph = validate_payload(json.loads(path.read_text(encoding="utf-8")))
        except (OSError, ValueError, MalformedOutputError) as exc:
            raise LibraryAssetError(f"{path.name}: {exc}") from exc
        graph, issues = validate_and_repair(graph)
        if issues:
            logger.warning("library_asset_repaired", key=key, issues=len(issues))
        return graph

    def save(self, key: str, graph: Graph) -> Path:
        """Write a library asset (used by the library build script)."""
        self._dir.mkdir(parents=True, exist_ok=True)
        path = self.path_for(key)
        path.write_text(graph.model_dump_json(by_alias=True, exclude_none=True, indent=2), encoding="utf-8")
        self._loaded.pop(key, None)
        return path

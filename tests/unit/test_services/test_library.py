"""Unit tests for the library loader."""

from __future__ import annotations

import json

import pytest

from valuemap.models.schemas import Graph, GraphNode
from valuemap.services.library import LibraryLoader


def test_packaged_library_keys(library_dir):
    keys = LibraryLoader(library_dir).list_keys()
    assert {"grains", "financial-services"} <= set(keys)


@pytest.mark.asyncio
async def test_load_packaged_graph(library_dir):
    graph = await LibraryLoader(library_dir).load("grains")

    assert graph is not None
    assert graph.archetype == "asset-manufacturing"
    assert len(graph.nodes) == 9
    node_ids = {node.id for node in graph.nodes}
    assert all(edge.source in node_ids and edge.target in node_ids for edge in graph.edges)


@pytest.mark.asyncio
async def test_load_is_memoized(library_dir):
    loader = LibraryLoader(library_dir)
    assert await loader.load("grains") is await loader.load("grains")


@pytest.mark.asyncio
async def test_missing_asset_is_none(tmp_path):
    assert await LibraryLoader(tmp_path).load("dairy") is None


@pytest.mark.asyncio
async def test_corrupt_asset_is_none(tmp_path):
    (tmp_path / "dairy.json").write_text("{ definitely not json")
    assert await LibraryLoader(tmp_path).load("dairy") is None


@pytest.mark.asyncio
async def test_asset_is_repaired_on_load(tmp_path):
    (tmp_path / "dairy.json").write_text(json.dumps({
        "subject": "Dairy",
        "nodes": [
            {"id": "herd", "label": "Herd", "category": "production"},
            {"id": "herd", "label": "Duplicate herd", "category": "production"},
            {"id": "milk-processing", "label": "Milk Processing", "category": "processing"},
        ],
        "edges": [
            {"source": "herd", "target": "milk-processing"},
            {"source": "herd", "target": "nowhere"},
        ],
    }))

    graph = await LibraryLoader(tmp_path).load("dairy")

    assert [node.id for node in graph.nodes] == ["herd", "herd-2", "milk-processing"]
    assert len(graph.edges) == 1


@pytest.mark.asyncio
async def test_save_then_load(tmp_path):
    loader = LibraryLoader(tmp_path / "library")
    graph = Graph(subject="Dairy", nodes=[GraphNode(id="herd", label="Herd", category="production")])

    path = loader.save("dairy", graph)

    assert path.exists()
    assert loader.list_keys() == ["dairy"]
    assert (await loader.load("dairy")).nodes[0].id == "herd"

"""Arena + index view over a graph tree.

Nodes live in a flat table keyed by id; parent/child links are id lists.
Patching a node by id is a table update instead of a recursive rewrite, and
``to_graph`` rebuilds an immutable ``Graph`` from the table.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from valuemap.models.schemas import Edge, Graph, GraphNode


@dataclass
class IndexedNode:
    node: GraphNode  # children stripped; structure lives in ``children``
    parent: str | None
    children: list[str] = field(default_factory=list)
    depth: int = 0


class GraphIndex:
    """Flat id → node table for one graph. Duplicate ids keep the first occurrence."""

    def __init__(self, graph: Graph) -> None:
        self._subject = graph.subject
        self._archetype = graph.archetype
        self._region = graph.region
        self._edges = list(graph.edges)
        self._table: dict[str, IndexedNode] = {}
        self._roots: list[str] = []
        self.duplicates: list[str] = []

        for root in graph.nodes:
            if self._add(root, parent=None, depth=0):
                self._roots.append(root.id)

    def _add(self, node: GraphNode, parent: str | None, depth: int) -> bool:
        if node.id in self._table:
            self.duplicates.append(node.id)
            return False
        entry = IndexedNode(node=node.model_copy(update={"children": []}), parent=parent, depth=depth)
        self._table[node.id] = entry
        for child in node.children:
            if self._add(child, parent=node.id, depth=depth + 1):
                entry.children.append(child.id)
        return True

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._table

    def __len__(self) -> int:
        return len(self._table)

    @property
    def ids(self) -> set[str]:
        return set(self._table)

    @property
    def root_ids(self) -> list[str]:
        return list(self._roots)

    def get(self, node_id: str) -> GraphNode | None:
        entry = self._table.get(node_id)
        return entry.node if entry else None

    def parent_of(self, node_id: str) -> str | None:
        return self._table[node_id].parent

    def children_of(self, node_id: str) -> list[str]:
        return list(self._table[node_id].children)

    def depth_of(self, node_id: str) -> int:
        return self._table[node_id].depth

    def patch(self, node_id: str, **fields: Any) -> GraphNode:
        """Replace scalar/list fields of one node. Structure (id, children) is not patchable."""
        if "id" in fields or "children" in fields:
            raise ValueError("id and children cannot be patched")
        entry = self._table.get(node_id)
        if entry is None:
            raise KeyError(node_id)
        entry.node = GraphNode.model_validate({**entry.node.model_dump(), **fields})
        return entry.node

    def _build(self, node_id: str) -> GraphNode:
        entry = self._table[node_id]
        children = [self._build(child_id) for child_id in entry.children]
        return entry.node.model_copy(update={"children": children})

    def to_graph(self, edges: list[Edge] | None = None) -> Graph:
        return Graph(
            subject=self._subject,
            archetype=self._archetype,
            region=self._region,
            nodes=[self._build(root_id) for root_id in self._roots],
            edges=self._edges if edges is None else edges,
        )

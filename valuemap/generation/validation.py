"""Boundary validation and repair for untrusted collaborator output.

Collaborator JSON is treated as adversarial: shapes are coerced, unknown
categories fall back to a safe value, and graph-level invariants (unique ids,
no self-loops, no dangling or duplicate edges) are restored by repair rather
than by rejecting the whole run.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Literal

from pydantic import ValidationError

from valuemap.models.graph_index import GraphIndex
from valuemap.models.schemas import (
    ARCHETYPES,
    CATEGORIES,
    DEFAULT_CATEGORY,
    Category,
    Edge,
    Graph,
    GraphNode,
)
from valuemap.utils.exceptions import MalformedOutputError
from valuemap.utils.logging import get_logger
from valuemap.utils.text_processing import slugify

logger = get_logger(__name__)

_CODE_BLOCK = re.compile(r"```(?:json)?\s*\n?([\s\S]*?)\n?\s*```")
_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


# ── Parsing ──────────────────────────────────────────────────────────


def parse_json_payload(raw: str) -> Any:
    """Parse model output as JSON: direct, then fenced code block, then first {...} span."""
    if not isinstance(raw, str) or not raw.strip():
        raise MalformedOutputError("Empty collaborator response")

    candidates = [raw]
    block = _CODE_BLOCK.search(raw)
    if block and block.group(1):
        candidates.append(block.group(1))
    span = _JSON_OBJECT.search(raw)
    if span:
        candidates.append(span.group(0))

    for candidate in candidates:
        try:
            return json.loads(candidate)
        except json.JSONDecodeError:
            continue

    raise MalformedOutputError(f"Could not parse JSON from response ({len(raw)} chars)")


# ── Node coercion ────────────────────────────────────────────────────


def sanitize_category(value: Any, fallback: Category = DEFAULT_CATEGORY) -> Category:
    if isinstance(value, str):
        candidate = value.strip().lower()
        if candidate in CATEGORIES:
            return candidate  # type: ignore[return-value]
    return fallback


def _opt_str(value: Any) -> str | None:
    if isinstance(value, str):
        value = value.strip()
        return value or None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


def _str_list(value: Any) -> list[str]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        return []
    return [text for text in (_opt_str(item) for item in value) if text]


def coerce_nodes(
    raw: Any,
    fallback_category: Category = DEFAULT_CATEGORY,
    levels: int | None = None,
) -> list[GraphNode]:
    """Build GraphNodes from untrusted dicts.

    ``levels`` is how many tree levels to keep counting the current one
    (``None`` keeps everything). Children inherit their parent's category as
    the fallback for unrecognized values.
    """
    if not isinstance(raw, list):
        return []

    nodes: list[GraphNode] = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        label = _opt_str(item.get("label")) or _opt_str(item.get("name"))
        node_id = _opt_str(item.get("id")) or (slugify(label) if label else None)
        if not node_id:
            continue

        category = sanitize_category(item.get("category"), fallback_category)
        children: list[GraphNode] = []
        if levels is None or levels > 1:
            raw_children = item.get("children", item.get("subNodes"))
            children = coerce_nodes(raw_children, category, None if levels is None else levels - 1)

        nodes.append(
            GraphNode(
                id=node_id,
                label=label or node_id,
                category=category,
                description=_opt_str(item.get("description")),
                objective=_opt_str(item.get("objective")),
                revenue_model=_opt_str(item.get("revenueModel", item.get("revenue_model"))),
                tools=_str_list(item.get("tools", item.get("keyTools"))),
                actors=_str_list(item.get("actors", item.get("keyActors"))),
                pain_points=_str_list(item.get("painPoints", item.get("pain_points"))),
                cost_drivers=_str_list(item.get("costDrivers", item.get("cost_drivers"))),
                regulatory_notes=_opt_str(item.get("regulatoryNotes", item.get("regulatory_notes"))),
                children=children,
            )
        )
    return nodes


def coerce_edges(raw: Any) -> list[Edge]:
    if not isinstance(raw, list):
        return []
    edges: list[Edge] = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        source, target = _opt_str(item.get("source")), _opt_str(item.get("target"))
        if source and target:
            edges.append(Edge(source=source, target=target))
    return edges


def filter_edges(edges: list[Edge], valid_ids: set[str]) -> list[Edge]:
    """Drop self-loops, edges with unknown endpoints, and repeated (source, target) pairs."""
    seen: set[tuple[str, str]] = set()
    kept: list[Edge] = []
    for edge in edges:
        pair = (edge.source, edge.target)
        if edge.source == edge.target or edge.source not in valid_ids or edge.target not in valid_ids:
            continue
        if pair in seen:
            continue
        seen.add(pair)
        kept.append(edge)
    return kept


# ── Graph-level validation ───────────────────────────────────────────


@dataclass(frozen=True)
class GraphIssue:
    kind: Literal["duplicate_id", "self_loop", "dangling_edge", "duplicate_edge"]
    detail: str


def find_graph_issues(graph: Graph) -> list[GraphIssue]:
    index = GraphIndex(graph)
    issues = [GraphIssue("duplicate_id", node_id) for node_id in index.duplicates]

    seen: set[tuple[str, str]] = set()
    for edge in graph.edges:
        label = f"{edge.source}->{edge.target}"
        if edge.source == edge.target:
            issues.append(GraphIssue("self_loop", label))
        elif edge.source not in index or edge.target not in index:
            issues.append(GraphIssue("dangling_edge", label))
        elif (edge.source, edge.target) in seen:
            issues.append(GraphIssue("duplicate_edge", label))
        seen.add((edge.source, edge.target))
    return issues


def _unique_id(node_id: str, seen: set[str], taken: set[str]) -> str:
    if node_id not in seen:
        return node_id
    suffix = 2
    while f"{node_id}-{suffix}" in taken:
        suffix += 1
    renamed = f"{node_id}-{suffix}"
    taken.add(renamed)
    return renamed


def _dedupe_ids(nodes: list[GraphNode], seen: set[str], taken: set[str]) -> list[GraphNode]:
    result: list[GraphNode] = []
    for node in nodes:
        node_id = _unique_id(node.id, seen, taken)
        seen.add(node_id)
        children = _dedupe_ids(node.children, seen, taken)
        result.append(node.model_copy(update={"id": node_id, "children": children}))
    return result


def repair_graph(graph: Graph) -> Graph:
    """Rename duplicate node ids and strip bad edges.

    Root ids are claimed before any subtree, so cross-links keep pointing at
    roots. Below the roots, duplicates are renamed depth-first and the first
    occurrence wins.
    """
    taken = {node.id for node in graph.iter_nodes()}
    seen: set[str] = set()
    root_ids = []
    for root in graph.nodes:
        root_id = _unique_id(root.id, seen, taken)
        seen.add(root_id)
        root_ids.append(root_id)
    nodes = [
        root.model_copy(update={"id": root_id, "children": _dedupe_ids(root.children, seen, taken)})
        for root, root_id in zip(graph.nodes, root_ids)
    ]
    valid_ids = {node.id for node in Graph(subject=graph.subject, nodes=nodes).iter_nodes()}
    return graph.model_copy(update={"nodes": nodes, "edges": filter_edges(graph.edges, valid_ids)})


def validate_payload(payload: Any) -> Graph:
    """Schema-validate a graph dict, coercing invalid categories and shapes on failure."""
    if not isinstance(payload, dict):
        raise MalformedOutputError(f"Expected a graph object, got {type(payload).__name__}")
    try:
        return Graph.model_validate(payload)
    except ValidationError as exc:
        logger.warning("graph_schema_invalid", errors=exc.error_count())

    archetype = payload.get("archetype")
    return Graph(
        subject=_opt_str(payload.get("subject")) or _opt_str(payload.get("industry")) or "Unknown",
        archetype=archetype if archetype in ARCHETYPES else None,
        region=_opt_str(payload.get("region")) or _opt_str(payload.get("jurisdiction")),
        nodes=coerce_nodes(payload.get("nodes", payload.get("rootNodes"))),
        edges=coerce_edges(payload.get("edges")),
    )


def validate_and_repair(graph: Graph) -> tuple[Graph, list[GraphIssue]]:
    """Return a graph satisfying every structural invariant plus the issues that were fixed."""
    issues = find_graph_issues(graph)
    if not issues:
        return graph, []
    logger.warning(
        "graph_repaired",
        subject=graph.subject,
        issues=len(issues),
        kinds=sorted({issue.kind for issue in issues}),
    )
    return repair_graph(graph), issues

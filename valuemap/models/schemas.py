"""Pydantic models for graphs, cache entries, and data flowing through the pipeline."""

from __future__ import annotations

from typing import Any, Literal, get_args

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

# ── Enumerations ─────────────────────────────────────────────────────

Category = Literal[
    "capital",
    "inputs",
    "production",
    "processing",
    "distribution",
    "customer",
    "compliance",
    "infrastructure",
]
CATEGORIES: tuple[str, ...] = get_args(Category)
DEFAULT_CATEGORY: Category = "production"

Archetype = Literal[
    "asset-manufacturing",
    "asset-aggregation",
    "labor-leverage-service",
    "marketplace-coordination",
    "saas-automation",
    "infrastructure-utility",
    "licensing-ip",
    "brokerage-intermediation",
    "asset-ownership-leasing",
]
ARCHETYPES: tuple[str, ...] = get_args(Archetype)
DEFAULT_ARCHETYPE: Archetype = "asset-manufacturing"

Strategy = Literal["prebuilt", "assemble", "generate"]
Source = Literal["cache", "prebuilt", "assemble", "generate", "fallback"]
ErrorKind = Literal["rate_limited", "collaborator_unavailable", "generation_failed"]

_WIRE = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


# ── Graph ────────────────────────────────────────────────────────────


class GraphNode(BaseModel):
    model_config = _WIRE

    id: str = Field(min_length=1)
    label: str
    category: Category
    description: str | None = None
    objective: str | None = None
    revenue_model: str | None = None
    tools: list[str] = Field(default_factory=list, validation_alias=AliasChoices("tools", "keyTools"))
    actors: list[str] = Field(default_factory=list, validation_alias=AliasChoices("actors", "keyActors"))
    pain_points: list[str] = Field(default_factory=list)
    cost_drivers: list[str] = Field(default_factory=list)
    regulatory_notes: str | None = None
    children: list[GraphNode] = Field(
        default_factory=list,
        validation_alias=AliasChoices("children", "subNodes"),
    )

    @field_validator("tools", "actors", "pain_points", "cost_drivers", "children", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value


class Edge(BaseModel):
    model_config = _WIRE

    source: str
    target: str


class Graph(BaseModel):
    """A synthesized or library value-chain graph. Immutable once built."""

    model_config = _WIRE

    subject: str = Field(validation_alias=AliasChoices("subject", "industry"))
    archetype: Archetype | None = None
    region: str | None = Field(default=None, validation_alias=AliasChoices("region", "jurisdiction"))
    nodes: list[GraphNode] = Field(default_factory=list, validation_alias=AliasChoices("nodes", "rootNodes"))
    edges: list[Edge] = Field(default_factory=list)

    def iter_nodes(self):
        """Depth-first walk over every node in the tree."""
        stack = list(reversed(self.nodes))
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def node_count(self) -> int:
        return sum(1 for _ in self.iter_nodes())

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# ── Cache / resolution ───────────────────────────────────────────────


class CacheEntry(BaseModel):
    model_config = _WIRE

    graph: Graph
    strategy_source: str
    created_at: float = Field(description="Unix timestamp (seconds)")


class ResolutionDecision(BaseModel):
    model_config = _WIRE

    strategy: Strategy
    library_key: str | None = None
    distance: float | None = Field(default=None, description="0.0 = identical alias, 1.0 = unrelated")


# ── Pipeline stage outputs ───────────────────────────────────────────


class ClassificationResult(BaseModel):
    archetype: Archetype = DEFAULT_ARCHETYPE
    subject: str
    region: str = "Global"


class RootSelection(BaseModel):
    """Outcome of the select stage used by the assemble strategy."""

    kept: list[GraphNode] = Field(default_factory=list)
    added: list[GraphNode] = Field(default_factory=list)


# ── Progress / outcome ───────────────────────────────────────────────


class ProgressEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    step: str
    message: str
    pct: int = Field(ge=0, le=100)
    extra: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_terminal(self) -> bool:
        return self.step in ("done", "error")

    def to_payload(self) -> dict[str, Any]:
        return {"step": self.step, "message": self.message, "pct": self.pct, **self.extra}


class GenerationOutcome(BaseModel):
    """What the orchestrator hands back for one query: always carries a usable graph."""

    model_config = ConfigDict(frozen=True)

    graph: Graph
    source: Source
    error: str | None = None
    error_kind: ErrorKind | None = None
    retry_after: int | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

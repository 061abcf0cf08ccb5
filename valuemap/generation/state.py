"""Mutable state for one synthesis run, passed from stage to stage."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable

from valuemap.models.schemas import (
    DEFAULT_ARCHETYPE,
    Archetype,
    Edge,
    Graph,
    GraphNode,
    Strategy,
)

ReportFn = Callable[[str, str, int], None]


def _silent(step: str, message: str, pct: int) -> None:
    return None


@dataclass
class SynthesisState:
    # ── Input ──
    query: str
    strategy: Strategy = "generate"
    scaffold: Graph | None = None  # library graph used by the assemble strategy
    report: ReportFn = _silent

    # ── Classification ──
    subject: str = ""
    archetype: Archetype = DEFAULT_ARCHETYPE
    region: str = "Global"

    # ── Structure ──
    roots: list[GraphNode] = field(default_factory=list)
    # Roots whose children came from the scaffold and skip detail expansion.
    prebuilt_root_ids: set[str] = field(default_factory=set)

    # ── Detail expansion, keyed by root id (arrival order is irrelevant) ──
    subtrees: dict[str, list[GraphNode]] = field(default_factory=dict)

    # ── Cross-links ──
    edges: list[Edge] = field(default_factory=list)

    # ── Collaborator bookkeeping ──
    calls_ok: int = 0
    calls_failed: int = 0
    unavailable: bool = False
    degraded_stages: list[str] = field(default_factory=list)

    @property
    def total_outage(self) -> bool:
        """Collaborator reported unavailable and nothing it was asked has succeeded."""
        return self.unavailable and self.calls_ok == 0

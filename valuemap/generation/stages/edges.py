"""Edge stage: directed cross-links between root segments."""

from __future__ import annotations

from typing import Any

from valuemap.generation.archetypes import get_archetype_profile
from valuemap.generation.base import CollaboratorStage
from valuemap.generation.prompts.hints import EDGES_SHAPE
from valuemap.generation.state import SynthesisState
from valuemap.generation.validation import coerce_edges, filter_edges
from valuemap.utils.logging import get_logger

logger = get_logger(__name__)


class EdgeStage(CollaboratorStage):
    name = "edges"
    task = "edges"
    schema_hint = EDGES_SHAPE

    async def run(self, state: SynthesisState) -> None:
        state.report("edges", "Mapping value chain connections…", 75)

        if len(state.roots) < 2:
            state.edges = []
            state.report("edges-done", "Found 0 connections", 85)
            return

        profile = get_archetype_profile(state.archetype)
        node_list = "\n".join(f'- "{root.id}" ({root.label}) [{root.category}]' for root in state.roots)
        system = self._prompts.get_prompt(
            "edges",
            subject=state.subject,
            archetype=state.archetype,
            edge_flow_hint=profile.edge_flow_hint,
            node_list=node_list,
        )
        payload = await self._complete(state, system, state.query)
        if payload is None:
            self._degrade(state)
        proposed = coerce_edges(self._raw_edges(payload))

        # Assemble runs already carry the scaffold edges between kept roots.
        existing = len(state.edges)
        state.edges = filter_edges([*state.edges, *proposed], {root.id for root in state.roots})
        if existing + len(proposed) != len(state.edges):
            logger.info("edges_filtered", proposed=len(proposed), kept=len(state.edges))

        state.report("edges-done", f"Found {len(state.edges)} connections", 85)

    @staticmethod
    def _raw_edges(payload: Any) -> Any:
        if isinstance(payload, dict):
            return payload.get("edges")
        return payload

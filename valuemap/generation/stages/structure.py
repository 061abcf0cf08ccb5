"""Structure stage: enriched root segments, parameterized by archetype."""

from __future__ import annotations

from typing import Any

from valuemap.generation.archetypes import get_archetype_profile
from valuemap.generation.base import CollaboratorStage
from valuemap.generation.prompts.hints import NODE_FIELDS, STRUCTURE_SHAPE
from valuemap.generation.state import SynthesisState
from valuemap.generation.validation import coerce_nodes
from valuemap.models.schemas import GraphNode
from valuemap.utils.logging import get_logger

logger = get_logger(__name__)

MIN_ROOTS = 10
MAX_ROOTS = 16


def unique_by_id(nodes: list[GraphNode]) -> list[GraphNode]:
    seen: set[str] = set()
    unique: list[GraphNode] = []
    for node in nodes:
        if node.id in seen:
            logger.warning("duplicate_root_dropped", node_id=node.id)
            continue
        seen.add(node.id)
        unique.append(node)
    return unique


class StructureStage(CollaboratorStage):
    name = "structure"
    task = "structure"
    schema_hint = STRUCTURE_SHAPE

    async def run(self, state: SynthesisState) -> None:
        state.report("structure", "Researching industry structure…", 15)

        profile = get_archetype_profile(state.archetype)
        system = self._prompts.get_prompt(
            "structure",
            subject=state.subject,
            region=state.region,
            archetype_label=profile.label,
            focus=profile.focus,
            example_actors=", ".join(profile.example_actors),
            pain_points=", ".join(profile.typical_pain_points),
            min_roots=MIN_ROOTS,
            max_roots=MAX_ROOTS,
            node_fields=NODE_FIELDS,
        )
        payload = await self._complete(state, system, state.query)
        if payload is None:
            self._degrade(state)

        roots = unique_by_id(coerce_nodes(self._raw_roots(payload), levels=1))
        if len(roots) > MAX_ROOTS:
            logger.warning("structure_root_count_trimmed", generated=len(roots), max_roots=MAX_ROOTS)
            roots = roots[:MAX_ROOTS]

        state.roots = roots
        state.report("structure-done", f"Mapped {len(roots)} segments", 28)

    @staticmethod
    def _raw_roots(payload: Any) -> Any:
        if isinstance(payload, dict):
            return payload.get("roots", payload.get("rootNodes", payload.get("nodes")))
        return payload

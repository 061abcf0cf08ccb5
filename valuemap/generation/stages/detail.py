"""Detail stage: expand every root into a sub-tree, all roots concurrently.

Each root is independent: a failed expansion leaves that root with no
children and never touches its siblings. Results are keyed by root id so
completion order does not matter.
"""

from __future__ import annotations

import asyncio
from typing import Any

from valuemap.generation.base import CollaboratorStage
from valuemap.generation.prompts.hints import DETAIL_SHAPE, NODE_FIELDS
from valuemap.generation.state import SynthesisState
from valuemap.generation.validation import coerce_nodes
from valuemap.models.schemas import GraphNode
from valuemap.utils.logging import get_logger

logger = get_logger(__name__)

DETAIL_START_PCT = 30
DETAIL_END_PCT = 70


class DetailStage(CollaboratorStage):
    name = "detail"
    task = "detail"
    schema_hint = DETAIL_SHAPE

    async def run(self, state: SynthesisState) -> None:
        targets = [root for root in state.roots if root.id not in state.prebuilt_root_ids]
        if not targets:
            state.report("details", "All segments already detailed", DETAIL_START_PCT)
            return

        state.report("details", f"Deep-diving {len(targets)} segments in parallel…", DETAIL_START_PCT)

        semaphore = asyncio.Semaphore(self._settings.MAX_DETAIL_CONCURRENCY)
        completed = 0

        async def expand(root: GraphNode) -> tuple[str, list[GraphNode]]:
            nonlocal completed
            async with semaphore:
                subtree = await self._expand(state, root)
            completed += 1
            span = DETAIL_END_PCT - DETAIL_START_PCT
            state.report(
                "detail-progress",
                f"Researched {root.label} ({completed}/{len(targets)})",
                DETAIL_START_PCT + round(completed / len(targets) * span),
            )
            return root.id, subtree

        results = await asyncio.gather(*(expand(root) for root in targets))
        for root_id, subtree in results:
            state.subtrees[root_id] = subtree

    async def _expand(self, state: SynthesisState, root: GraphNode) -> list[GraphNode]:
        system = self._prompts.get_prompt(
            "detail",
            subject=state.subject,
            region=state.region,
            archetype=state.archetype,
            max_depth=self._settings.MAX_SUBTREE_DEPTH,
            node_fields=NODE_FIELDS,
            query=state.query,
            root_id=root.id,
        )
        prompt = f'Root segment: "{root.label}" (id: {root.id}, category: {root.category})'
        if root.description:
            prompt += f"\nDescription: {root.description}"

        payload = await self._complete(state, system, prompt, root_id=root.id)
        if payload is None:
            self._degrade(state)
            return []

        subtree = coerce_nodes(self._raw_children(payload), root.category, levels=self._settings.MAX_SUBTREE_DEPTH)
        logger.debug("root_expanded", root_id=root.id, children=len(subtree))
        return subtree

    @staticmethod
    def _raw_children(payload: Any) -> Any:
        if isinstance(payload, dict):
            return payload.get("children", payload.get("subNodes"))
        return payload

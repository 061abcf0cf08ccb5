"""Select stage for the assemble strategy.

Picks the relevant roots of a library scaffold and lets the collaborator add a
few missing ones. Kept roots bring their prebuilt children with them and skip
detail expansion.
"""

from __future__ import annotations

import json
from typing import Any

from valuemap.generation.base import CollaboratorStage
from valuemap.generation.prompts.hints import NODE_FIELDS, SELECT_SHAPE
from valuemap.generation.stages.structure import unique_by_id
from valuemap.generation.state import SynthesisState
from valuemap.generation.validation import coerce_nodes
from valuemap.models.graph_index import GraphIndex
from valuemap.models.schemas import Graph, RootSelection
from valuemap.utils.exceptions import SynthesisError
from valuemap.utils.logging import get_logger

logger = get_logger(__name__)

MAX_NEW_ROOTS = 5


class SelectStage(CollaboratorStage):
    name = "select"
    task = "select"
    schema_hint = SELECT_SHAPE

    async def run(self, state: SynthesisState) -> None:
        scaffold = state.scaffold
        if scaffold is None:
            raise SynthesisError("select stage requires a library scaffold")

        state.report("select", f"Selecting relevant {scaffold.subject} segments…", 15)

        block_index = json.dumps(
            [
                {"id": node.id, "label": node.label, "category": node.category, "children": len(node.children)}
                for node in scaffold.nodes
            ],
            indent=2,
        )
        system = self._prompts.get_prompt(
            "select",
            library_subject=scaffold.subject,
            query=state.query,
            block_index=block_index,
            max_new_roots=MAX_NEW_ROOTS,
            node_fields=NODE_FIELDS,
        )
        payload = await self._complete(state, system, state.query)
        selection = self.interpret(payload, scaffold)

        if not selection.kept and not selection.added:
            self._degrade(state)
            logger.warning("selection_empty_using_scaffold", library_subject=scaffold.subject)
            selection = RootSelection(kept=list(scaffold.nodes))

        for node in selection.kept:
            state.subtrees[node.id] = list(node.children)
            state.prebuilt_root_ids.add(node.id)
        state.roots = [node.model_copy(update={"children": []}) for node in selection.kept] + selection.added
        if not state.edges:
            kept_ids = {node.id for node in selection.kept}
            state.edges = [e for e in scaffold.edges if e.source in kept_ids and e.target in kept_ids]

        state.report(
            "structure-done",
            f"Mapped {len(state.roots)} segments ({len(selection.added)} new)",
            28,
        )

    def interpret(self, payload: Any, scaffold: Graph) -> RootSelection:
        if not isinstance(payload, dict):
            return RootSelection()

        index = GraphIndex(scaffold)
        roots = {node.id: node for node in scaffold.nodes}

        kept = []
        raw_selected = payload.get("selected", [])
        for node_id in raw_selected if isinstance(raw_selected, list) else []:
            node = roots.get(node_id) if isinstance(node_id, str) else None
            if node is None:
                logger.debug("unknown_selection_ignored", node_id=node_id)
                continue
            kept.append(node)
            del roots[node_id]

        added = []
        for node in unique_by_id(coerce_nodes(payload.get("new"), levels=1)):
            if node.id in index:
                logger.debug("new_root_id_collision", node_id=node.id)
                continue
            added.append(node)
        if len(added) > MAX_NEW_ROOTS:
            logger.warning("new_roots_trimmed", generated=len(added), max_new=MAX_NEW_ROOTS)
            added = added[:MAX_NEW_ROOTS]

        return RootSelection(kept=kept, added=added)

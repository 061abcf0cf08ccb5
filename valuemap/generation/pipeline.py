"""Synthesis pipeline: classify → structure/select → parallel details → edges → assemble.

Every stage may degrade to fewer or empty results. The only pipeline-level
failure is a total collaborator outage with nothing produced anywhere.
"""

from __future__ import annotations

from valuemap.config import Settings
from valuemap.generation.base import PipelineStage
from valuemap.generation.prompts.registry import PromptRegistry
from valuemap.generation.stages import ClassifyStage, DetailStage, EdgeStage, SelectStage, StructureStage
from valuemap.generation.state import ReportFn, SynthesisState
from valuemap.generation.validation import validate_and_repair
from valuemap.models.collaborator import Collaborator
from valuemap.models.schemas import Graph, ResolutionDecision
from valuemap.services.library import LibraryLoader
from valuemap.utils.exceptions import CollaboratorUnavailableError
from valuemap.utils.logging import get_logger

logger = get_logger(__name__)


class SynthesisPipeline:
    """Runs one synthesis for a resolved query against the generation collaborator."""

    def __init__(
        self,
        collaborator: Collaborator,
        library: LibraryLoader,
        settings: Settings,
        prompts: PromptRegistry | None = None,
    ) -> None:
        self._collaborator = collaborator
        self._library = library
        deps = {"collaborator": collaborator, "prompts": prompts or PromptRegistry(), "settings": settings}
        self.classify = ClassifyStage(**deps)
        self.structure = StructureStage(**deps)
        self.select = SelectStage(**deps)
        self.detail = DetailStage(**deps)
        self.edges = EdgeStage(**deps)

    async def run(self, query: str, decision: ResolutionDecision, report: ReportFn) -> Graph:
        if not self._collaborator.available:
            raise CollaboratorUnavailableError("generation collaborator is not configured")

        state = SynthesisState(query=query, strategy=decision.strategy, report=report)
        if decision.strategy == "assemble" and decision.library_key:
            state.scaffold = await self._library.load(decision.library_key)
            if state.scaffold is None:
                logger.warning("scaffold_missing_generating", library_key=decision.library_key)

        logger.info(
            "synthesis_started",
            query=query,
            strategy=decision.strategy,
            scaffold=decision.library_key if state.scaffold else None,
        )

        await self.classify.run(state)
        second: PipelineStage = self.select if state.scaffold is not None else self.structure
        await second.run(state)

        if not state.roots and state.total_outage:
            raise CollaboratorUnavailableError("generation collaborator unreachable for every call")

        await self.detail.run(state)
        await self.edges.run(state)

        report("assembling", "Assembling graph…", 90)
        graph = self.assemble(state)

        report("validating", "Validating structure…", 95)
        graph, issues = validate_and_repair(graph)

        logger.info(
            "synthesis_completed",
            query=query,
            strategy=decision.strategy,
            roots=len(graph.nodes),
            nodes=graph.node_count(),
            edges=len(graph.edges),
            calls_ok=state.calls_ok,
            calls_failed=state.calls_failed,
            degraded=state.degraded_stages,
            repaired=len(issues),
        )
        return graph

    @staticmethod
    def assemble(state: SynthesisState) -> Graph:
        """Merge root metadata with subtrees (keyed by root id) and edges."""
        nodes = [root.model_copy(update={"children": state.subtrees.get(root.id, [])}) for root in state.roots]
        return Graph(
            subject=state.subject or state.query,
            archetype=state.archetype,
            region=state.region,
            nodes=nodes,
            edges=state.edges,
        )

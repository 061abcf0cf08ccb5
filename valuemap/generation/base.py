"""Stage base abstractions for the synthesis pipeline.

PipelineStage is the protocol all stages implement. CollaboratorStage adds
the bookkeeping shared by every stage that calls the generation collaborator:
a failed call is recorded on the state and handed back as ``None`` so the
stage can degrade instead of aborting the run.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from valuemap.config import Settings
from valuemap.generation.prompts.registry import PromptRegistry
from valuemap.generation.state import SynthesisState
from valuemap.models.collaborator import Collaborator, CompletionOptions
from valuemap.utils.exceptions import CollaboratorError, CollaboratorUnavailableError
from valuemap.utils.logging import get_logger

logger = get_logger(__name__)


class PipelineStage(ABC):
    """Abstract base for synthesis stages. Single Responsibility: execute one step."""

    name: str = ""

    @abstractmethod
    async def run(self, state: SynthesisState) -> None:
        """Read from and write to the run state. Must not raise for degraded output."""
        ...


class CollaboratorStage(PipelineStage):
    """Base for stages that make structured collaborator calls."""

    task: str = ""
    schema_hint: str = ""

    def __init__(self, *, collaborator: Collaborator, prompts: PromptRegistry, settings: Settings) -> None:
        self._collaborator = collaborator
        self._prompts = prompts
        self._settings = settings

    async def _complete(self, state: SynthesisState, system: str, prompt: str, **log_context: Any) -> Any | None:
        """One structured call. Returns parsed JSON, or None after recording the failure."""
        try:
            payload = await self._collaborator.complete_structured(
                prompt,
                self.schema_hint,
                CompletionOptions(task=self.task, system=system),
            )
        except CollaboratorUnavailableError as exc:
            state.calls_failed += 1
            state.unavailable = True
            logger.error("collaborator_unavailable", stage=self.name, error=str(exc), **log_context)
            return None
        except CollaboratorError as exc:
            state.calls_failed += 1
            logger.warning(
                "stage_output_unusable",
                stage=self.name,
                error=str(exc),
                exc_type=type(exc).__name__,
                **log_context,
            )
            return None
        except Exception as exc:
            state.calls_failed += 1
            logger.error(
                "stage_call_crashed",
                stage=self.name,
                error=str(exc),
                exc_type=type(exc).__name__,
                **log_context,
            )
            return None

        state.calls_ok += 1
        return payload

    def _degrade(self, state: SynthesisState) -> None:
        if self.name not in state.degraded_stages:
            state.degraded_stages.append(self.name)

"""Classify stage: query → archetype, subject name, region. Never fails the run."""

from __future__ import annotations

from typing import Any

from valuemap.generation.archetypes import ARCHETYPE_PROFILES, get_archetype_profile
from valuemap.generation.base import CollaboratorStage
from valuemap.generation.prompts.hints import CLASSIFY_SHAPE
from valuemap.generation.state import SynthesisState
from valuemap.models.schemas import ARCHETYPES, DEFAULT_ARCHETYPE, ClassificationResult
from valuemap.utils.logging import get_logger

logger = get_logger(__name__)


def _text(value: Any) -> str | None:
    return value.strip() or None if isinstance(value, str) else None


class ClassifyStage(CollaboratorStage):
    name = "classify"
    task = "classify"
    schema_hint = CLASSIFY_SHAPE

    async def run(self, state: SynthesisState) -> None:
        state.report("classify", "Classifying economic engine archetype…", 5)

        archetypes = "\n".join(f'"{key}": {profile.description}' for key, profile in ARCHETYPE_PROFILES.items())
        system = self._prompts.get_prompt("classify", archetypes=archetypes)
        payload = await self._complete(state, system, state.query)

        result = self.interpret(payload, state)
        state.subject = result.subject
        state.archetype = result.archetype
        state.region = result.region

        profile = get_archetype_profile(state.archetype)
        logger.info(
            "query_classified",
            query=state.query,
            archetype=state.archetype,
            subject=state.subject,
            region=state.region,
        )
        state.report("classify-done", f"{profile.label}, {state.region}", 12)

    def interpret(self, payload: Any, state: SynthesisState) -> ClassificationResult:
        """Map a raw classification payload to a result, filling every gap with defaults."""
        default_archetype = (state.scaffold.archetype if state.scaffold else None) or DEFAULT_ARCHETYPE
        if not isinstance(payload, dict):
            self._degrade(state)
            return ClassificationResult(archetype=default_archetype, subject=state.query)

        archetype = payload.get("archetype")
        if archetype not in ARCHETYPES:
            logger.warning("unknown_archetype", value=archetype, fallback=default_archetype)
            archetype = default_archetype

        return ClassificationResult(
            archetype=archetype,
            subject=_text(payload.get("subject")) or _text(payload.get("industryName")) or state.query,
            region=_text(payload.get("region")) or _text(payload.get("jurisdiction")) or "Global",
        )

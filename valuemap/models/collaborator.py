"""Narrow interface to the generation collaborator (an LLM text/JSON completion service)."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage

from valuemap.generation.validation import parse_json_payload
from valuemap.models.model_router import ModelRouter
from valuemap.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class CompletionOptions:
    task: str
    system: str = ""


class Collaborator(Protocol):
    """Both calls are fallible and slow; malformed JSON is an expected outcome."""

    @property
    def available(self) -> bool: ...

    async def complete_text(self, prompt: str, options: CompletionOptions) -> str: ...

    async def complete_structured(self, prompt: str, schema_hint: str, options: CompletionOptions) -> Any: ...


def message_text(message: Any) -> str:
    """Flatten a chat message's content (plain string or typed content blocks)."""
    content = getattr(message, "content", message)
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and block.get("type") == "text":
                parts.append(block.get("text", ""))
        return "".join(parts)
    return ""


class LLMCollaborator:
    """Collaborator backed by the model router (OpenRouter chat models)."""

    def __init__(self, router: ModelRouter) -> None:
        self._router = router

    @property
    def available(self) -> bool:
        return self._router.configured

    def _messages(self, prompt: str, system: str) -> list[BaseMessage]:
        messages: list[BaseMessage] = []
        if system:
            messages.append(SystemMessage(content=system))
        messages.append(HumanMessage(content=prompt))
        return messages

    async def complete_text(self, prompt: str, options: CompletionOptions) -> str:
        result = await self._router.invoke(options.task, self._messages(prompt, options.system))
        return message_text(result)

    async def complete_structured(self, prompt: str, schema_hint: str, options: CompletionOptions) -> Any:
        system = f"{options.system}\n\nReturn ONLY valid JSON matching this shape:\n{schema_hint}".strip()
        result = await self._router.invoke(options.task, self._messages(prompt, system), json_mode=True)
        text = message_text(result)
        logger.debug("structured_completion_received", task=options.task, chars=len(text))
        return parse_json_payload(text)

"""Unit tests for the LLM-backed collaborator."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from langchain_core.messages import SystemMessage

from valuemap.models.collaborator import CompletionOptions, LLMCollaborator, message_text
from valuemap.utils.exceptions import MalformedOutputError


def _router(content):
    router = MagicMock()
    router.configured = True
    router.invoke = AsyncMock(return_value=MagicMock(content=content))
    return router


@pytest.mark.asyncio
async def test_structured_completion_parses_fenced_json():
    router = _router('```json\n{"roots": [{"id": "a"}]}\n```')
    collaborator = LLMCollaborator(router)

    payload = await collaborator.complete_structured(
        "wheat", '{"roots": []}', CompletionOptions(task="structure", system="Map it.")
    )

    assert payload == {"roots": [{"id": "a"}]}
    task, messages = router.invoke.await_args.args
    assert task == "structure"
    assert isinstance(messages[0], SystemMessage)
    assert '{"roots": []}' in messages[0].content
    assert router.invoke.await_args.kwargs == {"json_mode": True}


@pytest.mark.asyncio
async def test_structured_completion_raises_on_prose():
    collaborator = LLMCollaborator(_router("I cannot help with that."))

    with pytest.raises(MalformedOutputError):
        await collaborator.complete_structured("x", "{}", CompletionOptions(task="edges"))


@pytest.mark.asyncio
async def test_text_completion_without_system_prompt():
    router = _router([{"type": "text", "text": "Hello "}, {"type": "text", "text": "there"}])

    text = await LLMCollaborator(router).complete_text("hi", CompletionOptions(task="classify"))

    assert text == "Hello there"
    _, messages = router.invoke.await_args.args
    assert len(messages) == 1


def test_availability_follows_router():
    router = _router("")
    router.configured = False
    assert LLMCollaborator(router).available is False


def test_message_text_handles_plain_strings():
    assert message_text("raw") == "raw"
    assert message_text(MagicMock(content=None)) == ""

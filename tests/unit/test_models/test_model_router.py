"""Unit tests for the model router with fallback logic."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import httpx
import openai
import pytest
from langchain_core.messages import HumanMessage

from valuemap.models.model_router import ModelRouter
from valuemap.utils.exceptions import CollaboratorError, CollaboratorUnavailableError


def _connection_error() -> openai.APIConnectionError:
    return openai.APIConnectionError(request=httpx.Request("POST", "https://openrouter.ai/api/v1/chat/completions"))


def _fallback_model(result=None, error=None) -> MagicMock:
    model = MagicMock()
    model.ainvoke = AsyncMock(return_value=result, side_effect=error)
    model.bind.return_value = model
    model.model_name = "fallback"
    return model


@pytest.mark.asyncio
async def test_router_invokes_primary_model(mock_registry):
    mock_result = MagicMock()
    mock_result.content = "test"
    mock_result.usage_metadata = {"total_tokens": 42}
    mock_registry.get_model("structure").ainvoke = AsyncMock(return_value=mock_result)

    router = ModelRouter(mock_registry)
    result = await router.invoke("structure", [HumanMessage(content="test")])

    assert result is mock_result
    assert mock_registry.stats["structure"]["tokens"] == 42


@pytest.mark.asyncio
async def test_router_binds_json_mode(mock_registry):
    model = mock_registry.get_model("classify")

    router = ModelRouter(mock_registry)
    await router.invoke("classify", [HumanMessage(content="test")], json_mode=True)

    model.bind.assert_called_with(response_format={"type": "json_object"})


@pytest.mark.asyncio
async def test_router_falls_back_on_failure(mock_registry):
    mock_registry.get_model("structure").ainvoke = AsyncMock(side_effect=RuntimeError("boom"))

    fallback_result = MagicMock()
    fallback_result.content = "fallback response"
    fallback_result.usage_metadata = None
    mock_registry.get_fallback_chain = MagicMock(return_value=[_fallback_model(result=fallback_result)])

    router = ModelRouter(mock_registry)
    result = await router.invoke("structure", [HumanMessage(content="test")])

    assert result is fallback_result


@pytest.mark.asyncio
async def test_router_raises_collaborator_error_when_all_fail(mock_registry):
    mock_registry.get_model("edges").ainvoke = AsyncMock(side_effect=RuntimeError("bad"))
    mock_registry.get_fallback_chain = MagicMock(return_value=[_fallback_model(error=ValueError("worse"))])

    router = ModelRouter(mock_registry)
    with pytest.raises(CollaboratorError) as exc_info:
        await router.invoke("edges", [HumanMessage(content="test")])

    assert not isinstance(exc_info.value, CollaboratorUnavailableError)
    assert mock_registry.stats["edges"]["failures"] == 1


@pytest.mark.asyncio
async def test_router_reports_unavailable_on_connection_errors(mock_registry):
    mock_registry.get_model("detail").ainvoke = AsyncMock(side_effect=_connection_error())
    mock_registry.get_fallback_chain = MagicMock(return_value=[_fallback_model(error=_connection_error())])

    router = ModelRouter(mock_registry)
    with pytest.raises(CollaboratorUnavailableError):
        await router.invoke("detail", [HumanMessage(content="test")])

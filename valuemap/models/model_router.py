"""Model router with fallback chains, per-model retry, and LangSmith tracing."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any

import openai
from langsmith import traceable

from valuemap.models.llm_registry import LLMRegistry
from valuemap.utils.exceptions import CollaboratorError, CollaboratorUnavailableError
from valuemap.utils.logging import get_logger
from valuemap.utils.retry import async_retry

if TYPE_CHECKING:
    from langchain_core.messages import BaseMessage

logger = get_logger(__name__)

# Failures that mean "nobody is answering", as opposed to a bad or slow answer.
_UNAVAILABLE_ERRORS = (
    openai.AuthenticationError,
    openai.PermissionDeniedError,
    openai.APIConnectionError,
)

_TRANSIENT_ERRORS = (
    openai.APITimeoutError,
    openai.RateLimitError,
    openai.InternalServerError,
)


def _is_unavailable(exc: Exception) -> bool:
    return isinstance(exc, _UNAVAILABLE_ERRORS) and not isinstance(exc, openai.APITimeoutError)


class ModelRouter:
    """Wraps model calls with automatic fallback and usage tracking."""

    def __init__(self, registry: LLMRegistry) -> None:
        self._registry = registry

    @property
    def configured(self) -> bool:
        return self._registry.configured

    @async_retry(max_attempts=2, base_delay=0.5, retryable_exceptions=_TRANSIENT_ERRORS)
    async def _ainvoke(self, target: Any, messages: list[BaseMessage]) -> Any:
        return await target.ainvoke(messages)

    @traceable(run_type="chain", name="model_router_invoke")
    async def invoke(
        self,
        task: str,
        messages: list[BaseMessage],
        *,
        json_mode: bool = False,
    ) -> Any:
        """Invoke the model for a task, falling back on failure.

        Args:
            task: The task name (e.g. "structure", "detail").
            messages: Chat messages to send.
            json_mode: Ask the provider for a JSON object response.

        Returns:
            The model response message.

        Raises:
            CollaboratorUnavailableError: not configured, or every model failed
                with an authentication/connection error.
            CollaboratorError: every model failed for any other reason.
        """
        primary = self._registry.get_model(task)
        fallbacks = self._registry.get_fallback_chain(task)
        all_models = [("primary", primary), *((f"fallback-{i}", fb) for i, fb in enumerate(fallbacks))]

        errors: list[Exception] = []
        for label, model in all_models:
            target = model.bind(response_format={"type": "json_object"}) if json_mode else model
            try:
                start = time.monotonic()
                result = await self._ainvoke(target, messages)
                elapsed_ms = int((time.monotonic() - start) * 1000)
            except Exception as exc:
                errors.append(exc)
                logger.error(
                    "model_invoke_failed",
                    task=task,
                    label=label,
                    model=model.model_name,
                    error=str(exc),
                    exc_type=type(exc).__name__,
                )
                continue

            usage_meta = getattr(result, "usage_metadata", None) or {}
            tokens = usage_meta.get("total_tokens", 0) if isinstance(usage_meta, dict) else 0
            self._registry.record_usage(task, tokens)

            if label != "primary":
                logger.warning(
                    "model_fallback_used",
                    task=task,
                    label=label,
                    model=model.model_name,
                    elapsed_ms=elapsed_ms,
                )
            else:
                logger.debug(
                    "model_invoked",
                    task=task,
                    model=model.model_name,
                    tokens=tokens,
                    elapsed_ms=elapsed_ms,
                )
            return result

        self._registry.record_failure(task)
        last_error = errors[-1] if errors else None
        if errors and all(_is_unavailable(exc) for exc in errors):
            raise CollaboratorUnavailableError(f"Collaborator unreachable for task '{task}': {last_error}") from last_error
        raise CollaboratorError(f"All models failed for task '{task}': {last_error}") from last_error

"""Ordered, best-effort progress events for one orchestration run."""

from __future__ import annotations

from typing import Any, Callable

from valuemap.models.schemas import Graph, ProgressEvent, Source
from valuemap.utils.logging import get_logger

logger = get_logger(__name__)

ProgressSink = Callable[[ProgressEvent], None]


class ProgressReporter:
    """Emits progress to a sink with three guarantees.

    - percentages never go down (lower values are clamped up)
    - exactly one terminal event (``done`` or ``error``); anything after it is dropped
    - emission never raises: a closed or failing sink silently drops events
    """

    def __init__(self, sink: ProgressSink | None = None) -> None:
        self._sink = sink
        self._pct = 0
        self._closed = sink is None
        self._finished = False
        self.history: list[ProgressEvent] = []

    @property
    def pct(self) -> int:
        return self._pct

    @property
    def finished(self) -> bool:
        return self._finished

    def close(self) -> None:
        """The transport went away: keep the run going, stop delivering events."""
        self._closed = True

    def report(self, step: str, message: str, pct: int, **extra: Any) -> None:
        if self._finished:
            logger.debug("progress_after_terminal_dropped", step=step)
            return
        self._pct = max(self._pct, min(int(pct), 100))
        event = ProgressEvent(step=step, message=message, pct=self._pct, extra=extra)
        if event.is_terminal:
            self._finished = True
        self.history.append(event)
        self._emit(event)

    def done(self, graph: Graph, source: Source) -> None:
        self.report("done", "Complete", 100, data=graph.to_wire(), source=source)

    def error(self, message: str, graph: Graph | None = None, source: Source | None = None, **extra: Any) -> None:
        payload: dict[str, Any] = dict(extra)
        if graph is not None:
            payload["data"] = graph.to_wire()
        if source is not None:
            payload["source"] = source
        self.report("error", message, self._pct, **payload)

    def _emit(self, event: ProgressEvent) -> None:
        if self._closed or self._sink is None:
            return
        try:
            self._sink(event)
        except Exception as exc:
            logger.debug("progress_emit_failed", step=event.step, error=str(exc))

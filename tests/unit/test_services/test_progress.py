"""Unit tests for progress reporting."""

from __future__ import annotations

from valuemap.models.schemas import Graph
from valuemap.services.progress import ProgressReporter


def test_percentages_never_decrease():
    events = []
    reporter = ProgressReporter(events.append)

    reporter.report("classify", "a", 12)
    reporter.report("structure", "b", 5)
    reporter.report("details", "c", 30)

    assert [event.pct for event in events] == [12, 12, 30]


def test_single_terminal_event():
    events = []
    reporter = ProgressReporter(events.append)

    reporter.done(Graph(subject="x"), "generate")
    reporter.error("late failure")
    reporter.report("storing", "late", 96)

    assert [event.step for event in events] == ["done"]
    assert reporter.finished


def test_done_carries_graph_and_source():
    events = []
    ProgressReporter(events.append).done(Graph(subject="Dairy"), "prebuilt")

    payload = events[0].to_payload()
    assert payload["pct"] == 100
    assert payload["source"] == "prebuilt"
    assert payload["data"]["subject"] == "Dairy"


def test_error_holds_current_pct():
    events = []
    reporter = ProgressReporter(events.append)
    reporter.report("edges", "x", 75)
    reporter.error("boom", retryAfter=7)

    assert events[-1].step == "error"
    assert events[-1].pct == 75
    assert events[-1].extra == {"retryAfter": 7}


def test_failing_sink_is_swallowed():
    def broken(event):
        raise BrokenPipeError("client gone")

    reporter = ProgressReporter(broken)
    reporter.report("cache", "x", 1)
    reporter.done(Graph(subject="x"), "cache")

    assert [event.step for event in reporter.history] == ["cache", "done"]


def test_closed_reporter_keeps_history_but_stops_emitting():
    events = []
    reporter = ProgressReporter(events.append)
    reporter.report("cache", "x", 1)
    reporter.close()
    reporter.report("resolving", "y", 3)

    assert len(events) == 1
    assert len(reporter.history) == 2


def test_pct_clamped_to_100():
    reporter = ProgressReporter()
    reporter.report("storing", "x", 140)
    assert reporter.pct == 100

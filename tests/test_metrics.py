"""Tests for command metrics."""

import pytest

from promptrules.metrics import MetricsCollector, get_metrics_collector, is_metrics_enabled


@pytest.fixture
def reset_metrics():
    """Reset metrics before and after each test."""
    collector = get_metrics_collector()
    collector.reset()
    yield
    collector.reset()


def test_metrics_collector_record_command(reset_metrics):
    """Test that MetricsCollector records command metrics correctly."""
    collector = get_metrics_collector()

    collector.record_command("go", "ok", 12.5, "contextual_execution")
    collector.record_command("ship", "ok", 20.0, "macro")
    collector.record_command("go", "ok", 8.0, "contextual_execution")
    collector.record_command("teleport", "no_match", 1.0)
    collector.record_command("beam", "error", 3.0, "teleport")

    snapshot = collector.get_snapshot()

    assert snapshot["trigger_counts"] == {"go": 2, "ship": 1, "teleport": 1, "beam": 1}
    assert snapshot["status_counts"] == {"ok": 3, "no_match": 1, "error": 1}
    assert snapshot["action_type_counts"] == {
        "contextual_execution": 2,
        "macro": 1,
        "teleport": 1,
    }
    assert snapshot["command_latency_ms"]["count"] == 5


def test_latency_percentiles():
    collector = MetricsCollector()
    for latency in range(1, 101):
        collector.record_command("go", "ok", float(latency))

    latency = collector.get_snapshot()["command_latency_ms"]

    assert latency["p50"] == 51.0
    assert latency["p95"] == 96.0
    assert latency["count"] == 100


def test_empty_snapshot():
    snapshot = MetricsCollector().get_snapshot()

    assert snapshot["trigger_counts"] == {}
    assert snapshot["command_latency_ms"] == {"p50": None, "p95": None, "count": 0}


def test_reset():
    collector = MetricsCollector()
    collector.record_command("go", "ok", 1.0, "macro")
    collector.reset()

    assert collector.get_snapshot()["command_latency_ms"]["count"] == 0
    assert collector.action_type_counts == {}


def test_latency_samples_are_bounded():
    collector = MetricsCollector(max_samples=3)
    for latency in [1.0, 2.0, 3.0, 4.0, 5.0]:
        collector.record_command("go", "ok", latency)

    snapshot = collector.get_snapshot()

    assert list(collector.command_latencies) == [3.0, 4.0, 5.0]
    assert snapshot["command_latency_ms"]["count"] == 3
    assert snapshot["command_latency_ms"]["p50"] == 4.0
    assert snapshot["status_counts"] == {"ok": 5}


def test_get_metrics_collector_is_singleton():
    assert get_metrics_collector() is get_metrics_collector()


@pytest.mark.parametrize(
    "value, expected",
    [("true", True), ("1", True), ("YES", True), ("false", False), ("", False)],
)
def test_is_metrics_enabled(monkeypatch, value, expected):
    monkeypatch.setenv("PROMPTRULES_ENABLE_METRICS", value)
    assert is_metrics_enabled() is expected


def test_metrics_disabled_by_default(monkeypatch):
    monkeypatch.delenv("PROMPTRULES_ENABLE_METRICS", raising=False)
    assert is_metrics_enabled() is False

"""Lightweight in-process metrics for command interpretation.

Counters and latency samples live in memory and are per process; nothing
is exported. Collection is off unless PROMPTRULES_ENABLE_METRICS is set.
"""

import os
import threading
from collections import Counter, deque
from typing import Any


def percentile(sorted_values: list[float], fraction: float) -> float | None:
    """Nearest-rank percentile (fraction in 0.0 to 1.0) of pre-sorted values."""
    if not sorted_values:
        return None
    rank = min(int(len(sorted_values) * fraction), len(sorted_values) - 1)
    return sorted_values[rank]


class MetricsCollector:
    """Count processed commands by trigger, outcome and action type.

    Shared between sessions of one process, hence the lock. Only the most
    recent ``max_samples`` latencies are kept for the percentiles.
    """

    def __init__(self, max_samples: int = 10_000) -> None:
        self.trigger_counts: Counter[str] = Counter()
        # ok, no_match, error
        self.status_counts: Counter[str] = Counter()
        self.action_type_counts: Counter[str] = Counter()
        self.command_latencies: deque[float] = deque(maxlen=max_samples)
        self._lock = threading.Lock()

    def record_command(
        self,
        trigger: str,
        status: str,
        latency_ms: float,
        action_type: str | None = None,
    ) -> None:
        """Record one processed command.

        Args:
            trigger: Parsed trigger (e.g., "go", "ship")
            status: Outcome (ok, no_match, error)
            latency_ms: Time spent in process_command, in milliseconds
            action_type: Tag of the executed action, if a rule matched
        """
        with self._lock:
            self.trigger_counts[trigger] += 1
            self.status_counts[status] += 1
            if action_type:
                self.action_type_counts[action_type] += 1
            self.command_latencies.append(latency_ms)

    def get_snapshot(self) -> dict[str, Any]:
        """Return plain-dict copies of all counters plus p50/p95 latency."""
        with self._lock:
            latencies = sorted(self.command_latencies)
            return {
                "trigger_counts": dict(self.trigger_counts),
                "status_counts": dict(self.status_counts),
                "action_type_counts": dict(self.action_type_counts),
                "command_latency_ms": {
                    "p50": percentile(latencies, 0.5),
                    "p95": percentile(latencies, 0.95),
                    "count": len(latencies),
                },
            }

    def reset(self) -> None:
        with self._lock:
            for counter in (self.trigger_counts, self.status_counts, self.action_type_counts):
                counter.clear()
            self.command_latencies.clear()


_collector = MetricsCollector()


def get_metrics_collector() -> MetricsCollector:
    """Process-wide collector used by PromptingClient."""
    return _collector


def is_metrics_enabled() -> bool:
    """True when PROMPTRULES_ENABLE_METRICS is one of true/1/yes."""
    return os.getenv("PROMPTRULES_ENABLE_METRICS", "false").strip().lower() in ("true", "1", "yes")

"""Metrics collection for the aggregation engine."""

from collections import Counter
from dataclasses import dataclass, field
from threading import Lock


_metrics_instance: "AggregationMetrics | None" = None
_metrics_lock: Lock = Lock()


@dataclass
class AggregationMetrics:
    """Thread-safe metrics for aggregate requests.

    Tracks request count, duration, health status distribution and which
    branches resolved to their fallback.
    """

    _lock: Lock = field(default_factory=Lock, repr=False, compare=False)

    aggregates_total: int = 0
    duration_ms_total: float = 0.0
    status_total: Counter[str] = field(default_factory=Counter)
    branch_fallbacks_total: Counter[str] = field(default_factory=Counter)
    branch_crashes_total: Counter[str] = field(default_factory=Counter)

    @classmethod
    def get_instance(cls) -> "AggregationMetrics":
        """Get the singleton instance (thread-safe)."""
        global _metrics_instance  # noqa: PLW0603
        if _metrics_instance is None:
            with _metrics_lock:
                if _metrics_instance is None:
                    _metrics_instance = cls()
        return _metrics_instance

    @classmethod
    def reset(cls) -> None:
        """Reset the singleton instance (for testing)."""
        global _metrics_instance  # noqa: PLW0603
        with _metrics_lock:
            _metrics_instance = None

    def record_aggregate(self, status: str, duration_ms: float) -> None:
        """Record a completed aggregate.

        Args:
            status: Health status of the composed view.
            duration_ms: Wall-clock duration in milliseconds.
        """
        with self._lock:
            self.aggregates_total += 1
            self.duration_ms_total += duration_ms
            self.status_total[status] += 1

    def record_branch_fallback(self, branch: str) -> None:
        with self._lock:
            self.branch_fallbacks_total[branch] += 1

    def record_branch_crash(self, branch: str) -> None:
        with self._lock:
            self.branch_crashes_total[branch] += 1

    def to_dict(self) -> dict[str, int | float | dict[str, int]]:
        """Convert metrics to dictionary."""
        with self._lock:
            return {
                "aggregates_total": self.aggregates_total,
                "aggregate_duration_ms_total": self.duration_ms_total,
                "aggregate_status_total": dict(self.status_total),
                "branch_fallbacks_total": dict(self.branch_fallbacks_total),
                "branch_crashes_total": dict(self.branch_crashes_total),
            }

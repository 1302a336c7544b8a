"""Metrics collection for the downstream fetch layer."""

from collections import Counter
from dataclasses import dataclass, field
from threading import Lock

from riskboard.fetch.models import FetchErrorClass


_metrics_instance: "FetchMetrics | None" = None
_metrics_lock: Lock = Lock()


@dataclass
class FetchMetrics:
    """Thread-safe metrics for downstream fetch operations.

    Tracks attempts, retries, fallbacks and failures per branch.
    Use get_instance() for singleton access.
    """

    _lock: Lock = field(default_factory=Lock, repr=False, compare=False)

    http_requests_total: Counter[int] = field(default_factory=Counter)
    attempts_by_branch: Counter[str] = field(default_factory=Counter)
    fallbacks_by_branch: Counter[str] = field(default_factory=Counter)
    failures_by_class: Counter[str] = field(default_factory=Counter)
    retry_total: int = 0
    fetch_count: int = 0
    duration_ms_total: float = 0.0

    @classmethod
    def get_instance(cls) -> "FetchMetrics":
        """Get the singleton instance (thread-safe).

        Returns:
            The shared FetchMetrics instance.
        """
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

    def record_attempt(self, branch: str) -> None:
        """Record one attempt for a branch."""
        with self._lock:
            self.attempts_by_branch[branch] += 1

    def record_request(self, status_code: int) -> None:
        """Record a completed HTTP exchange by status code."""
        with self._lock:
            self.http_requests_total[status_code] += 1

    def record_retry(self) -> None:
        """Record a retry."""
        with self._lock:
            self.retry_total += 1

    def record_failure(self, error_class: FetchErrorClass) -> None:
        """Record a failed attempt.

        Args:
            error_class: Classification of the failure.
        """
        with self._lock:
            self.failures_by_class[error_class.value] += 1

    def record_fallback(self, branch: str) -> None:
        """Record that a branch resolved to its fallback value."""
        with self._lock:
            self.fallbacks_by_branch[branch] += 1

    def record_duration(self, duration_ms: float) -> None:
        """Record the duration of one logical fetch (all attempts).

        Args:
            duration_ms: Duration in milliseconds.
        """
        with self._lock:
            self.duration_ms_total += duration_ms
            self.fetch_count += 1

    @property
    def avg_duration_ms(self) -> float:
        """Average logical fetch duration in milliseconds."""
        with self._lock:
            if self.fetch_count == 0:
                return 0.0
            return self.duration_ms_total / self.fetch_count

    def to_dict(self) -> dict[str, int | float | dict[str, int] | dict[int, int]]:
        """Convert metrics to dictionary.

        Returns:
            Dictionary of metric name to value.
        """
        with self._lock:
            return {
                "http_requests_total": dict(self.http_requests_total),
                "fetch_attempts_total": dict(self.attempts_by_branch),
                "fetch_fallbacks_total": dict(self.fallbacks_by_branch),
                "fetch_failures_total": dict(self.failures_by_class),
                "fetch_retry_total": self.retry_total,
                "fetch_count": self.fetch_count,
                "fetch_duration_ms_total": self.duration_ms_total,
            }

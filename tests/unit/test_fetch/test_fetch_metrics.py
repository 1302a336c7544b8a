"""Unit tests for fetch metrics."""

import threading

from riskboard.fetch.metrics import FetchMetrics
from riskboard.fetch.models import FetchErrorClass


class TestFetchMetrics:
    """Tests for FetchMetrics."""

    def test_singleton(self) -> None:
        """get_instance() returns the same object until reset()."""
        first = FetchMetrics.get_instance()

        assert FetchMetrics.get_instance() is first

        FetchMetrics.reset()

        assert FetchMetrics.get_instance() is not first

    def test_records_counters(self) -> None:
        """Counters are reported by to_dict()."""
        metrics = FetchMetrics()
        metrics.record_attempt("risk_summary")
        metrics.record_attempt("risk_summary")
        metrics.record_request(503)
        metrics.record_request(200)
        metrics.record_retry()
        metrics.record_failure(FetchErrorClass.HTTP_5XX)
        metrics.record_fallback("open_orders")
        metrics.record_duration(10.0)
        metrics.record_duration(30.0)

        data = metrics.to_dict()

        assert data["fetch_attempts_total"] == {"risk_summary": 2}
        assert data["http_requests_total"] == {503: 1, 200: 1}
        assert data["fetch_retry_total"] == 1
        assert data["fetch_failures_total"] == {"HTTP_5XX": 1}
        assert data["fetch_fallbacks_total"] == {"open_orders": 1}
        assert data["fetch_count"] == 2
        assert data["fetch_duration_ms_total"] == 40.0
        assert metrics.avg_duration_ms == 20.0

    def test_avg_duration_empty(self) -> None:
        """Average duration is zero before any fetch."""
        assert FetchMetrics().avg_duration_ms == 0.0

    def test_thread_safe_increments(self) -> None:
        """Concurrent increments are not lost."""
        metrics = FetchMetrics()

        def work() -> None:
            for _ in range(1000):
                metrics.record_attempt("risk_summary")

        threads = [threading.Thread(target=work) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert metrics.attempts_by_branch["risk_summary"] == 8000

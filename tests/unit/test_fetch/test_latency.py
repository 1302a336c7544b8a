"""Unit tests for the latency probe."""

import asyncio

import httpx

from riskboard.fetch.client import DownstreamClient
from riskboard.fetch.latency import LatencyProbe
from riskboard.fetch.models import FetchErrorClass, FetchOutcome, FetchResult, RetryPolicy
from riskboard.fetch.payloads import LatencyMetrics


FAST_POLICY = RetryPolicy(max_retries=2, base_delay_ms=0, jitter_factor=0.0)


def measure(transport: httpx.MockTransport) -> FetchResult[LatencyMetrics]:
    """Run the probe against three clients sharing one transport."""

    async def go() -> FetchResult[LatencyMetrics]:
        async with (
            httpx.AsyncClient(base_url="http://risk.test", transport=transport) as risk,
            httpx.AsyncClient(base_url="http://trading.test", transport=transport) as trading,
            httpx.AsyncClient(base_url="http://ledger.test", transport=transport) as ledger,
        ):
            probe = LatencyProbe(
                DownstreamClient("risk", risk, retry_policy=FAST_POLICY),
                DownstreamClient("trading", trading, retry_policy=FAST_POLICY),
                DownstreamClient("ledger", ledger, retry_policy=FAST_POLICY),
            )
            return await probe.measure()

    return asyncio.run(go())


class TestLatencyProbe:
    """Tests for LatencyProbe."""

    def test_all_pings_succeed(self) -> None:
        """Every service reports a round-trip time."""
        paths: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            paths.append(request.url.path)
            return httpx.Response(200, text="pong")

        result = measure(httpx.MockTransport(handler))

        assert result.branch == "latency_metrics"
        assert result.outcome == FetchOutcome.SUCCESS
        assert result.error is None
        assert result.payload.risk_service_ms >= 0.0
        assert sorted(paths) == ["/api/ledger/ping", "/api/risk/ping", "/api/trading/ping"]

    def test_failed_ping_marks_fallback(self) -> None:
        """A service that cannot be pinged reports 0.0 and the probe falls back."""

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "ledger.test":
                return httpx.Response(503)
            return httpx.Response(200, text="pong")

        result = measure(httpx.MockTransport(handler))

        assert result.outcome == FetchOutcome.FALLBACK
        assert result.payload.ledger_service_ms == 0.0
        assert result.attempts == 3
        assert result.error is not None
        assert result.error.error_class == FetchErrorClass.HTTP_5XX

    def test_retried_ping_marks_retried_success(self) -> None:
        """A ping that needed a retry is reported as such."""
        seen: set[str] = set()

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "trading.test" and "trading" not in seen:
                seen.add("trading")
                return httpx.Response(500)
            return httpx.Response(200, text="pong")

        result = measure(httpx.MockTransport(handler))

        assert result.outcome == FetchOutcome.RETRIED_SUCCESS
        assert result.attempts == 2

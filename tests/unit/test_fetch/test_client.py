"""Unit tests for DownstreamClient timeout/retry/fallback behavior."""

import asyncio
from collections.abc import Callable
from typing import Any

import httpx
import pytest

from riskboard.fetch import sources
from riskboard.fetch.client import DownstreamClient
from riskboard.fetch.metrics import FetchMetrics
from riskboard.fetch.models import (
    FetchErrorClass,
    FetchOutcome,
    FetchResult,
    FetchSpec,
    RetryPolicy,
)
from riskboard.fetch.payloads import RiskAccount, RiskSummary


Handler = Callable[[httpx.Request], Any]

FAST_POLICY = RetryPolicy(max_retries=2, base_delay_ms=0, jitter_factor=0.0)

ACCOUNTS_BODY = [
    {"accountId": "ACC-001", "book": "EQUITIES", "exposure": 1500000.0, "utilization": 0.82},
    {"accountId": "ACC-002", "book": "FUTURES", "exposure": 1250000.0, "utilization": 0.76},
]


class CountingHandler:
    """MockTransport handler replaying a scripted list of responses."""

    def __init__(self, *responses: httpx.Response | Exception) -> None:
        self._responses = list(responses)
        self.calls = 0
        self.paths: list[str] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.paths.append(request.url.path)
        index = min(self.calls, len(self._responses) - 1)
        self.calls += 1
        response = self._responses[index]
        if isinstance(response, Exception):
            raise response
        return httpx.Response(
            response.status_code, headers=response.headers, content=response.content
        )


def run_fetch(
    handler: Handler,
    spec: FetchSpec[Any],
    policy: RetryPolicy = FAST_POLICY,
    timeout_seconds: float = 1.0,
) -> FetchResult[Any]:
    """Fetch one spec through a MockTransport-backed client."""

    async def go() -> FetchResult[Any]:
        async with httpx.AsyncClient(
            base_url="http://risk.test", transport=httpx.MockTransport(handler)
        ) as http:
            client = DownstreamClient(
                "risk", http, retry_policy=policy, timeout_seconds=timeout_seconds
            )
            return await client.fetch(spec)

    return asyncio.run(go())


class TestFetchSuccess:
    """Tests for successful fetches."""

    def test_decodes_list_payload(self) -> None:
        """A 200 response is decoded into the spec's payload type."""
        handler = CountingHandler(httpx.Response(200, json=ACCOUNTS_BODY))

        result = run_fetch(handler, sources.RISK_ACCOUNTS)

        assert result.outcome == FetchOutcome.SUCCESS
        assert result.attempts == 1
        assert result.error is None
        assert result.branch == "risk_accounts"
        assert result.payload == [
            RiskAccount(
                account_id="ACC-001", book="EQUITIES", exposure=1500000.0, utilization=0.82
            ),
            RiskAccount(
                account_id="ACC-002", book="FUTURES", exposure=1250000.0, utilization=0.76
            ),
        ]
        assert handler.paths == ["/api/risk/accounts"]

    def test_decodes_summary_payload(self) -> None:
        """camelCase summary fields map onto the model."""
        handler = CountingHandler(
            httpx.Response(
                200, json={"totalNetExposure": 5390000.0, "maxMarginUtilization": 0.82}
            )
        )

        result = run_fetch(handler, sources.RISK_SUMMARY)

        assert result.is_success
        assert result.payload == RiskSummary(
            total_net_exposure=5390000.0, max_margin_utilization=0.82
        )

    def test_retried_success(self) -> None:
        """A transient 503 followed by a 200 resolves with the downstream data."""
        handler = CountingHandler(
            httpx.Response(503),
            httpx.Response(200, json=ACCOUNTS_BODY),
        )

        result = run_fetch(handler, sources.RISK_ACCOUNTS)

        assert result.outcome == FetchOutcome.RETRIED_SUCCESS
        assert result.attempts == 2
        assert len(result.payload) == 2
        assert result.error is not None
        assert result.error.error_class == FetchErrorClass.HTTP_5XX
        assert FetchMetrics.get_instance().retry_total == 1


class TestFetchFallback:
    """Tests for fallback behavior."""

    def test_5xx_exhausts_retries(self) -> None:
        """Persistent 5xx makes exactly retries + 1 attempts, then falls back."""
        handler = CountingHandler(httpx.Response(500))

        result = run_fetch(handler, sources.RISK_ACCOUNTS)

        assert handler.calls == 3
        assert result.outcome == FetchOutcome.FALLBACK
        assert result.attempts == 3
        assert result.payload == []
        assert result.error is not None
        assert result.error.error_class == FetchErrorClass.HTTP_5XX
        assert result.error.status_code == 500

        metrics = FetchMetrics.get_instance()
        assert metrics.attempts_by_branch["risk_accounts"] == 3
        assert metrics.fallbacks_by_branch["risk_accounts"] == 1
        assert metrics.http_requests_total[500] == 3

    def test_retry_budget_from_policy(self) -> None:
        """Attempts follow the configured retry budget."""
        handler = CountingHandler(httpx.Response(502))
        policy = RetryPolicy(max_retries=4, base_delay_ms=0, jitter_factor=0.0)

        result = run_fetch(handler, sources.RISK_ACCOUNTS, policy=policy)

        assert handler.calls == 5
        assert result.attempts == 5
        assert result.is_fallback

    def test_4xx_fails_immediately(self) -> None:
        """A 404 is not retried."""
        handler = CountingHandler(httpx.Response(404))

        result = run_fetch(handler, sources.RISK_SUMMARY)

        assert handler.calls == 1
        assert result.outcome == FetchOutcome.FALLBACK
        assert result.attempts == 1
        assert result.payload == RiskSummary()
        assert result.error is not None
        assert result.error.error_class == FetchErrorClass.HTTP_4XX

    def test_connection_error_retried(self) -> None:
        """Connection failures are retried and then fall back."""
        handler = CountingHandler(
            httpx.ConnectError("Connection refused"),
        )

        result = run_fetch(handler, sources.RISK_METRICS)

        assert handler.calls == 3
        assert result.is_fallback
        assert result.payload == []
        assert result.error is not None
        assert result.error.error_class == FetchErrorClass.CONNECTION_ERROR

    def test_connection_error_then_success(self) -> None:
        """A reset connection followed by a good response succeeds."""
        handler = CountingHandler(
            httpx.ReadError("Connection reset"),
            httpx.Response(200, json=ACCOUNTS_BODY),
        )

        result = run_fetch(handler, sources.RISK_ACCOUNTS)

        assert result.outcome == FetchOutcome.RETRIED_SUCCESS
        assert result.attempts == 2

    def test_timeout_retried_then_fallback(self) -> None:
        """Each attempt is bounded by the per-call timeout."""
        calls = 0

        async def slow(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            await asyncio.sleep(1.0)
            return httpx.Response(200, json=ACCOUNTS_BODY)

        result = run_fetch(slow, sources.RISK_ACCOUNTS, timeout_seconds=0.05)

        assert calls == 3
        assert result.is_fallback
        assert result.attempts == 3
        assert result.error is not None
        assert result.error.error_class == FetchErrorClass.NETWORK_TIMEOUT
        assert result.elapsed_ms < 1000

    def test_invalid_json_is_decode_error(self) -> None:
        """A non-JSON body falls back without retrying."""
        handler = CountingHandler(httpx.Response(200, text="<html>oops</html>"))

        result = run_fetch(handler, sources.RISK_ACCOUNTS)

        assert handler.calls == 1
        assert result.is_fallback
        assert result.error is not None
        assert result.error.error_class == FetchErrorClass.DECODE_ERROR

    def test_wrong_shape_is_decode_error(self) -> None:
        """A body of the wrong shape falls back without retrying."""
        handler = CountingHandler(httpx.Response(200, json={"accounts": "nope"}))

        result = run_fetch(handler, sources.RISK_ACCOUNTS)

        assert handler.calls == 1
        assert result.is_fallback
        assert result.payload == []
        assert result.error is not None
        assert result.error.error_class == FetchErrorClass.DECODE_ERROR

    def test_fallback_is_fresh_per_call(self) -> None:
        """Fallback factories produce a new value on every fetch."""
        handler = CountingHandler(httpx.Response(404))

        first = run_fetch(handler, sources.OPEN_ORDERS)
        second = run_fetch(handler, sources.OPEN_ORDERS)

        assert first.payload == second.payload == []
        assert first.payload is not second.payload


class TestConcurrentFetches:
    """The client holds no per-request state."""

    def test_concurrent_fetches_share_client(self) -> None:
        """Many concurrent fetches on one client each resolve independently."""

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/api/risk/accounts":
                return httpx.Response(200, json=ACCOUNTS_BODY)
            return httpx.Response(500)

        async def go() -> list[FetchResult[Any]]:
            async with httpx.AsyncClient(
                base_url="http://risk.test", transport=httpx.MockTransport(handler)
            ) as http:
                client = DownstreamClient("risk", http, retry_policy=FAST_POLICY)
                return await asyncio.gather(
                    *(
                        client.fetch(spec)
                        for spec in (
                            sources.RISK_ACCOUNTS,
                            sources.RISK_METRICS,
                            sources.RISK_ACCOUNTS,
                        )
                    )
                )

        results = asyncio.run(go())

        assert [r.outcome for r in results] == [
            FetchOutcome.SUCCESS,
            FetchOutcome.FALLBACK,
            FetchOutcome.SUCCESS,
        ]


class TestPing:
    """Tests for latency pings."""

    @staticmethod
    def _ping(handler: Handler) -> FetchResult[float]:
        async def go() -> FetchResult[float]:
            async with httpx.AsyncClient(
                base_url="http://risk.test", transport=httpx.MockTransport(handler)
            ) as http:
                client = DownstreamClient("risk", http, retry_policy=FAST_POLICY)
                return await client.ping("risk_ping", "/api/risk/ping")

        return asyncio.run(go())

    def test_ping_reports_round_trip(self) -> None:
        """A successful ping reports a non-negative round-trip time."""
        result = self._ping(CountingHandler(httpx.Response(200, text="pong")))

        assert result.outcome == FetchOutcome.SUCCESS
        assert result.branch == "risk_ping"
        assert result.payload >= 0.0

    def test_failed_ping_reports_zero(self) -> None:
        """A ping that exhausts its retries reports 0.0 ms."""
        handler = CountingHandler(httpx.Response(503))

        result = self._ping(handler)

        assert handler.calls == 3
        assert result.is_fallback
        assert result.payload == 0.0


class TestClientProperties:
    """Tests for client accessors."""

    @pytest.mark.parametrize("source", ["risk", "trading", "ledger"])
    def test_source_and_default_policy(self, source: str) -> None:
        """The client exposes its source and default policy."""

        async def go() -> DownstreamClient:
            async with httpx.AsyncClient() as http:
                return DownstreamClient(source, http)

        client = asyncio.run(go())

        assert client.source == source
        assert client.retry_policy == RetryPolicy()

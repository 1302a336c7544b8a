"""Round-trip latency probe across the downstream services."""

import asyncio
import time

import structlog

from riskboard.fetch.client import DownstreamClient
from riskboard.fetch.constants import (
    LEDGER_PING_PATH,
    RISK_PING_PATH,
    TRADING_PING_PATH,
)
from riskboard.fetch.models import FetchOutcome, FetchResult
from riskboard.fetch.payloads import LatencyMetrics


logger = structlog.get_logger()


class LatencyProbe:
    """Pings the risk, trading and ledger services concurrently.

    Each ping goes through its client's timeout/retry policy; a ping that
    falls back reports 0.0 ms and marks the whole probe as a fallback.
    """

    def __init__(
        self,
        risk: DownstreamClient,
        trading: DownstreamClient,
        ledger: DownstreamClient,
        branch: str = "latency_metrics",
    ) -> None:
        """Initialize the probe.

        Args:
            risk: Client for the risk service.
            trading: Client for the trading service.
            ledger: Client for the ledger service.
            branch: Branch name reported on the combined result.
        """
        self._risk = risk
        self._trading = trading
        self._ledger = ledger
        self._branch = branch
        self._log = logger.bind(component="latency", branch=branch)

    async def measure(self) -> FetchResult[LatencyMetrics]:
        """Ping all three services and combine the round-trip times.

        Returns:
            FetchResult with a LatencyMetrics payload.
        """
        start_time_ns = time.perf_counter_ns()
        risk, trading, ledger = await asyncio.gather(
            self._risk.ping("risk_ping", RISK_PING_PATH),
            self._trading.ping("trading_ping", TRADING_PING_PATH),
            self._ledger.ping("ledger_ping", LEDGER_PING_PATH),
        )
        pings = (risk, trading, ledger)
        duration_ms = (time.perf_counter_ns() - start_time_ns) / 1_000_000

        if any(p.is_fallback for p in pings):
            outcome = FetchOutcome.FALLBACK
        elif any(p.outcome == FetchOutcome.RETRIED_SUCCESS for p in pings):
            outcome = FetchOutcome.RETRIED_SUCCESS
        else:
            outcome = FetchOutcome.SUCCESS

        metrics = LatencyMetrics(
            risk_service_ms=risk.payload,
            trading_service_ms=trading.payload,
            ledger_service_ms=ledger.payload,
        )
        self._log.debug(
            "latency_measured",
            outcome=outcome.value,
            risk_ms=round(risk.payload, 2),
            trading_ms=round(trading.payload, 2),
            ledger_ms=round(ledger.payload, 2),
        )

        return FetchResult(
            branch=self._branch,
            payload=metrics,
            outcome=outcome,
            attempts=max(p.attempts for p in pings),
            elapsed_ms=duration_ms,
            error=next((p.error for p in pings if p.is_fallback), None),
        )

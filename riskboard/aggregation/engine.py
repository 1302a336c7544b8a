"""Fan-out/fan-in aggregation of the dashboard view."""

import asyncio
import time
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any

import structlog

from riskboard.aggregation.health import summarize_health
from riskboard.aggregation.metrics import AggregationMetrics
from riskboard.aggregation.models import DashboardView, RiskyAccount
from riskboard.aggregation.state_machine import EngineStateMachine
from riskboard.fetch import sources
from riskboard.fetch.client import DownstreamClient
from riskboard.fetch.constants import DEFAULT_TIMEOUT_SECONDS
from riskboard.fetch.latency import LatencyProbe
from riskboard.fetch.models import (
    FetchError,
    FetchErrorClass,
    FetchOutcome,
    FetchResult,
    FetchSpec,
)
from riskboard.fetch.payloads import LatencyMetrics
from riskboard.ranking.cache import TopEntitiesCache
from riskboard.ranking.models import UNKNOWN_PROFILE, AccountProfile
from riskboard.store.errors import StoreUnavailableError
from riskboard.store.models import RankedEntry


logger = structlog.get_logger()

TOP_ACCOUNTS_BRANCH = "top_risky_accounts"
LATENCY_BRANCH = "latency_metrics"


@dataclass(frozen=True)
class Branch:
    """One independent data source of an aggregate request.

    Attributes:
        name: Key of the branch in the result map.
        source: Source group the branch belongs to, for health accounting.
        run: Coroutine factory resolving the branch. Expected never to raise.
        fallback: Factory for the payload used if run() raises anyway.
    """

    name: str
    source: str
    run: Callable[[], Awaitable[FetchResult[Any]]]
    fallback: Callable[[], Any]


class AggregationEngine:
    """Builds the dashboard view from every branch, run concurrently.

    Implements a state machine flow per request:
        AGGREGATE_PENDING -> AGGREGATE_ALL_RESOLVED -> AGGREGATE_COMPOSED

    Every branch applies its own timeout/retry/fallback, so the join always
    completes with one result per branch. The ranking branch is bounded by
    store_timeout_seconds. There is no engine-level timeout: the request
    takes as long as its slowest branch.
    """

    def __init__(  # noqa: PLR0913
        self,
        cache: TopEntitiesCache,
        risk: DownstreamClient,
        trading: DownstreamClient,
        ledger: DownstreamClient,
        top_k: int = 5,
        profiles: Mapping[str, AccountProfile] | None = None,
        latency_probe: LatencyProbe | None = None,
        metrics: AggregationMetrics | None = None,
        store_timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        """Initialize the engine.

        Args:
            cache: Top risky accounts cache.
            risk: Client for the risk service.
            trading: Client for the trading service.
            ledger: Client for the ledger service.
            top_k: Number of ranked accounts in the view.
            profiles: Enrichment map from account id to book/utilization.
            latency_probe: Optional probe (defaults to pinging the clients).
            metrics: Optional metrics instance.
            store_timeout_seconds: Bound on reading (and seeding) the ranking.
        """
        self._cache = cache
        self._top_k = top_k
        self._store_timeout_seconds = store_timeout_seconds
        self._profiles = dict(profiles or {})
        self._latency_probe = latency_probe or LatencyProbe(
            risk, trading, ledger, branch=LATENCY_BRANCH
        )
        self._metrics = metrics or AggregationMetrics.get_instance()
        self._log = logger.bind(component="aggregation")

        self._branches: tuple[Branch, ...] = (
            Branch(TOP_ACCOUNTS_BRANCH, "ranking", self._load_top_accounts, list),
            *(
                self._downstream_branch(client, spec)
                for client in (risk, trading, ledger)
                for spec in sources.SPECS_BY_SOURCE[client.source]
            ),
            Branch(LATENCY_BRANCH, "latency", self._latency_probe.measure, LatencyMetrics),
        )

    @property
    def branches(self) -> tuple[Branch, ...]:
        """Branches launched by every aggregate() call."""
        return self._branches

    async def aggregate(self) -> DashboardView:
        """Run every branch concurrently and compose the dashboard view.

        Returns:
            DashboardView with every field populated, from downstream data
            or from fallbacks.
        """
        start_time_ns = time.perf_counter_ns()
        state = EngineStateMachine()

        self._log.info("aggregate_started", branch_count=len(self._branches))

        results = await self.resolve_all()
        state.to_all_resolved()

        view = self._compose(results)
        state.to_composed()

        duration_ms = (time.perf_counter_ns() - start_time_ns) / 1_000_000
        self._metrics.record_aggregate(view.health.status.value, duration_ms)
        self._log.info(
            "aggregate_complete",
            status=view.health.status.value,
            healthy=view.health.downstream_healthy_count,
            total=view.health.downstream_total_count,
            fallbacks=sorted(n for n, r in results.items() if r.is_fallback),
            duration_ms=round(duration_ms, 2),
            state=state.state.value,
        )
        return view

    async def resolve_all(self) -> dict[str, FetchResult[Any]]:
        """Launch every branch as a named task and wait for all of them.

        Returns:
            Branch name to resolved result, one entry per branch.
        """
        async with asyncio.TaskGroup() as group:
            tasks = {
                branch.name: group.create_task(
                    self._run_branch(branch), name=f"branch:{branch.name}"
                )
                for branch in self._branches
            }
        return {name: task.result() for name, task in tasks.items()}

    async def _run_branch(self, branch: Branch) -> FetchResult[Any]:
        """Resolve one branch, converting any escaped exception to its fallback."""
        start_time_ns = time.perf_counter_ns()
        try:
            result = await branch.run()
        except Exception as e:  # noqa: BLE001
            duration_ms = (time.perf_counter_ns() - start_time_ns) / 1_000_000
            self._metrics.record_branch_crash(branch.name)
            self._log.error(
                "branch_execution_error",
                branch=branch.name,
                error=repr(e),
            )
            result = FetchResult(
                branch=branch.name,
                payload=branch.fallback(),
                outcome=FetchOutcome.FALLBACK,
                attempts=1,
                elapsed_ms=duration_ms,
                error=FetchError(
                    error_class=FetchErrorClass.UNKNOWN,
                    message=f"Execution error: {e!r}",
                ),
            )

        if result.is_fallback:
            self._metrics.record_branch_fallback(branch.name)
        return result

    async def _load_top_accounts(self) -> FetchResult[list[RankedEntry]]:
        """Read the ranked accounts, falling back to an empty list."""
        start_time_ns = time.perf_counter_ns()
        try:
            async with asyncio.timeout(self._store_timeout_seconds):
                entries = await self._cache.get_top_k(self._top_k)
        except (StoreUnavailableError, TimeoutError) as e:
            message = (
                f"No ranking within {self._store_timeout_seconds}s"
                if isinstance(e, TimeoutError)
                else str(e)
            )
            duration_ms = (time.perf_counter_ns() - start_time_ns) / 1_000_000
            self._log.error(
                "top_accounts_fallback",
                branch=TOP_ACCOUNTS_BRANCH,
                error=message,
            )
            return FetchResult(
                branch=TOP_ACCOUNTS_BRANCH,
                payload=[],
                outcome=FetchOutcome.FALLBACK,
                elapsed_ms=duration_ms,
                error=FetchError(
                    error_class=FetchErrorClass.STORE_UNAVAILABLE,
                    message=message,
                ),
            )

        duration_ms = (time.perf_counter_ns() - start_time_ns) / 1_000_000
        return FetchResult(
            branch=TOP_ACCOUNTS_BRANCH,
            payload=entries,
            outcome=FetchOutcome.SUCCESS,
            elapsed_ms=duration_ms,
        )

    def _compose(self, results: Mapping[str, FetchResult[Any]]) -> DashboardView:
        """Assemble the view from the keyed result map."""
        health = summarize_health(
            results, {branch.name: branch.source for branch in self._branches}
        )

        def payload(spec: FetchSpec[Any]) -> Any:
            return results[spec.name].payload

        return DashboardView(
            top_risky_accounts=[
                self._enrich(entry) for entry in results[TOP_ACCOUNTS_BRANCH].payload
            ],
            health=health,
            risk_summary=payload(sources.RISK_SUMMARY),
            trading_summary=payload(sources.TRADING_SUMMARY),
            ledger_summary=payload(sources.LEDGER_SUMMARY),
            latency_metrics=results[LATENCY_BRANCH].payload,
            risk_accounts=payload(sources.RISK_ACCOUNTS),
            risk_metrics=payload(sources.RISK_METRICS),
            open_orders=payload(sources.OPEN_ORDERS),
            recent_fills=payload(sources.RECENT_FILLS),
            account_balances=payload(sources.ACCOUNT_BALANCES),
            recent_transactions=payload(sources.RECENT_TRANSACTIONS),
        )

    def _enrich(self, entry: RankedEntry) -> RiskyAccount:
        profile = self._profiles.get(entry.id, UNKNOWN_PROFILE)
        return RiskyAccount(
            account_id=entry.id,
            book=profile.book,
            net_exposure=entry.score,
            margin_utilization=profile.margin_utilization,
        )

    @staticmethod
    def _downstream_branch(client: DownstreamClient, spec: FetchSpec[Any]) -> Branch:
        async def run() -> FetchResult[Any]:
            return await client.fetch(spec)

        return Branch(spec.name, client.source, run, spec.fallback)

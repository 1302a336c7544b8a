"""Wiring of the aggregation engine from application settings."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field

import httpx
import structlog

from riskboard.aggregation.engine import AggregationEngine
from riskboard.fetch.client import DownstreamClient
from riskboard.fetch.models import RetryPolicy
from riskboard.ranking.cache import TopEntitiesCache
from riskboard.ranking.candidates import (
    SAMPLE_PROFILES,
    CandidateSource,
    sample_candidate_source,
)
from riskboard.ranking.sink import ExposureUpdateSink
from riskboard.settings.app import AppSettings
from riskboard.store.ranked_set import InMemoryRankedSetStore, RedisRankedSetStore


logger = structlog.get_logger()

RankedStore = RedisRankedSetStore | InMemoryRankedSetStore


@dataclass
class Dashboard:
    """Long-lived components serving aggregate requests and exposure events."""

    engine: AggregationEngine
    sink: ExposureUpdateSink
    store: RankedStore
    http_clients: list[httpx.AsyncClient] = field(default_factory=list)

    async def aclose(self) -> None:
        """Flush pending events and release connections."""
        try:
            await self.sink.drain()
        finally:
            try:
                for client in self.http_clients:
                    await client.aclose()
            finally:
                await self.store.aclose()


def build_store(settings: AppSettings) -> RankedStore:
    """Create the ranked set store selected by settings.

    Args:
        settings: Application settings.

    Returns:
        Redis-backed store when a URL is configured, otherwise in-memory.
    """
    if settings.redis_url:
        return RedisRankedSetStore.from_url(
            settings.redis_url, timeout_seconds=settings.timeout_seconds
        )
    logger.warning("redis_not_configured", store="in_memory")
    return InMemoryRankedSetStore()


def build_retry_policy(settings: AppSettings) -> RetryPolicy:
    """Retry policy from settings."""
    return RetryPolicy(
        max_retries=settings.max_retries,
        base_delay_ms=settings.base_delay_ms,
    )


@asynccontextmanager
async def open_dashboard(
    settings: AppSettings,
    transport: httpx.AsyncBaseTransport | None = None,
    store: RankedStore | None = None,
    candidates: CandidateSource | None = None,
) -> AsyncIterator[Dashboard]:
    """Build every component and close them on exit.

    Args:
        settings: Application settings.
        transport: Optional httpx transport shared by all downstream clients.
        store: Optional ranked set store (defaults to build_store()).
        candidates: Optional seed source (defaults to the sample accounts).

    Yields:
        Ready-to-use Dashboard.
    """
    policy = build_retry_policy(settings)
    ranked_store = store if store is not None else build_store(settings)

    base_urls = {
        "risk": settings.risk_base_url,
        "trading": settings.trading_base_url,
        "ledger": settings.ledger_base_url,
    }
    http_clients = {
        source: httpx.AsyncClient(
            base_url=url,
            timeout=settings.timeout_seconds,
            transport=transport,
        )
        for source, url in base_urls.items()
    }
    clients = {
        source: DownstreamClient(
            source=source,
            http_client=http_client,
            retry_policy=policy,
            timeout_seconds=settings.timeout_seconds,
        )
        for source, http_client in http_clients.items()
    }

    cache = TopEntitiesCache(
        store=ranked_store,
        candidates=candidates or sample_candidate_source(),
        key=settings.ranked_set_key,
    )
    engine = AggregationEngine(
        cache=cache,
        risk=clients["risk"],
        trading=clients["trading"],
        ledger=clients["ledger"],
        top_k=settings.top_k,
        profiles=SAMPLE_PROFILES,
        store_timeout_seconds=settings.timeout_seconds,
    )
    dashboard = Dashboard(
        engine=engine,
        sink=ExposureUpdateSink(ranked_store, key=settings.ranked_set_key),
        store=ranked_store,
        http_clients=list(http_clients.values()),
    )

    try:
        yield dashboard
    finally:
        await dashboard.aclose()

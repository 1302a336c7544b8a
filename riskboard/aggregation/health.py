"""Health summary derived from branch outcomes."""

from collections.abc import Mapping
from typing import Any

from riskboard.aggregation.models import HealthStatus, SystemHealth
from riskboard.fetch.models import FetchResult


def summarize_health(
    results: Mapping[str, FetchResult[Any]],
    sources: Mapping[str, str],
) -> SystemHealth:
    """Summarize branch outcomes per downstream source.

    A source counts as healthy when every one of its branches resolved
    without fallback. The status is HEALTHY when all sources are healthy,
    UNAVAILABLE when none are, and DEGRADED otherwise.

    Args:
        results: Branch name to resolved result.
        sources: Branch name to source group (risk, trading, ...).

    Returns:
        SystemHealth for the dashboard.
    """
    healthy_by_source: dict[str, bool] = {}
    for name, result in results.items():
        source = sources.get(name, name)
        healthy_by_source[source] = (
            healthy_by_source.get(source, True) and result.is_success
        )

    total = len(healthy_by_source)
    healthy = sum(1 for ok in healthy_by_source.values() if ok)

    if healthy == total:
        status = HealthStatus.HEALTHY
    elif healthy == 0:
        status = HealthStatus.UNAVAILABLE
    else:
        status = HealthStatus.DEGRADED

    avg_latency_ms = (
        sum(r.elapsed_ms for r in results.values()) / len(results) if results else 0.0
    )

    return SystemHealth(
        status=status,
        avg_latency_ms=round(avg_latency_ms, 2),
        downstream_healthy_count=healthy,
        downstream_total_count=total,
        branches={name: results[name].outcome for name in sorted(results)},
    )

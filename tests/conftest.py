"""Shared pytest fixtures."""

from collections.abc import Iterator

import pytest

from riskboard.aggregation.metrics import AggregationMetrics
from riskboard.fetch.metrics import FetchMetrics
from riskboard.ranking.metrics import RankingMetrics


@pytest.fixture(autouse=True)
def reset_metrics() -> Iterator[None]:
    """Give every test fresh metrics singletons."""
    FetchMetrics.reset()
    RankingMetrics.reset()
    AggregationMetrics.reset()
    yield
    FetchMetrics.reset()
    RankingMetrics.reset()
    AggregationMetrics.reset()

"""Downstream fetch layer with timeouts, retries, and typed fallbacks.

This module provides resilient access to the risk, trading and ledger
services:
- Fixed per-call timeout
- Retry policy with exponential backoff (5xx, timeouts, connection errors)
- Immediate fallback on client errors and malformed payloads
- Latency probing through lightweight ping endpoints
- Metrics collection for observability
"""

from riskboard.fetch.client import DownstreamClient
from riskboard.fetch.errors import (
    DownstreamError,
    DownstreamTimeoutError,
    RetryableDownstreamError,
    UnretryableDownstreamError,
)
from riskboard.fetch.latency import LatencyProbe
from riskboard.fetch.metrics import FetchMetrics
from riskboard.fetch.models import (
    FetchError,
    FetchErrorClass,
    FetchOutcome,
    FetchResult,
    FetchSpec,
    RetryPolicy,
)
from riskboard.fetch.state_machine import (
    BranchState,
    BranchStateMachine,
    BranchStateTransitionError,
)


__all__ = [
    # Client
    "DownstreamClient",
    "LatencyProbe",
    # Errors
    "DownstreamError",
    "DownstreamTimeoutError",
    "RetryableDownstreamError",
    "UnretryableDownstreamError",
    # Models
    "FetchError",
    "FetchErrorClass",
    "FetchOutcome",
    "FetchResult",
    "FetchSpec",
    "RetryPolicy",
    # State
    "BranchState",
    "BranchStateMachine",
    "BranchStateTransitionError",
    # Metrics
    "FetchMetrics",
]

"""Dashboard aggregation: concurrent branches, join barrier, composite view."""

from riskboard.aggregation.engine import (
    LATENCY_BRANCH,
    TOP_ACCOUNTS_BRANCH,
    AggregationEngine,
    Branch,
)
from riskboard.aggregation.health import summarize_health
from riskboard.aggregation.metrics import AggregationMetrics
from riskboard.aggregation.models import (
    DashboardView,
    HealthStatus,
    RiskyAccount,
    SystemHealth,
)
from riskboard.aggregation.state_machine import (
    EngineState,
    EngineStateMachine,
    EngineStateTransitionError,
)


__all__ = [
    "LATENCY_BRANCH",
    "TOP_ACCOUNTS_BRANCH",
    "AggregationEngine",
    "AggregationMetrics",
    "Branch",
    "DashboardView",
    "EngineState",
    "EngineStateMachine",
    "EngineStateTransitionError",
    "HealthStatus",
    "RiskyAccount",
    "SystemHealth",
    "summarize_health",
]

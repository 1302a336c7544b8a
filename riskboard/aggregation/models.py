"""View models returned to the dashboard front-end."""

from enum import Enum
from typing import Annotated

from pydantic import Field

from riskboard.fetch.models import FetchOutcome
from riskboard.fetch.payloads import (
    AccountBalance,
    CamelModel,
    LatencyMetrics,
    LedgerSummary,
    RiskAccount,
    RiskMetric,
    RiskSummary,
    TradingFill,
    TradingOrder,
    TradingSummary,
    Transaction,
)


class HealthStatus(str, Enum):
    """Overall dashboard health.

    - HEALTHY: every source resolved without fallback
    - DEGRADED: at least one source, but not all, fell back
    - UNAVAILABLE: every source fell back
    """

    HEALTHY = "HEALTHY"
    DEGRADED = "DEGRADED"
    UNAVAILABLE = "UNAVAILABLE"


class RiskyAccount(CamelModel):
    """A ranked account enriched with its book and margin utilization."""

    account_id: str
    book: str
    net_exposure: float
    margin_utilization: float


class SystemHealth(CamelModel):
    """Health summary derived from branch outcomes."""

    status: HealthStatus
    avg_latency_ms: Annotated[float, Field(ge=0.0)]
    downstream_healthy_count: Annotated[int, Field(ge=0)]
    downstream_total_count: Annotated[int, Field(ge=0)]
    branches: dict[str, FetchOutcome] = Field(default_factory=dict)


class DashboardView(CamelModel):
    """Composite view of every branch, built once all branches resolved."""

    top_risky_accounts: list[RiskyAccount]
    health: SystemHealth
    risk_summary: RiskSummary
    trading_summary: TradingSummary
    ledger_summary: LedgerSummary
    latency_metrics: LatencyMetrics
    risk_accounts: list[RiskAccount]
    risk_metrics: list[RiskMetric]
    open_orders: list[TradingOrder]
    recent_fills: list[TradingFill]
    account_balances: list[AccountBalance]
    recent_transactions: list[Transaction]

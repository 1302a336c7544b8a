"""Payload shapes returned by the downstream services.

Field names are snake_case in Python and camelCase on the wire, matching the
JSON produced by the risk, trading and ledger services and consumed by the
dashboard front-end.
"""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serializing to camelCase JSON."""

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class RiskSummary(CamelModel):
    """High-level risk KPIs from the risk engine."""

    total_net_exposure: float = 0.0
    max_margin_utilization: float = 0.0


class RiskAccount(CamelModel):
    account_id: str
    book: str
    exposure: float
    utilization: float


class RiskMetric(CamelModel):
    metric_type: str
    value: float
    status: str


class TradingSummary(CamelModel):
    """Trading activity and PnL from the trading service."""

    open_orders: int = 0
    filled_today: int = 0
    realized_pnl: float = 0.0


class TradingOrder(CamelModel):
    order_id: str
    symbol: str
    side: str
    quantity: int
    price: float
    status: str


class TradingFill(CamelModel):
    fill_id: str
    symbol: str
    side: str
    quantity: int
    price: float
    pnl: float


class LedgerSummary(CamelModel):
    """Cash and margin totals from the ledger service."""

    unsettled_cash: float = 0.0
    margin_balance: float = 0.0


class AccountBalance(CamelModel):
    account_id: str
    currency: str
    cash_balance: float
    margin_used: float
    available_margin: float


class Transaction(CamelModel):
    transaction_id: str
    account_id: str
    transaction_type: str
    currency: str
    amount: float
    status: str


class LatencyMetrics(CamelModel):
    """Round-trip times to each downstream, in milliseconds.

    A service whose ping fell back reports 0.0.
    """

    risk_service_ms: float = 0.0
    trading_service_ms: float = 0.0
    ledger_service_ms: float = 0.0

"""Branch specifications for the risk, trading and ledger services.

Each spec pairs an endpoint with the payload shape it returns and the
fallback used when the endpoint cannot be reached.
"""

from typing import Any

from riskboard.fetch.constants import (
    LEDGER_BALANCES_PATH,
    LEDGER_SUMMARY_PATH,
    LEDGER_TRANSACTIONS_PATH,
    RISK_ACCOUNTS_PATH,
    RISK_METRICS_PATH,
    RISK_SUMMARY_PATH,
    TRADING_FILLS_PATH,
    TRADING_ORDERS_PATH,
    TRADING_SUMMARY_PATH,
)
from riskboard.fetch.models import FetchSpec
from riskboard.fetch.payloads import (
    AccountBalance,
    LedgerSummary,
    RiskAccount,
    RiskMetric,
    RiskSummary,
    TradingFill,
    TradingOrder,
    TradingSummary,
    Transaction,
)


# Risk service
RISK_SUMMARY: FetchSpec[RiskSummary] = FetchSpec(
    name="risk_summary",
    path=RISK_SUMMARY_PATH,
    payload_type=RiskSummary,
    fallback=RiskSummary,
)
RISK_ACCOUNTS: FetchSpec[list[RiskAccount]] = FetchSpec(
    name="risk_accounts",
    path=RISK_ACCOUNTS_PATH,
    payload_type=list[RiskAccount],
    fallback=list,
)
RISK_METRICS: FetchSpec[list[RiskMetric]] = FetchSpec(
    name="risk_metrics",
    path=RISK_METRICS_PATH,
    payload_type=list[RiskMetric],
    fallback=list,
)

# Trading service
TRADING_SUMMARY: FetchSpec[TradingSummary] = FetchSpec(
    name="trading_summary",
    path=TRADING_SUMMARY_PATH,
    payload_type=TradingSummary,
    fallback=TradingSummary,
)
OPEN_ORDERS: FetchSpec[list[TradingOrder]] = FetchSpec(
    name="open_orders",
    path=TRADING_ORDERS_PATH,
    payload_type=list[TradingOrder],
    fallback=list,
)
RECENT_FILLS: FetchSpec[list[TradingFill]] = FetchSpec(
    name="recent_fills",
    path=TRADING_FILLS_PATH,
    payload_type=list[TradingFill],
    fallback=list,
)

# Ledger service
LEDGER_SUMMARY: FetchSpec[LedgerSummary] = FetchSpec(
    name="ledger_summary",
    path=LEDGER_SUMMARY_PATH,
    payload_type=LedgerSummary,
    fallback=LedgerSummary,
)
ACCOUNT_BALANCES: FetchSpec[list[AccountBalance]] = FetchSpec(
    name="account_balances",
    path=LEDGER_BALANCES_PATH,
    payload_type=list[AccountBalance],
    fallback=list,
)
RECENT_TRANSACTIONS: FetchSpec[list[Transaction]] = FetchSpec(
    name="recent_transactions",
    path=LEDGER_TRANSACTIONS_PATH,
    payload_type=list[Transaction],
    fallback=list,
)


SPECS_BY_SOURCE: dict[str, tuple[FetchSpec[Any], ...]] = {
    "risk": (RISK_SUMMARY, RISK_ACCOUNTS, RISK_METRICS),
    "trading": (TRADING_SUMMARY, OPEN_ORDERS, RECENT_FILLS),
    "ledger": (LEDGER_SUMMARY, ACCOUNT_BALANCES, RECENT_TRANSACTIONS),
}

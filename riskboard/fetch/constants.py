"""HTTP constants for the downstream fetch layer.

Centralizes all HTTP-related constants to avoid duplication across modules.
"""

# HTTP Status Code Ranges
HTTP_STATUS_OK_MIN = 200
HTTP_STATUS_OK_MAX = 300
HTTP_STATUS_SERVER_ERROR_MIN = 500
HTTP_STATUS_SERVER_ERROR_MAX = 600

# Resilience defaults applied to every downstream call
DEFAULT_TIMEOUT_SECONDS = 5.0
DEFAULT_MAX_RETRIES = 2
DEFAULT_BASE_DELAY_MS = 100

# Downstream endpoint paths
RISK_SUMMARY_PATH = "/api/risk/summary"
RISK_ACCOUNTS_PATH = "/api/risk/accounts"
RISK_METRICS_PATH = "/api/risk/metrics"
RISK_PING_PATH = "/api/risk/ping"

TRADING_SUMMARY_PATH = "/api/trading/summary"
TRADING_ORDERS_PATH = "/api/trading/orders"
TRADING_FILLS_PATH = "/api/trading/fills"
TRADING_PING_PATH = "/api/trading/ping"

LEDGER_SUMMARY_PATH = "/api/ledger/summary"
LEDGER_BALANCES_PATH = "/api/ledger/balances"
LEDGER_TRANSACTIONS_PATH = "/api/ledger/transactions"
LEDGER_PING_PATH = "/api/ledger/ping"

"""Risk dashboard backend-for-frontend aggregation engine."""

__version__ = "0.1.0"

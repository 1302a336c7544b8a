"""Ranked set storage for the top risky accounts working set."""

from riskboard.store.errors import RankedStoreError, StoreUnavailableError
from riskboard.store.models import RankedEntry
from riskboard.store.ranked_set import (
    InMemoryRankedSetStore,
    RankedSetStore,
    RedisRankedSetStore,
)


__all__ = [
    "InMemoryRankedSetStore",
    "RankedEntry",
    "RankedSetStore",
    "RankedStoreError",
    "RedisRankedSetStore",
    "StoreUnavailableError",
]

"""Ranked set stores: an external Redis sorted set and an in-memory twin."""

import math
from typing import Protocol

import redis.asyncio as aioredis
import structlog
from redis.exceptions import RedisError

from riskboard.store.errors import StoreUnavailableError
from riskboard.store.models import RankedEntry


logger = structlog.get_logger()


class RankedSetStore(Protocol):
    """Contract over an ordered set keyed by member id with a numeric score.

    Implementations must tolerate concurrent reads and concurrent keyed
    upserts without coordination.
    """

    async def reverse_range_with_scores(
        self, key: str, start: int, end: int
    ) -> list[RankedEntry]:
        """Return members ranked start..end (inclusive), highest score first."""
        ...

    async def add(self, key: str, member: str, score: float) -> bool:
        """Upsert a member's score.

        Returns:
            True if the member was newly inserted, False if its score was
            overwritten.
        """
        ...


def _validate_score(score: float) -> None:
    if not math.isfinite(score):
        msg = f"Score must be finite, got {score!r}"
        raise ValueError(msg)


class RedisRankedSetStore:
    """RankedSetStore backed by a Redis sorted set (ZREVRANGE / ZADD)."""

    def __init__(self, client: aioredis.Redis) -> None:
        """Initialize the store.

        Args:
            client: Async Redis client.
        """
        self._client = client
        self._log = logger.bind(component="store", backend="redis")

    @classmethod
    def from_url(cls, url: str, timeout_seconds: float = 5.0) -> "RedisRankedSetStore":
        """Create a store from a Redis URL.

        Args:
            url: Redis connection URL, e.g. redis://localhost:6379/0.
            timeout_seconds: Socket connect and read timeout.

        Returns:
            Store using a pooled async client.
        """
        return cls(
            aioredis.from_url(
                url,
                decode_responses=True,
                socket_timeout=timeout_seconds,
                socket_connect_timeout=timeout_seconds,
            )
        )

    async def reverse_range_with_scores(
        self, key: str, start: int, end: int
    ) -> list[RankedEntry]:
        """Read a rank range, highest score first.

        Raises:
            StoreUnavailableError: If Redis cannot be reached.
        """
        try:
            rows = await self._client.zrevrange(key, start, end, withscores=True)
        except (RedisError, OSError) as e:
            self._log.warning("store_read_failed", key=key, error=str(e))
            raise StoreUnavailableError("read", key, str(e)) from e

        return [
            RankedEntry(
                id=member.decode() if isinstance(member, bytes) else str(member),
                score=float(score),
            )
            for member, score in rows
        ]

    async def add(self, key: str, member: str, score: float) -> bool:
        """Upsert a member's score.

        Raises:
            ValueError: If the score is not finite.
            StoreUnavailableError: If Redis cannot be reached.
        """
        _validate_score(score)
        try:
            added = await self._client.zadd(key, {member: score})
        except (RedisError, OSError) as e:
            self._log.warning("store_write_failed", key=key, member=member, error=str(e))
            raise StoreUnavailableError("write", key, str(e)) from e
        return bool(added)

    async def aclose(self) -> None:
        """Close the underlying connection pool."""
        await self._client.aclose()


class InMemoryRankedSetStore:
    """Process-local RankedSetStore with Redis ordering semantics.

    Ties on score are ordered by member, descending, as ZREVRANGE does.
    Used for local runs without Redis and in tests.
    """

    def __init__(self) -> None:
        """Initialize an empty store."""
        self._sets: dict[str, dict[str, float]] = {}

    async def reverse_range_with_scores(
        self, key: str, start: int, end: int
    ) -> list[RankedEntry]:
        """Read a rank range, highest score first."""
        members = self._sets.get(key, {})
        ranked = sorted(
            members.items(), key=lambda item: (item[1], item[0]), reverse=True
        )

        size = len(ranked)
        if start < 0:
            start = max(size + start, 0)
        if end < 0:
            end = size + end
        if start >= size or start > end:
            return []
        end = min(end, size - 1)

        return [
            RankedEntry(id=member, score=score)
            for member, score in ranked[start : end + 1]
        ]

    async def add(self, key: str, member: str, score: float) -> bool:
        """Upsert a member's score.

        Raises:
            ValueError: If the score is not finite.
        """
        _validate_score(score)
        members = self._sets.setdefault(key, {})
        is_new = member not in members
        members[member] = float(score)
        return is_new

    def size(self, key: str) -> int:
        """Number of members stored under a key."""
        return len(self._sets.get(key, {}))

    async def aclose(self) -> None:
        """Nothing to release."""

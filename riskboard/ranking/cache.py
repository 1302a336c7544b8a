"""Cache-aside manager for the top-K risky accounts."""

import asyncio

import structlog

from riskboard.ranking.candidates import CandidateSource
from riskboard.ranking.metrics import RankingMetrics
from riskboard.store.models import RankedEntry
from riskboard.store.ranked_set import RankedSetStore


logger = structlog.get_logger()

DEFAULT_RANKED_SET_KEY = "top:risky:accounts"


class TopEntitiesCache:
    """Reads the top-K working set from the ranked store, seeding it on a miss.

    Flow for one get_top_k(k) call:
        READ -> (non-empty) -> return
        READ -> (empty) -> SEED -> RE-READ -> return (even if still empty)

    Concurrent callers racing on an empty store may both seed. Seeding writes
    keyed upserts, so the set converges to the same ranking without locks.
    Store failures propagate as StoreUnavailableError.
    """

    def __init__(
        self,
        store: RankedSetStore,
        candidates: CandidateSource,
        key: str = DEFAULT_RANKED_SET_KEY,
        metrics: RankingMetrics | None = None,
    ) -> None:
        """Initialize the cache.

        Args:
            store: External ranked set store.
            candidates: Batch source used to seed an empty store.
            key: Sorted set key.
            metrics: Optional metrics instance.
        """
        self._store = store
        self._candidates = candidates
        self._key = key
        self._metrics = metrics or RankingMetrics.get_instance()
        self._log = logger.bind(component="ranking", key=key)

    @property
    def key(self) -> str:
        """Sorted set key read by this cache."""
        return self._key

    async def get_top_k(self, k: int) -> list[RankedEntry]:
        """Return at most k entries, highest score first.

        Args:
            k: Number of entries requested.

        Returns:
            Entries in descending score order.

        Raises:
            ValueError: If k is negative.
            StoreUnavailableError: If the store cannot be read or written.
        """
        if k < 0:
            msg = f"k must be non-negative, got {k}"
            raise ValueError(msg)
        if k == 0:
            return []

        entries = await self._read(k)
        if entries:
            self._metrics.record_hit()
            self._log.debug("top_k_hit", k=k, returned=len(entries))
            return entries

        self._metrics.record_miss()
        self._log.info("top_k_miss", k=k)

        written = await self._seed(k)
        entries = await self._read(k)

        self._metrics.record_seed(written, empty_after=not entries)
        self._log.info(
            "top_k_seeded",
            k=k,
            entries_written=written,
            returned=len(entries),
        )
        return entries

    async def _read(self, k: int) -> list[RankedEntry]:
        return await self._store.reverse_range_with_scores(self._key, 0, k - 1)

    async def _seed(self, k: int) -> int:
        """Write the k best candidates into the store.

        Args:
            k: Number of entries to write.

        Returns:
            Number of entries written.
        """
        candidates = await self._candidates.load_candidates()
        best = sorted(candidates, key=lambda entry: entry.score, reverse=True)[:k]

        await asyncio.gather(
            *(self._store.add(self._key, entry.id, entry.score) for entry in best)
        )
        return len(best)

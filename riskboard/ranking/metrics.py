"""Metrics collection for the ranking cache and exposure sink."""

from dataclasses import dataclass, field
from threading import Lock


_metrics_instance: "RankingMetrics | None" = None
_metrics_lock: Lock = Lock()


@dataclass
class RankingMetrics:
    """Thread-safe counters for cache reads, seeding and event upserts."""

    _lock: Lock = field(default_factory=Lock, repr=False, compare=False)

    cache_hits: int = 0
    cache_misses: int = 0
    seeds_total: int = 0
    seed_entries_written: int = 0
    seed_empty_after_reread: int = 0
    events_received: int = 0
    events_applied: int = 0
    events_dropped: dict[str, int] = field(default_factory=dict)

    @classmethod
    def get_instance(cls) -> "RankingMetrics":
        """Get the singleton instance (thread-safe)."""
        global _metrics_instance  # noqa: PLW0603
        if _metrics_instance is None:
            with _metrics_lock:
                if _metrics_instance is None:
                    _metrics_instance = cls()
        return _metrics_instance

    @classmethod
    def reset(cls) -> None:
        """Reset the singleton instance (for testing)."""
        global _metrics_instance  # noqa: PLW0603
        with _metrics_lock:
            _metrics_instance = None

    def record_hit(self) -> None:
        with self._lock:
            self.cache_hits += 1

    def record_miss(self) -> None:
        with self._lock:
            self.cache_misses += 1

    def record_seed(self, entries_written: int, empty_after: bool) -> None:
        """Record one seeding pass.

        Args:
            entries_written: Number of entries upserted.
            empty_after: Whether the re-read after seeding was still empty.
        """
        with self._lock:
            self.seeds_total += 1
            self.seed_entries_written += entries_written
            if empty_after:
                self.seed_empty_after_reread += 1

    def record_event_received(self) -> None:
        with self._lock:
            self.events_received += 1

    def record_event_applied(self) -> None:
        with self._lock:
            self.events_applied += 1

    def record_event_dropped(self, reason: str) -> None:
        """Record a dropped event.

        Args:
            reason: Drop reason (invalid_payload, store_unavailable).
        """
        with self._lock:
            self.events_dropped[reason] = self.events_dropped.get(reason, 0) + 1

    def to_dict(self) -> dict[str, int | dict[str, int]]:
        """Convert metrics to dictionary."""
        with self._lock:
            return {
                "ranking_cache_hits_total": self.cache_hits,
                "ranking_cache_misses_total": self.cache_misses,
                "ranking_seeds_total": self.seeds_total,
                "ranking_seed_entries_written_total": self.seed_entries_written,
                "ranking_seed_empty_after_reread_total": self.seed_empty_after_reread,
                "exposure_events_received_total": self.events_received,
                "exposure_events_applied_total": self.events_applied,
                "exposure_events_dropped_total": dict(self.events_dropped),
            }

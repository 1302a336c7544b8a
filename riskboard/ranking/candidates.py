"""Secondary candidate sources used to seed an empty ranked set."""

import asyncio
from collections.abc import Sequence
from typing import Protocol

from riskboard.ranking.models import AccountProfile
from riskboard.store.models import RankedEntry


class CandidateSource(Protocol):
    """Batch source of ranking candidates."""

    async def load_candidates(self) -> list[RankedEntry]:
        """Return every candidate entry, in no particular order."""
        ...


class StaticCandidateSource:
    """In-memory batch of candidates.

    Optionally waits between elements to model a slow batch read.
    """

    def __init__(
        self,
        entries: Sequence[RankedEntry],
        per_entry_delay_seconds: float = 0.0,
    ) -> None:
        """Initialize the source.

        Args:
            entries: Candidate entries.
            per_entry_delay_seconds: Delay applied before yielding each entry.
        """
        self._entries = tuple(entries)
        self._delay = per_entry_delay_seconds

    async def load_candidates(self) -> list[RankedEntry]:
        """Return all candidates."""
        loaded: list[RankedEntry] = []
        for entry in self._entries:
            if self._delay > 0:
                await asyncio.sleep(self._delay)
            loaded.append(entry)
        return loaded


# Sample positions used when nothing has been published to the ranked set yet.
SAMPLE_ACCOUNTS: tuple[tuple[str, str, float, float], ...] = (
    ("ACC-001", "EQUITIES", 1_500_000.0, 0.82),
    ("ACC-002", "FUTURES", 1_250_000.0, 0.76),
    ("ACC-003", "OPTIONS", 980_000.0, 0.68),
    ("ACC-004", "FX", 730_000.0, 0.59),
    ("ACC-005", "CREDIT", 510_000.0, 0.44),
    ("ACC-006", "RATES", 430_000.0, 0.37),
)

SAMPLE_CANDIDATES: tuple[RankedEntry, ...] = tuple(
    RankedEntry(id=account_id, score=exposure)
    for account_id, _, exposure, _ in SAMPLE_ACCOUNTS
)

SAMPLE_PROFILES: dict[str, AccountProfile] = {
    account_id: AccountProfile(book=book, margin_utilization=utilization)
    for account_id, book, _, utilization in SAMPLE_ACCOUNTS
}


def sample_candidate_source(
    per_entry_delay_seconds: float = 0.03,
) -> StaticCandidateSource:
    """Candidate source over the sample accounts."""
    return StaticCandidateSource(SAMPLE_CANDIDATES, per_entry_delay_seconds)

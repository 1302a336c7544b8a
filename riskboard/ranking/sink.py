"""Best-effort writer of exposure events into the ranked set."""

import asyncio
import json
from collections.abc import AsyncIterable, Mapping
from typing import Any

import structlog
from pydantic import ValidationError

from riskboard.ranking.cache import DEFAULT_RANKED_SET_KEY
from riskboard.ranking.metrics import RankingMetrics
from riskboard.ranking.models import ExposureEvent
from riskboard.store.errors import StoreUnavailableError
from riskboard.store.ranked_set import RankedSetStore


logger = structlog.get_logger()

EXPOSURE_TOPIC = "risk.exposure.changes"

EventPayload = bytes | str | Mapping[str, Any]


class ExposureUpdateSink:
    """Upserts account net exposure into the ranked set.

    Events are applied at most once per delivery and never retried: a payload
    that fails to decode, or a write the store rejects, is logged and dropped.
    Producers get no back-pressure signal. The ranking self-heals through the
    cache's re-seeding and later events for the same account.
    """

    def __init__(
        self,
        store: RankedSetStore,
        key: str = DEFAULT_RANKED_SET_KEY,
        metrics: RankingMetrics | None = None,
    ) -> None:
        """Initialize the sink.

        Args:
            store: Ranked set store shared with TopEntitiesCache.
            key: Sorted set key.
            metrics: Optional metrics instance.
        """
        self._store = store
        self._key = key
        self._metrics = metrics or RankingMetrics.get_instance()
        self._pending: set[asyncio.Task[None]] = set()
        self._log = logger.bind(component="exposure_sink", topic=EXPOSURE_TOPIC)

    @property
    def pending(self) -> int:
        """Number of submitted events not yet applied or dropped."""
        return len(self._pending)

    async def on_event(self, payload: EventPayload) -> None:
        """Apply one exposure event.

        Args:
            payload: JSON bytes or text, or an already decoded mapping.
        """
        self._metrics.record_event_received()

        event = self._deserialize(payload)
        if event is None:
            return

        try:
            await self._store.add(self._key, event.account_id, event.net_exposure)
        except StoreUnavailableError as e:
            self._metrics.record_event_dropped("store_unavailable")
            self._log.warning(
                "exposure_update_dropped",
                account_id=event.account_id,
                reason="store_unavailable",
                error=str(e),
            )
            return

        self._metrics.record_event_applied()
        self._log.debug(
            "exposure_updated",
            account_id=event.account_id,
            net_exposure=event.net_exposure,
        )

    def submit(self, payload: EventPayload) -> None:
        """Schedule on_event() without waiting for it (fire-and-forget).

        Must be called from a running event loop.
        """
        task = asyncio.get_running_loop().create_task(self.on_event(payload))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        """Wait for every submitted event to be applied or dropped."""
        while self._pending:
            await asyncio.gather(*list(self._pending))

    async def consume(self, messages: AsyncIterable[EventPayload]) -> int:
        """Apply every message of an async stream in arrival order.

        Args:
            messages: Stream of event payloads from the transport adapter.

        Returns:
            Number of messages processed (applied or dropped).
        """
        processed = 0
        async for message in messages:
            await self.on_event(message)
            processed += 1
        return processed

    def _deserialize(self, payload: EventPayload) -> ExposureEvent | None:
        try:
            if isinstance(payload, bytes | str):
                return ExposureEvent.model_validate_json(payload)
            return ExposureEvent.model_validate(payload)
        except ValidationError as e:
            self._metrics.record_event_dropped("invalid_payload")
            self._log.warning(
                "exposure_event_invalid",
                payload=_preview(payload),
                errors=e.error_count(),
            )
            return None


def _preview(payload: EventPayload, limit: int = 200) -> str:
    if isinstance(payload, bytes):
        text = payload.decode("utf-8", errors="replace")
    elif isinstance(payload, str):
        text = payload
    else:
        text = json.dumps(dict(payload), default=str)
    return text[:limit]

"""Event ingestion service feeding the aggregator from the HTTP surface."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from ..aggregator.reducer import AuctionAggregator
from .models import AnalyticsEvent, parse_event
from .validators import validate_event

logger = logging.getLogger(__name__)


class EventService:
    """Validates host payloads and applies them one at a time.

    The lock is the single dispatch queue in front of the aggregator: the
    reducer itself is not safe to run for two events at once.
    """

    def __init__(self, aggregator: AuctionAggregator) -> None:
        self._aggregator = aggregator
        self._lock = asyncio.Lock()

    async def ingest(self, payload: dict[str, Any]) -> AnalyticsEvent:
        event_type = payload.get("event_type")
        if not event_type:
            raise ValueError("event_type is required")
        args = payload.get("args")
        if not isinstance(args, dict):
            raise ValueError("args must be an object")
        validate_event(event_type, args)
        event = parse_event(event_type, args)
        if event is None:  # pragma: no cover - validate_event rejects unknown types
            raise ValueError(f"unknown event type {event_type}")
        async with self._lock:
            self._aggregator.track(event)
        logger.debug("ingested %s for auction %s", event_type, event.auction_id)
        return event

"""Gate finished snapshots by event kind and hand them to the collector."""

from __future__ import annotations

import logging
from collections import Counter
from typing import Any

from ..aggregator.models import Auction, BidAfterTimeoutSnapshot, EventKind, ImpressionSnapshot
from ..config import AnalyticsConfig
from .sinks import Collector, CollectorUnavailable

logger = logging.getLogger(__name__)


class EmissionGateway:
    """Best-effort delivery: a failed emit is logged and dropped, never retried."""

    def __init__(self, collector: Collector, config: AnalyticsConfig) -> None:
        self._collector = collector
        self._wanted = {kind: config.is_wanted(kind) for kind in EventKind}
        self.emitted: Counter[EventKind] = Counter()
        self.dropped: Counter[EventKind] = Counter()
        collector.add_tags(config.tags)
        if config.api_key:
            collector.set_key(config.api_key)

    def is_wanted(self, kind: EventKind) -> bool:
        return self._wanted.get(kind, True)

    def emit_auction(self, auction: Auction) -> bool:
        return self._emit(EventKind.AUCTION, auction)

    def emit_impression(self, impression: ImpressionSnapshot) -> bool:
        return self._emit(EventKind.IMPRESSION, impression)

    def emit_bid_after_timeout(self, snapshot: BidAfterTimeoutSnapshot) -> bool:
        return self._emit(EventKind.BID_AFTER_TIMEOUT, snapshot)

    def _emit(self, kind: EventKind, snapshot: Any) -> bool:
        if not self.is_wanted(kind):
            logger.debug("event kind %s disabled, not emitted", kind.value)
            return False
        try:
            self._collector.emit(kind, snapshot)
        except CollectorUnavailable as exc:
            self.dropped[kind] += 1
            logger.error("Can't log %s event, collector unavailable: %s", kind.value, exc)
            return False
        except Exception:
            self.dropped[kind] += 1
            logger.exception("Can't log %s event, collector failed", kind.value)
            return False
        self.emitted[kind] += 1
        return True

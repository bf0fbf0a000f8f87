"""In-memory store for live auction records."""

from __future__ import annotations

import logging
from copy import deepcopy
from typing import Callable, Iterator

from ..aggregator.errors import MissingAuctionError
from ..aggregator.models import Auction
from ..aggregator.timestamps import now_ms
from ..config import DEFAULT_AUCTION_TTL_MS

logger = logging.getLogger(__name__)


class InMemoryAuctionStore:
    """Owns every Auction record; callers serialize access.

    Records are mutated in place by the reducer. Anything handed outside the
    aggregator goes through ``snapshot`` so later mutation cannot leak into it.
    """

    def __init__(
        self,
        ttl_ms: int = DEFAULT_AUCTION_TTL_MS,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._auctions: dict[str, Auction] = {}
        self._ttl_ms = ttl_ms
        self._clock = clock

    @property
    def ttl_ms(self) -> int:
        return self._ttl_ms

    def create(self, auction: Auction) -> Auction:
        self._auctions[auction.id] = auction
        return auction

    def get(self, auction_id: str) -> Auction | None:
        return self._auctions.get(auction_id)

    def require(self, auction_id: str) -> Auction:
        try:
            return self._auctions[auction_id]
        except KeyError as exc:
            raise MissingAuctionError(auction_id) from exc

    def snapshot(self, auction_id: str) -> Auction:
        return deepcopy(self.require(auction_id))

    def delete(self, auction_id: str) -> None:
        self._auctions.pop(auction_id, None)

    def evict_expired(self) -> list[str]:
        now = self._clock()
        expired = [
            auction_id
            for auction_id, auction in self._auctions.items()
            if now - auction.start_time > self._ttl_ms
        ]
        for auction_id in expired:
            del self._auctions[auction_id]
        if expired:
            logger.debug("evicted %d expired auctions", len(expired))
        return expired

    def __contains__(self, auction_id: object) -> bool:
        return auction_id in self._auctions

    def __len__(self) -> int:
        return len(self._auctions)

    def __iter__(self) -> Iterator[Auction]:
        return iter(list(self._auctions.values()))

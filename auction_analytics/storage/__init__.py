"""Auction store factory."""

from __future__ import annotations

from typing import Callable, Iterator, Protocol

from ..aggregator.models import Auction
from ..aggregator.timestamps import now_ms
from ..config import AnalyticsConfig
from .in_memory import InMemoryAuctionStore


class AuctionStore(Protocol):
    def create(self, auction: Auction) -> Auction: ...

    def get(self, auction_id: str) -> Auction | None: ...

    def require(self, auction_id: str) -> Auction: ...

    def snapshot(self, auction_id: str) -> Auction: ...

    def delete(self, auction_id: str) -> None: ...

    def evict_expired(self) -> list[str]: ...

    def __contains__(self, auction_id: object) -> bool: ...

    def __len__(self) -> int: ...

    def __iter__(self) -> Iterator[Auction]: ...


def build_store(config: AnalyticsConfig, clock: Callable[[], int] = now_ms) -> AuctionStore:
    return InMemoryAuctionStore(ttl_ms=config.auction_ttl_ms, clock=clock)


__all__ = ["AuctionStore", "InMemoryAuctionStore", "build_store"]

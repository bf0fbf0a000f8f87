"""Shared fixtures for aggregator tests."""

from __future__ import annotations

from typing import Any, Iterable

import pytest

from auction_analytics.aggregator.models import EventKind
from auction_analytics.aggregator.reducer import AuctionAggregator
from auction_analytics.catalog.registry import AdUnitEntry, AdUnitRegistry
from auction_analytics.collector.gateway import EmissionGateway
from auction_analytics.collector.sinks import CollectorUnavailable
from auction_analytics.config import AnalyticsConfig, load_analytics_config
from auction_analytics.storage import InMemoryAuctionStore


class FakeClock:
    def __init__(self, now: int = 10_000) -> None:
        self.now = now

    def __call__(self) -> int:
        return self.now


class RecordingCollector:
    def __init__(self) -> None:
        self.events: list[tuple[EventKind, Any]] = []
        self.tags: list[str] = []
        self.key: str | None = None
        self.fail = False

    def add_tags(self, tags: Iterable[str]) -> None:
        self.tags.extend(tags)

    def set_key(self, key: str) -> None:
        self.key = key

    def emit(self, kind: EventKind, snapshot: Any) -> None:
        if self.fail:
            raise CollectorUnavailable("collector offline")
        self.events.append((kind, snapshot))

    def of_kind(self, kind: EventKind) -> list[Any]:
        return [snapshot for emitted, snapshot in self.events if emitted is kind]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def collector() -> RecordingCollector:
    return RecordingCollector()


@pytest.fixture
def catalog() -> AdUnitRegistry:
    return AdUnitRegistry(
        [
            AdUnitEntry(code="div1", path="/1234/home/div1", sizes=((300, 250),)),
            AdUnitEntry(code="Banner-300x250", path="/1234/home/banner"),
        ]
    )


@pytest.fixture
def config() -> AnalyticsConfig:
    return load_analytics_config({"analytics": {"version": "9.9.9"}})


@pytest.fixture
def make_aggregator(catalog, collector, clock):
    def _make(config: AnalyticsConfig | None = None) -> AuctionAggregator:
        config = config or load_analytics_config({"analytics": {"version": "9.9.9"}})
        store = InMemoryAuctionStore(ttl_ms=config.auction_ttl_ms, clock=clock)
        gateway = EmissionGateway(collector, config)
        return AuctionAggregator(store, gateway, catalog, config, clock=clock)

    return _make


@pytest.fixture
def aggregator(make_aggregator, config) -> AuctionAggregator:
    return make_aggregator(config)

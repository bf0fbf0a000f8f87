"""Constructors turning host event payloads into normalized records.

Ad-unit and bidder codes are lower-cased here, and only here; every store
lookup keys on the lower-cased form.
"""

from __future__ import annotations

from copy import deepcopy
from typing import Any

from ..catalog.registry import AdUnitCatalog
from ..events.models import AuctionInit, BidAdjustment, BidRequest, BidWon
from .lookup import find_bidder
from .models import (
    AdUnit,
    Auction,
    BidAfterTimeoutSnapshot,
    Bidder,
    ImpressionSnapshot,
    Size,
)


def extract_ad_unit_code(code: Any) -> str:
    return str(code).lower()


def extract_bidder_code(code: Any) -> str:
    return str(code).lower()


def extract_ad_id(ad_id: Any) -> str | None:
    if ad_id is None:
        return None
    return str(ad_id).lower()


def extract_sizes(raw: Any) -> list[str]:
    """Flatten ``[w, h]`` or ``[[w1, h1], [w2, h2]]`` into ``"WxH"`` strings."""
    if not isinstance(raw, (list, tuple)) or not raw:
        return []
    if isinstance(raw[0], (list, tuple)):
        return [f"{size[0]}x{size[1]}" for size in raw if len(size) >= 2]
    if len(raw) >= 2:
        return [f"{raw[0]}x{raw[1]}"]
    return []


def build_auction(event: AuctionInit) -> Auction:
    return Auction(
        id=event.auction_id,
        start_time=event.timestamp,
        timeout_ms=event.timeout_ms,
    )


def build_ad_unit(auction: Auction, bid: BidRequest, catalog: AdUnitCatalog) -> AdUnit:
    code = extract_ad_unit_code(bid.ad_unit_code)
    return AdUnit(
        code=code,
        path=catalog.resolve_path(code),
        sizes=extract_sizes(bid.sizes),
        start_time=auction.start_time,
        timeout_ms=auction.timeout_ms,
    )


def build_bidder(bid: BidRequest, now: int) -> Bidder:
    return Bidder(
        bidder_code=extract_bidder_code(bid.bidder_code),
        request_start_time=bid.start_time or now,
        source=bid.source or "client",
    )


def build_impression(
    ad_unit: AdUnit,
    event: BidWon,
    catalog: AdUnitCatalog,
) -> ImpressionSnapshot:
    snapshot = deepcopy(ad_unit)
    code = extract_ad_unit_code(event.ad_unit_code)
    winner = find_bidder(snapshot, event.bidder_code, extract_ad_id(event.ad_id))
    cpm = winner.cpm if winner is not None and winner.cpm > 0 else event.cpm
    return ImpressionSnapshot(
        ad_unit=snapshot,
        ad_unit_code=code,
        ad_unit_path=catalog.resolve_path(code),
        bidder_code=extract_bidder_code(event.bidder_code),
        cpm=cpm,
        size=Size(event.width, event.height),
        media_type=event.media_type or "-",
    )


def build_bid_after_timeout(
    ad_unit: AdUnit,
    event: BidAdjustment,
    catalog: AdUnitCatalog,
) -> BidAfterTimeoutSnapshot:
    code = extract_ad_unit_code(event.ad_unit_code)
    return BidAfterTimeoutSnapshot(
        ad_unit=deepcopy(ad_unit),
        ad_unit_code=code,
        ad_unit_path=catalog.resolve_path(code),
        bidder_code=extract_bidder_code(event.bidder_code),
        cpm=event.cpm,
        size=Size(event.width, event.height),
        media_type=event.media_type or "-",
        request_timestamp=event.request_timestamp,
        response_timestamp=event.response_timestamp,
    )

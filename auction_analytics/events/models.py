"""Typed variants for the auction lifecycle events emitted by the host framework."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Optional, Union

from ..aggregator.timestamps import optional_epoch_ms, to_epoch_ms

CurrencyConverter = Callable[[str], float]

AUCTION_INIT = "auctionInit"
BID_REQUESTED = "bidRequested"
BID_ADJUSTMENT = "bidAdjustment"
BID_RESPONSE = "bidResponse"
BIDDER_DONE = "bidderDone"
AUCTION_END = "auctionEnd"
BID_WON = "bidWon"

HOST_EVENT_TYPES = (
    AUCTION_INIT,
    BID_REQUESTED,
    BID_ADJUSTMENT,
    BID_RESPONSE,
    BIDDER_DONE,
    AUCTION_END,
    BID_WON,
)


@dataclass(frozen=True)
class BidRequest:
    ad_unit_code: str
    bidder_code: str
    sizes: Any = None
    start_time: int | None = None
    source: str | None = None


@dataclass(frozen=True)
class AuctionInit:
    auction_id: str
    timestamp: int
    timeout_ms: int


@dataclass(frozen=True)
class BidRequested:
    auction_id: str
    bids: tuple[BidRequest, ...]
    gdpr_consent: Optional[Mapping[str, Any]] = None


@dataclass(frozen=True)
class BidAdjustment:
    auction_id: str
    ad_unit_code: str
    bidder_code: str
    cpm: float
    width: int = 0
    height: int = 0
    media_type: str | None = None
    request_timestamp: int | None = None
    response_timestamp: int | None = None
    ad_id: str | None = None


@dataclass(frozen=True)
class BidResponse:
    auction_id: str
    ad_unit_code: str
    bidder_code: str
    ad_id: str
    get_cpm_in_new_currency: Optional[CurrencyConverter] = field(default=None, compare=False)


@dataclass(frozen=True)
class BidderDone:
    auction_id: str
    bids: tuple[BidRequest, ...]


@dataclass(frozen=True)
class AuctionEnd:
    auction_id: str


@dataclass(frozen=True)
class BidWon:
    auction_id: str
    ad_unit_code: str
    ad_id: str
    bidder_code: str
    cpm: float
    width: int = 0
    height: int = 0
    media_type: str | None = None


AnalyticsEvent = Union[
    AuctionInit,
    BidRequested,
    BidAdjustment,
    BidResponse,
    BidderDone,
    AuctionEnd,
    BidWon,
]


def _required(args: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = args.get(key)
        if value is not None:
            return value
    raise ValueError(f"{keys[0]} is required")


def _int(value: Any) -> int:
    try:
        return int(value or 0)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"expected an integer, got {value!r}") from exc


def _cpm(args: Mapping[str, Any]) -> float:
    try:
        return float(_required(args, "cpm"))
    except (TypeError, ValueError) as exc:
        raise ValueError("cpm must be numeric") from exc


def _bid_request(raw: Mapping[str, Any]) -> BidRequest:
    return BidRequest(
        ad_unit_code=_required(raw, "adUnitCode"),
        bidder_code=_required(raw, "bidder", "bidderCode"),
        sizes=raw.get("sizes"),
        start_time=optional_epoch_ms(raw.get("startTime")),
        source=raw.get("source") or raw.get("src"),
    )


def _bids(args: Mapping[str, Any]) -> tuple[BidRequest, ...]:
    raw_bids = args.get("bids") or []
    if not isinstance(raw_bids, list):
        raise ValueError("bids must be a list")
    return tuple(_bid_request(raw) for raw in raw_bids)


def parse_event(event_type: str, args: Mapping[str, Any]) -> AnalyticsEvent | None:
    """Build the typed variant for a host event; unknown event types yield None."""
    if event_type == AUCTION_INIT:
        return AuctionInit(
            auction_id=_required(args, "auctionId"),
            timestamp=to_epoch_ms(_required(args, "timestamp")),
            timeout_ms=_int(args.get("timeout")),
        )
    if event_type == BID_REQUESTED:
        return BidRequested(
            auction_id=_required(args, "auctionId"),
            bids=_bids(args),
            gdpr_consent=args.get("gdprConsent"),
        )
    if event_type == BID_ADJUSTMENT:
        return BidAdjustment(
            auction_id=_required(args, "auctionId"),
            ad_unit_code=_required(args, "adUnitCode"),
            bidder_code=_required(args, "bidder", "bidderCode"),
            cpm=_cpm(args),
            width=_int(args.get("width")),
            height=_int(args.get("height")),
            media_type=args.get("mediaType"),
            request_timestamp=optional_epoch_ms(args.get("requestTimestamp")),
            response_timestamp=optional_epoch_ms(args.get("responseTimestamp")),
            ad_id=args.get("adId"),
        )
    if event_type == BID_RESPONSE:
        converter = args.get("getCpmInNewCurrency")
        return BidResponse(
            auction_id=_required(args, "auctionId"),
            ad_unit_code=_required(args, "adUnitCode"),
            bidder_code=_required(args, "bidder", "bidderCode"),
            ad_id=_required(args, "adId"),
            get_cpm_in_new_currency=converter if callable(converter) else None,
        )
    if event_type == BIDDER_DONE:
        return BidderDone(auction_id=_required(args, "auctionId"), bids=_bids(args))
    if event_type == AUCTION_END:
        return AuctionEnd(auction_id=_required(args, "auctionId"))
    if event_type == BID_WON:
        return BidWon(
            auction_id=_required(args, "auctionId"),
            ad_unit_code=_required(args, "adUnitCode"),
            ad_id=_required(args, "adId"),
            bidder_code=_required(args, "bidder", "bidderCode"),
            cpm=_cpm(args),
            width=_int(args.get("width")),
            height=_int(args.get("height")),
            media_type=args.get("mediaType"),
        )
    return None

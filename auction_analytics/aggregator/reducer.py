"""Event reducer that folds host lifecycle events into auction records."""

from __future__ import annotations

import logging
from typing import Any, Callable, get_args

from ..catalog.registry import AdUnitCatalog
from ..collector.gateway import EmissionGateway
from ..config import AnalyticsConfig
from ..events.models import (
    AnalyticsEvent,
    AuctionEnd,
    AuctionInit,
    BidAdjustment,
    BidderDone,
    BidRequested,
    BidResponse,
    BidWon,
)
from ..storage import AuctionStore
from .builders import (
    build_ad_unit,
    build_auction,
    build_bid_after_timeout,
    build_bidder,
    build_impression,
    extract_ad_id,
    extract_ad_unit_code,
    extract_bidder_code,
)
from .consent import classify_consent
from .errors import AggregatorError, MissingAdUnitError, MissingBidderError
from .fsm import BidderEvent, can_transition, status_for_cpm, transition
from .lookup import find_bidder
from .models import AdUnit, AdUnitStatus, Auction, Bidder, Size
from .timestamps import now_ms

logger = logging.getLogger(__name__)

REPORTING_CURRENCY = "USD"


class AuctionAggregator:
    """Applies one event at a time to the auction store.

    Handlers run to completion and are not thread-safe; a host that can deliver
    events concurrently must serialize calls to ``track``.
    """

    def __init__(
        self,
        store: AuctionStore,
        gateway: EmissionGateway,
        catalog: AdUnitCatalog,
        config: AnalyticsConfig,
        *,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._store = store
        self._gateway = gateway
        self._catalog = catalog
        self._config = config
        self._clock = clock
        self._handlers: dict[type, Callable[[Any], None]] = {
            AuctionInit: self._on_auction_init,
            BidRequested: self._on_bid_requested,
            BidAdjustment: self._on_bid_adjustment,
            BidResponse: self._on_bid_response,
            BidderDone: self._on_bidder_done,
            AuctionEnd: self._on_auction_end,
            BidWon: self._on_bid_won,
        }
        missing = set(get_args(AnalyticsEvent)) - set(self._handlers)
        if missing:
            raise TypeError(f"no handler for {sorted(cls.__name__ for cls in missing)}")

    @property
    def store(self) -> AuctionStore:
        return self._store

    def track(self, event: AnalyticsEvent) -> None:
        handler = self._handlers.get(type(event))
        if handler is None:
            logger.debug("ignoring unsupported event %r", event)
            return
        try:
            handler(event)
        except AggregatorError as exc:
            logger.warning("%s dropped: %s", type(event).__name__, exc)
        except Exception:
            logger.exception(
                "unexpected failure handling %s for auction %s",
                type(event).__name__,
                getattr(event, "auction_id", None),
            )

    # Handlers ---------------------------------------------------------------

    def _on_auction_init(self, event: AuctionInit) -> None:
        self._store.create(build_auction(event))
        self._store.evict_expired()

    def _on_bid_requested(self, event: BidRequested) -> None:
        auction = self._store.require(event.auction_id)
        if auction.consent_state is None:
            auction.consent_state = classify_consent(event.gdpr_consent)

        for bid in event.bids:
            ad_unit_code = extract_ad_unit_code(bid.ad_unit_code)
            if not self._config.is_supported_ad_unit(ad_unit_code):
                continue
            ad_unit = auction.ad_units.get(ad_unit_code)
            if ad_unit is None:
                ad_unit = build_ad_unit(auction, bid, self._catalog)
                auction.ad_units[ad_unit_code] = ad_unit
            bidder_code = extract_bidder_code(bid.bidder_code)
            if bidder_code not in ad_unit.bidders:
                ad_unit.bidders[bidder_code] = build_bidder(bid, self._clock())

    def _on_bid_adjustment(self, event: BidAdjustment) -> None:
        ad_unit_code = extract_ad_unit_code(event.ad_unit_code)
        if not self._config.is_supported_ad_unit(ad_unit_code):
            return
        auction = self._store.require(event.auction_id)
        ad_unit = self._ad_unit(auction, ad_unit_code)
        self._stamp(auction, ad_unit)

        if ad_unit.is_finished:
            self._reconcile_late_bid(ad_unit, event)
            return

        bidder = self._bidder(auction, ad_unit, extract_bidder_code(event.bidder_code))
        if event.cpm > bidder.cpm:
            self._apply_bid(bidder, event)

    def _on_bid_response(self, event: BidResponse) -> None:
        ad_unit_code = extract_ad_unit_code(event.ad_unit_code)
        if not self._config.is_supported_ad_unit(ad_unit_code):
            return
        auction = self._store.require(event.auction_id)
        ad_unit = self._ad_unit(auction, ad_unit_code)
        bidder = self._bidder(auction, ad_unit, extract_bidder_code(event.bidder_code))
        bidder.response_id = extract_ad_id(event.ad_id)

        if event.get_cpm_in_new_currency is None:
            return
        try:
            bidder.cpm = float(event.get_cpm_in_new_currency(REPORTING_CURRENCY))
        except Exception as exc:
            logger.warning(
                "Failed to convert cpm to %s for bidder %s: %s",
                REPORTING_CURRENCY,
                bidder.bidder_code,
                exc,
            )

    def _on_bidder_done(self, event: BidderDone) -> None:
        auction = self._store.require(event.auction_id)
        now = self._clock()
        for bid in event.bids:
            ad_unit_code = extract_ad_unit_code(bid.ad_unit_code)
            if not self._config.is_supported_ad_unit(ad_unit_code):
                continue
            ad_unit = auction.ad_units.get(ad_unit_code)
            if ad_unit is None:
                logger.warning("%s", MissingAdUnitError(auction.id, ad_unit_code))
                continue
            if ad_unit.is_finished:
                continue
            bidder_code = extract_bidder_code(bid.bidder_code)
            bidder = ad_unit.bidders.get(bidder_code)
            if bidder is None:
                logger.warning("%s", MissingBidderError(auction.id, ad_unit_code, bidder_code))
                continue
            if not can_transition(bidder.status, BidderEvent.BIDDER_DONE):
                continue
            bidder.status = transition(bidder.status, BidderEvent.BIDDER_DONE)
            bidder.cpm = 0
            bidder.response_finish_time = now

    def _on_auction_end(self, event: AuctionEnd) -> None:
        auction = self._store.require(event.auction_id)
        if not auction.ad_units:
            self._store.delete(auction.id)
            logger.debug("auction %s ended without ad units, discarded", auction.id)
            return
        if auction.is_finished:
            logger.warning("auction %s already ended, ignoring repeated end", auction.id)
            return

        finish = self._clock()
        auction.finish_time = finish
        for ad_unit in auction.ad_units.values():
            ad_unit.finish_time = finish
            ad_unit.status = AdUnitStatus.FINISHED
            for bidder in ad_unit.bidders.values():
                if can_transition(bidder.status, BidderEvent.AUCTION_ENDED):
                    bidder.status = transition(bidder.status, BidderEvent.AUCTION_ENDED)

        self._gateway.emit_auction(self._store.snapshot(auction.id))

    def _on_bid_won(self, event: BidWon) -> None:
        ad_unit_code = extract_ad_unit_code(event.ad_unit_code)
        if not self._config.is_supported_ad_unit(ad_unit_code):
            return
        auction = self._store.require(event.auction_id)
        ad_unit = self._ad_unit(auction, ad_unit_code)
        self._stamp(auction, ad_unit)
        self._gateway.emit_impression(build_impression(ad_unit, event, self._catalog))

    # Late bids --------------------------------------------------------------

    def _reconcile_late_bid(self, ad_unit: AdUnit, event: BidAdjustment) -> None:
        # Snapshot reflects the ad unit before the upgrade below.
        snapshot = build_bid_after_timeout(ad_unit, event, self._catalog)
        bidder = self._late_bid_target(ad_unit, event)
        if bidder is not None and event.cpm > bidder.cpm:
            self._apply_bid(bidder, event)
            bidder.is_after_timeout = True
            logger.info(
                "late bid upgraded bidder %s on ad unit %s to cpm %s",
                bidder.bidder_code,
                ad_unit.code,
                bidder.cpm,
            )
        self._gateway.emit_bid_after_timeout(snapshot)

    def _late_bid_target(self, ad_unit: AdUnit, event: BidAdjustment) -> Bidder | None:
        bidder_code = extract_bidder_code(event.bidder_code)
        response_id = extract_ad_id(event.ad_id)
        if response_id:
            matched = find_bidder(ad_unit, bidder_code, response_id)
            if matched is not None:
                return matched
        candidate = ad_unit.bidders.get(bidder_code)
        if candidate is None:
            return None
        # A bidder that already recorded a different response belongs to
        # another response round.
        if response_id and candidate.response_id is not None:
            return None
        return candidate

    # Helpers ----------------------------------------------------------------

    def _apply_bid(self, bidder: Bidder, event: BidAdjustment) -> None:
        bidder.cpm = event.cpm
        bidder.response_finish_time = event.response_timestamp or 0
        bidder.status = status_for_cpm(event.cpm)
        bidder.size = Size(event.width or 0, event.height or 0)
        bidder.media_type = event.media_type or "-"

    def _stamp(self, auction: Auction, ad_unit: AdUnit) -> None:
        ad_unit.auction_id = auction.id
        ad_unit.consent_state = auction.consent_state

    def _ad_unit(self, auction: Auction, ad_unit_code: str) -> AdUnit:
        try:
            return auction.ad_units[ad_unit_code]
        except KeyError as exc:
            raise MissingAdUnitError(auction.id, ad_unit_code) from exc

    def _bidder(self, auction: Auction, ad_unit: AdUnit, bidder_code: str) -> Bidder:
        try:
            return ad_unit.bidders[bidder_code]
        except KeyError as exc:
            raise MissingBidderError(auction.id, ad_unit.code, bidder_code) from exc

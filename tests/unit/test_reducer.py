"""Unit tests for the auction event reducer."""

from __future__ import annotations

import logging

import pytest

from auction_analytics.aggregator.models import (
    AdUnitStatus,
    BidderStatus,
    ConsentState,
    EventKind,
    Size,
)
from auction_analytics.config import load_analytics_config
from auction_analytics.events.models import (
    AuctionEnd,
    AuctionInit,
    BidAdjustment,
    BidderDone,
    BidRequest,
    BidRequested,
    BidResponse,
    BidWon,
)

CONSENTED = {"vendorData": {"purposeConsents": {"1": True}, "vendorConsents": {"32": True}}}
REFUSED = {"vendorData": {"purposeConsents": {"1": False}, "vendorConsents": {"32": True}}}


def init(aggregator, auction_id="A1", timestamp=1000, timeout=2000):
    aggregator.track(AuctionInit(auction_id=auction_id, timestamp=timestamp, timeout_ms=timeout))


def request(aggregator, *pairs, auction_id="A1", consent=None, sizes=(300, 250)):
    bids = tuple(BidRequest(ad_unit_code=code, bidder_code=bidder, sizes=list(sizes)) for code, bidder in pairs)
    aggregator.track(BidRequested(auction_id=auction_id, bids=bids, gdpr_consent=consent))


def adjust(aggregator, cpm, code="div1", bidder="x", auction_id="A1", **kwargs):
    aggregator.track(
        BidAdjustment(
            auction_id=auction_id,
            ad_unit_code=code,
            bidder_code=bidder,
            cpm=cpm,
            width=kwargs.get("width", 300),
            height=kwargs.get("height", 250),
            media_type=kwargs.get("media_type", "banner"),
            request_timestamp=kwargs.get("request_timestamp", 1100),
            response_timestamp=kwargs.get("response_timestamp", 1200),
            ad_id=kwargs.get("ad_id"),
        )
    )


def done(aggregator, *pairs, auction_id="A1"):
    bids = tuple(BidRequest(ad_unit_code=code, bidder_code=bidder) for code, bidder in pairs)
    aggregator.track(BidderDone(auction_id=auction_id, bids=bids))


def end(aggregator, auction_id="A1"):
    aggregator.track(AuctionEnd(auction_id=auction_id))


def bidder_of(aggregator, code="div1", bidder="x", auction_id="A1"):
    return aggregator.store.require(auction_id).ad_units[code].bidders[bidder]


class TestEndToEnd:
    def test_single_bid_auction(self, aggregator, collector):
        """Test the init → request → adjust → done → end lifecycle."""
        init(aggregator, "A1", timestamp=1000, timeout=2000)
        request(aggregator, ("div1", "x"))
        adjust(aggregator, 1.5, width=300, height=250)
        done(aggregator, ("div1", "x"))
        end(aggregator)

        ad_unit = aggregator.store.require("A1").ad_units["div1"]
        bidder = ad_unit.bidders["x"]
        assert ad_unit.status is AdUnitStatus.FINISHED
        assert bidder.status is BidderStatus.BID
        assert bidder.cpm == 1.5
        assert bidder.size == Size(300, 250)

        emitted = collector.of_kind(EventKind.AUCTION)
        assert len(emitted) == 1
        assert emitted[0].ad_units["div1"].bidders["x"].cpm == 1.5


class TestAuctionInit:
    def test_creates_auction(self, aggregator):
        init(aggregator, "A1", timestamp=1000, timeout=2000)
        auction = aggregator.store.require("A1")
        assert (auction.start_time, auction.timeout_ms, auction.finish_time) == (1000, 2000, 0)

    def test_evicts_expired_auctions(self, aggregator, clock, config):
        """Test that any auction-init evicts auctions older than the TTL."""
        init(aggregator, "stale", timestamp=clock.now)
        assert "stale" in aggregator.store

        clock.now += config.auction_ttl_ms + 1
        init(aggregator, "live", timestamp=clock.now)
        assert "stale" not in aggregator.store
        assert "live" in aggregator.store


class TestBidRequested:
    def test_codes_are_case_insensitive(self, aggregator):
        init(aggregator)
        request(aggregator, ("Banner-300x250", "AppNexus"), ("banner-300x250", "appnexus"))
        auction = aggregator.store.require("A1")
        assert list(auction.ad_units) == ["banner-300x250"]
        assert list(auction.ad_units["banner-300x250"].bidders) == ["appnexus"]
        assert auction.ad_units["banner-300x250"].path == "/1234/home/banner"

    def test_allow_list_filters_ad_units(self, make_aggregator):
        aggregator = make_aggregator(load_analytics_config({"analytics": {"ad_units": ["DIV1"]}}))
        init(aggregator)
        request(aggregator, ("div1", "x"), ("div2", "x"))
        assert list(aggregator.store.require("A1").ad_units) == ["div1"]

    def test_existing_bidder_is_not_reset(self, aggregator):
        init(aggregator)
        request(aggregator, ("div1", "x"))
        adjust(aggregator, 2.0)
        request(aggregator, ("div1", "x"), ("div1", "y"))
        assert bidder_of(aggregator).cpm == 2.0
        assert bidder_of(aggregator, bidder="y").status is BidderStatus.REQUESTED

    def test_consent_is_frozen_on_first_request(self, aggregator):
        init(aggregator)
        request(aggregator, ("div1", "x"), consent=REFUSED)
        request(aggregator, ("div1", "y"), consent=CONSENTED)
        assert aggregator.store.require("A1").consent_state is ConsentState.NO_CONSENT

    def test_missing_auction_is_logged(self, aggregator, caplog):
        with caplog.at_level(logging.WARNING):
            request(aggregator, ("div1", "x"), auction_id="ghost")
        assert "ghost" in caplog.text


class TestBidAdjustment:
    @pytest.mark.parametrize(
        "cpms, expected_cpm, expected_status",
        [
            ([1.0, 3.0, 2.0], 3.0, BidderStatus.BID),
            ([0.5, 0.5], 0.5, BidderStatus.BID),
            ([0], 0, BidderStatus.NO_BID),
            ([0, 1.2], 1.2, BidderStatus.BID),
        ],
    )
    def test_highest_cpm_wins(self, aggregator, cpms, expected_cpm, expected_status):
        init(aggregator)
        request(aggregator, ("div1", "x"))
        for cpm in cpms:
            adjust(aggregator, cpm)
        bidder = bidder_of(aggregator)
        assert bidder.cpm == expected_cpm
        assert bidder.status is expected_status

    def test_lower_bid_leaves_record_untouched(self, aggregator):
        init(aggregator)
        request(aggregator, ("div1", "x"))
        adjust(aggregator, 2.0, width=300, height=250, media_type="banner", response_timestamp=1200)
        adjust(aggregator, 1.0, width=728, height=90, media_type="video", response_timestamp=1300)
        bidder = bidder_of(aggregator)
        assert bidder.size == Size(300, 250)
        assert bidder.media_type == "banner"
        assert bidder.response_finish_time == 1200

    def test_stamps_auction_id_and_consent(self, aggregator):
        init(aggregator)
        request(aggregator, ("div1", "x"), consent=CONSENTED)
        adjust(aggregator, 1.0)
        ad_unit = aggregator.store.require("A1").ad_units["div1"]
        assert ad_unit.auction_id == "A1"
        assert ad_unit.consent_state is ConsentState.CONSENT

    def test_unknown_ad_unit_is_dropped(self, aggregator, caplog):
        init(aggregator)
        request(aggregator, ("div1", "x"))
        with caplog.at_level(logging.WARNING):
            adjust(aggregator, 1.0, code="div9")
        assert "div9" in caplog.text

    def test_filtered_ad_unit_is_ignored(self, make_aggregator, caplog):
        aggregator = make_aggregator(load_analytics_config({"analytics": {"ad_units": ["div1"]}}))
        init(aggregator)
        with caplog.at_level(logging.WARNING):
            adjust(aggregator, 1.0, code="div2")
        assert caplog.text == ""


class TestBidResponse:
    def test_records_response_id(self, aggregator):
        init(aggregator)
        request(aggregator, ("div1", "x"))
        aggregator.track(BidResponse(auction_id="A1", ad_unit_code="DIV1", bidder_code="X", ad_id="AbC"))
        assert bidder_of(aggregator).response_id == "abc"

    def test_converts_cpm_to_reporting_currency(self, aggregator):
        init(aggregator)
        request(aggregator, ("div1", "x"))
        adjust(aggregator, 1.0)
        calls = []

        def convert(currency):
            calls.append(currency)
            return 1.1

        aggregator.track(
            BidResponse(auction_id="A1", ad_unit_code="div1", bidder_code="x", ad_id="a", get_cpm_in_new_currency=convert)
        )
        assert calls == ["USD"]
        assert bidder_of(aggregator).cpm == 1.1

    def test_conversion_failure_keeps_cpm(self, aggregator, caplog):
        init(aggregator)
        request(aggregator, ("div1", "x"))
        adjust(aggregator, 1.0)

        def convert(currency):
            raise RuntimeError("no rates")

        with caplog.at_level(logging.WARNING):
            aggregator.track(
                BidResponse(auction_id="A1", ad_unit_code="div1", bidder_code="x", ad_id="a", get_cpm_in_new_currency=convert)
            )
        bidder = bidder_of(aggregator)
        assert bidder.cpm == 1.0
        assert bidder.response_id == "a"
        assert "Failed to convert" in caplog.text


class TestBidderDone:
    def test_requested_bidder_becomes_no_bid(self, aggregator, clock):
        init(aggregator)
        request(aggregator, ("div1", "x"))
        clock.now = 12_345
        done(aggregator, ("div1", "x"))
        bidder = bidder_of(aggregator)
        assert bidder.status is BidderStatus.NO_BID
        assert bidder.cpm == 0
        assert bidder.response_finish_time == 12_345

    def test_bidder_that_already_bid_is_untouched(self, aggregator):
        init(aggregator)
        request(aggregator, ("div1", "x"))
        adjust(aggregator, 1.5)
        done(aggregator, ("div1", "x"))
        assert bidder_of(aggregator).status is BidderStatus.BID
        assert bidder_of(aggregator).cpm == 1.5

    def test_finished_ad_unit_is_skipped(self, aggregator):
        init(aggregator)
        request(aggregator, ("div1", "x"))
        end(aggregator)
        done(aggregator, ("div1", "x"))
        assert bidder_of(aggregator).status is BidderStatus.TIMEOUT

    def test_unknown_entries_do_not_block_the_rest(self, aggregator):
        init(aggregator)
        request(aggregator, ("div1", "x"))
        done(aggregator, ("div9", "x"), ("div1", "zz"), ("div1", "x"))
        assert bidder_of(aggregator).status is BidderStatus.NO_BID


class TestAuctionEnd:
    def test_zero_ad_units_deletes_auction(self, aggregator, collector):
        init(aggregator)
        end(aggregator)
        assert "A1" not in aggregator.store
        assert collector.events == []

    def test_marks_finished_and_times_out_requested_bidders(self, aggregator, clock):
        init(aggregator)
        request(aggregator, ("div1", "x"), ("div1", "y"), ("div2", "x"))
        adjust(aggregator, 1.0, bidder="y")
        clock.now = 20_000
        end(aggregator)

        auction = aggregator.store.require("A1")
        assert auction.finish_time == 20_000
        for ad_unit in auction.ad_units.values():
            assert ad_unit.status is AdUnitStatus.FINISHED
            assert ad_unit.finish_time == 20_000
        assert bidder_of(aggregator, "div1", "x").status is BidderStatus.TIMEOUT
        assert bidder_of(aggregator, "div1", "y").status is BidderStatus.BID
        assert bidder_of(aggregator, "div2", "x").status is BidderStatus.TIMEOUT

    def test_repeated_end_is_a_no_op(self, aggregator, collector, clock):
        init(aggregator)
        request(aggregator, ("div1", "x"))
        end(aggregator)
        clock.now = 99_999
        end(aggregator)
        assert aggregator.store.require("A1").finish_time == 10_000
        assert len(collector.of_kind(EventKind.AUCTION)) == 1

    def test_repeated_end_after_deletion_does_not_crash(self, aggregator, caplog):
        init(aggregator)
        end(aggregator)
        with caplog.at_level(logging.WARNING):
            end(aggregator)
        assert "no auction in memory for A1" in caplog.text

    def test_auction_event_can_be_disabled(self, make_aggregator, collector):
        aggregator = make_aggregator(load_analytics_config({"analytics": {"events": {"auction": False}}}))
        init(aggregator)
        request(aggregator, ("div1", "x"))
        end(aggregator)
        assert collector.events == []
        assert aggregator.store.require("A1").ad_units["div1"].is_finished


class TestBidWon:
    def _won(self, aggregator, ad_id="ad-1", cpm=0.9, code="div1"):
        aggregator.track(
            BidWon(auction_id="A1", ad_unit_code=code, ad_id=ad_id, bidder_code="x", cpm=cpm,
                   width=300, height=250, media_type="banner")
        )

    def test_impression_uses_bidder_cpm(self, aggregator, collector):
        init(aggregator)
        request(aggregator, ("div1", "x"), consent=CONSENTED)
        adjust(aggregator, 1.5)
        aggregator.track(BidResponse(auction_id="A1", ad_unit_code="div1", bidder_code="x", ad_id="ad-1"))
        end(aggregator)
        self._won(aggregator)

        impression = collector.of_kind(EventKind.IMPRESSION)[0]
        assert impression.cpm == 1.5
        assert impression.ad_unit.auction_id == "A1"
        assert impression.ad_unit.consent_state is ConsentState.CONSENT
        assert impression.size == Size(300, 250)

    def test_impression_falls_back_to_event_cpm(self, aggregator, collector):
        init(aggregator)
        request(aggregator, ("div1", "x"))
        self._won(aggregator, ad_id="unknown", cpm=0.9)
        assert collector.of_kind(EventKind.IMPRESSION)[0].cpm == 0.9

    def test_impression_can_be_disabled(self, make_aggregator, collector):
        aggregator = make_aggregator(load_analytics_config({"analytics": {"events": {"impression": False}}}))
        init(aggregator)
        request(aggregator, ("div1", "x"))
        self._won(aggregator)
        assert collector.of_kind(EventKind.IMPRESSION) == []


class TestFaultIsolation:
    def test_unexpected_errors_do_not_escape(self, aggregator, catalog, caplog, monkeypatch):
        def explode(code):
            raise RuntimeError("catalog offline")

        monkeypatch.setattr(catalog, "resolve_path", explode)
        init(aggregator)
        with caplog.at_level(logging.ERROR):
            request(aggregator, ("div1", "x"))
        assert "unexpected failure handling BidRequested" in caplog.text

        init(aggregator, "A2")
        assert "A2" in aggregator.store

    def test_collector_outage_does_not_affect_state(self, aggregator, collector):
        collector.fail = True
        init(aggregator)
        request(aggregator, ("div1", "x"))
        end(aggregator)
        assert bidder_of(aggregator).status is BidderStatus.TIMEOUT
        collector.fail = False
        adjust(aggregator, 1.0)
        assert len(collector.of_kind(EventKind.BID_AFTER_TIMEOUT)) == 1

    def test_unsupported_event_objects_are_ignored(self, aggregator):
        aggregator.track(object())
        assert len(aggregator.store) == 0

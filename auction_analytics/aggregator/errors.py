"""Recoverable error conditions raised while reducing auction events."""

from __future__ import annotations


class AggregatorError(Exception):
    """Base class for conditions that drop a single event without side effects."""


class MissingAuctionError(AggregatorError):
    def __init__(self, auction_id: str) -> None:
        super().__init__(f"no auction in memory for {auction_id}")
        self.auction_id = auction_id


class MissingAdUnitError(AggregatorError):
    def __init__(self, auction_id: str, ad_unit_code: str) -> None:
        super().__init__(f"no ad unit {ad_unit_code} in auction {auction_id}")
        self.auction_id = auction_id
        self.ad_unit_code = ad_unit_code


class MissingBidderError(AggregatorError):
    def __init__(self, auction_id: str, ad_unit_code: str, bidder_code: str) -> None:
        super().__init__(
            f"no bidder {bidder_code} for ad unit {ad_unit_code} in auction {auction_id}"
        )
        self.auction_id = auction_id
        self.ad_unit_code = ad_unit_code
        self.bidder_code = bidder_code

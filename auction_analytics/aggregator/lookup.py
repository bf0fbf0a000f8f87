"""Resolve a response-bearing event to the bidder it belongs to."""

from __future__ import annotations

from .models import AdUnit, Bidder


def find_bidder(ad_unit: AdUnit, bidder_code: str, response_id: str | None) -> Bidder | None:
    """Return the bidder matching both code and response id, or None when unknown.

    A bidder can respond more than once per ad unit, so the code alone is not
    enough to attribute a won or late bid.
    """
    if not response_id:
        return None
    bidder_code = bidder_code.lower()
    response_id = response_id.lower()
    return next(
        (
            bidder
            for bidder in ad_unit.bidders.values()
            if bidder.bidder_code == bidder_code and bidder.response_id == response_id
        ),
        None,
    )

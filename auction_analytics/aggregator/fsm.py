"""Bidder status finite state machine."""

from __future__ import annotations

from enum import Enum

from .models import BidderStatus


class BidderEvent(str, Enum):
    BIDDER_DONE = "bidder_done"
    AUCTION_ENDED = "auction_ended"


_TRANSITIONS = {
    (BidderStatus.REQUESTED, BidderEvent.BIDDER_DONE): BidderStatus.NO_BID,
    (BidderStatus.REQUESTED, BidderEvent.AUCTION_ENDED): BidderStatus.TIMEOUT,
}


def transition(current: BidderStatus, event: BidderEvent) -> BidderStatus:
    try:
        return _TRANSITIONS[(current, event)]
    except KeyError as exc:
        raise ValueError(f"invalid transition from {current} via {event}") from exc


def can_transition(current: BidderStatus, event: BidderEvent) -> bool:
    return (current, event) in _TRANSITIONS


def status_for_cpm(cpm: float) -> BidderStatus:
    """Status set by a winning bid adjustment, reachable from any state."""
    return BidderStatus.NO_BID if cpm == 0 else BidderStatus.BID

"""Schema validation wrappers for host event payloads."""

from __future__ import annotations

from typing import Any

from ..validation.validator import get_schema_registry
from .models import (
    AUCTION_END,
    AUCTION_INIT,
    BID_ADJUSTMENT,
    BID_REQUESTED,
    BID_RESPONSE,
    BID_WON,
    BIDDER_DONE,
)

EVENT_SCHEMA_MAP = {
    AUCTION_INIT: "event_auction_init",
    BID_REQUESTED: "event_bid_requested",
    BID_ADJUSTMENT: "event_bid_adjustment",
    BID_RESPONSE: "event_bid_response",
    BIDDER_DONE: "event_bidder_done",
    AUCTION_END: "event_auction_end",
    BID_WON: "event_bid_won",
}


def validate_event(event_type: str, args: Any) -> str:
    schema = EVENT_SCHEMA_MAP.get(event_type)
    if not schema:
        raise ValueError(f"unknown event type {event_type}")
    registry = get_schema_registry()
    registry.validate(schema, args)
    return schema

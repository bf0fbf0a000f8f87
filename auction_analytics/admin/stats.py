"""Operational stats endpoint."""

from __future__ import annotations

from collections import Counter
from typing import Any

from fastapi import APIRouter, Depends, Request

from ..aggregator.models import EventKind
from ..collector.gateway import EmissionGateway
from ..storage import AuctionStore

router = APIRouter(prefix="/admin", tags=["admin"])


def _get_store(request: Request) -> AuctionStore:
    return request.app.state.store


def _get_gateway(request: Request) -> EmissionGateway:
    return request.app.state.gateway


@router.get("/stats")
async def stats(
    store: AuctionStore = Depends(_get_store),
    gateway: EmissionGateway = Depends(_get_gateway),
) -> dict[str, Any]:
    auctions = list(store)
    finished_auctions = sum(1 for auction in auctions if auction.is_finished)
    ad_unit_status: Counter[str] = Counter()
    bidder_status: Counter[str] = Counter()
    late_bids = 0

    for auction in auctions:
        for ad_unit in auction.ad_units.values():
            ad_unit_status[ad_unit.status.value] += 1
            for bidder in ad_unit.bidders.values():
                bidder_status[bidder.status.value] += 1
                if bidder.is_after_timeout:
                    late_bids += 1

    return {
        "live_auctions": len(auctions),
        "finished_auctions": finished_auctions,
        "ad_unit_status": dict(ad_unit_status),
        "bidder_status": dict(bidder_status),
        "bidders_upgraded_after_timeout": late_bids,
        "emitted_events": {kind.value: gateway.emitted[kind] for kind in EventKind},
        "dropped_events": {kind.value: gateway.dropped[kind] for kind in EventKind},
    }

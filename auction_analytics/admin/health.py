"""Liveness report for the aggregator process."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends, Request

from ..config import AnalyticsConfig
from ..storage import AuctionStore

router = APIRouter(prefix="/admin", tags=["admin"])


def _get_store(request: Request) -> AuctionStore:
    return request.app.state.store


def _get_config(request: Request) -> AnalyticsConfig:
    return request.app.state.analytics_config


@router.get("/health")
async def health(
    request: Request,
    store: AuctionStore = Depends(_get_store),
    config: AnalyticsConfig = Depends(_get_config),
) -> dict[str, Any]:
    started = getattr(request.app.state, "start_time", None)
    uptime = int((datetime.now(timezone.utc) - started).total_seconds()) if started else 0
    auctions = list(store)
    oldest_start = min((auction.start_time for auction in auctions), default=None)
    return {
        "status": "healthy",
        "uptime_seconds": uptime,
        "version": request.app.version,
        "analytics_version": config.version,
        "collector_backend": config.collector.backend,
        "auction_ttl_ms": config.auction_ttl_ms,
        "live_auctions": len(auctions),
        "running_auctions": sum(1 for auction in auctions if not auction.is_finished),
        "oldest_auction_start": oldest_start,
    }

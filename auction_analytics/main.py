from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any

from fastapi import Body, Depends, FastAPI, HTTPException, Request, status
from jsonschema import ValidationError

from .admin import config as admin_config
from .admin import health as admin_health
from .admin import stats as admin_stats
from .aggregator.errors import MissingAuctionError
from .aggregator.reducer import AuctionAggregator
from .catalog.registry import AdUnitRegistry
from .collector.encoding import to_primitive
from .collector.gateway import EmissionGateway
from .collector.sinks import build_collector
from .config import AnalyticsConfig, get_ad_unit_catalog_path, get_analytics_config
from .events.handler import EventService
from .storage import AuctionStore, build_store


@asynccontextmanager
async def lifespan(app: FastAPI):
    analytics_config = get_analytics_config()
    catalog = AdUnitRegistry.from_yaml(get_ad_unit_catalog_path())
    store = build_store(analytics_config)
    collector = build_collector(analytics_config.collector)
    gateway = EmissionGateway(collector, analytics_config)
    aggregator = AuctionAggregator(store, gateway, catalog, analytics_config)
    event_service = EventService(aggregator)

    app.state.analytics_config = analytics_config
    app.state.catalog = catalog
    app.state.store = store
    app.state.gateway = gateway
    app.state.aggregator = aggregator
    app.state.event_service = event_service
    app.state.start_time = datetime.now(timezone.utc)

    collector.start()
    try:
        yield
    finally:
        await collector.close()


app = FastAPI(
    title="Auction Analytics Aggregator",
    version="1.0.0",
    docs_url="/docs",
    lifespan=lifespan,
)

app.include_router(admin_health.router)
app.include_router(admin_stats.router)
app.include_router(admin_config.router)


# Dependency helpers ---------------------------------------------------------


def get_settings(request: Request) -> AnalyticsConfig:
    return request.app.state.analytics_config


def get_event_service(request: Request) -> EventService:
    return request.app.state.event_service


def get_store(request: Request) -> AuctionStore:
    return request.app.state.store


# Routes ---------------------------------------------------------------------


@app.get("/", tags=["meta"])
async def root(settings: AnalyticsConfig = Depends(get_settings)) -> dict[str, Any]:
    return {
        "service": "auction-analytics",
        "version": app.version,
        "analytics": {
            "version": settings.version,
            "auction_ttl_ms": settings.auction_ttl_ms,
            "collector_backend": settings.collector.backend,
        },
    }


@app.get("/analytics/ping", tags=["analytics"])
async def ping() -> dict[str, Any]:
    return {"status": "ok", "version": app.version}


@app.post("/analytics/events", tags=["analytics"], status_code=status.HTTP_202_ACCEPTED)
async def ingest_event(
    payload: dict[str, Any] = Body(...),
    event_service: EventService = Depends(get_event_service),
) -> dict[str, Any]:
    try:
        event = await event_service.ingest(payload)
    except ValidationError as exc:
        raise HTTPException(status_code=422, detail=str(exc.message)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return {
        "status": "accepted",
        "event_type": payload.get("event_type"),
        "auction_id": event.auction_id,
    }


@app.get("/analytics/auctions/{auction_id}", tags=["analytics"])
async def get_auction(
    auction_id: str,
    store: AuctionStore = Depends(get_store),
) -> dict[str, Any]:
    try:
        snapshot = store.snapshot(auction_id)
    except MissingAuctionError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return to_primitive(snapshot)

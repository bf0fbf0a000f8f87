"""Expose currently loaded analytics config for debugging."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from ..catalog.registry import AdUnitRegistry
from ..config import AnalyticsConfig
from ..validation.validator import get_schema_registry

router = APIRouter(prefix="/admin", tags=["admin"])


def _get_config(request: Request) -> AnalyticsConfig:
    return request.app.state.analytics_config


def _get_catalog(request: Request) -> AdUnitRegistry:
    return request.app.state.catalog


@router.get("/config")
async def config(
    request: Request,
    config: AnalyticsConfig = Depends(_get_config),
    catalog: AdUnitRegistry = Depends(_get_catalog),
) -> dict:
    ad_unit_catalog = [
        {
            "code": entry.code,
            "path": entry.path,
            "sizes": [f"{width}x{height}" for width, height in entry.sizes],
        }
        for entry in sorted(catalog.all(), key=lambda entry: entry.code)
    ]
    return {
        "version": request.app.version,
        "analytics_version": config.version,
        "ad_units": list(config.ad_units),
        "tags": list(config.tags),
        "api_key_configured": bool(config.api_key),
        "wanted_events": {kind.value: enabled for kind, enabled in config.wanted_events.items()},
        "auction_ttl_ms": config.auction_ttl_ms,
        "collector_backend": config.collector.backend,
        "event_schemas": get_schema_registry().names(),
        "ad_unit_catalog": ad_unit_catalog,
    }

"""Configuration helpers for the analytics aggregator."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any, Mapping

import yaml

from ..aggregator.models import EventKind

_DEFAULT_ANALYTICS_CONFIG = Path(__file__).resolve().parent / "analytics.yaml"
_DEFAULT_AD_UNIT_CONFIG = Path(__file__).resolve().parent / "ad_units.yaml"

DEFAULT_AUCTION_TTL_MS = 60 * 60 * 1000

# YAML key for each outbound event kind.
_EVENT_KEYS = {
    "auction": EventKind.AUCTION,
    "impression": EventKind.IMPRESSION,
    "bid_after_timeout": EventKind.BID_AFTER_TIMEOUT,
}


@dataclass(frozen=True)
class CollectorConfig:
    backend: str = "local"
    options: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class AnalyticsConfig:
    version: str = "unknown"
    ad_units: tuple[str, ...] = ()
    tags: tuple[str, ...] = ()
    api_key: str | None = None
    wanted_events: Mapping[EventKind, bool] = field(
        default_factory=lambda: {kind: True for kind in EventKind}
    )
    auction_ttl_ms: int = DEFAULT_AUCTION_TTL_MS
    collector: CollectorConfig = field(default_factory=CollectorConfig)

    def is_supported_ad_unit(self, ad_unit_code: str) -> bool:
        if not self.ad_units:
            return True
        return ad_unit_code.lower() in self.ad_units

    def is_wanted(self, kind: EventKind) -> bool:
        return bool(self.wanted_events.get(kind, True))


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(path)
    return yaml.safe_load(path.read_text()) or {}


def _string_list(value: Any, name: str) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, (list, tuple)):
        raise ValueError(f"{name} must be a list")
    return [str(item) for item in value]


def _wanted_events(raw: Any) -> dict[EventKind, bool]:
    if raw is None:
        raw = {}
    if not isinstance(raw, Mapping):
        raise ValueError("events must be a mapping")
    unknown = set(raw) - set(_EVENT_KEYS)
    if unknown:
        raise ValueError(f"unknown event kinds {sorted(unknown)}")
    return {kind: bool(raw.get(key, True)) for key, kind in _EVENT_KEYS.items()}


def load_analytics_config(data: Mapping[str, Any]) -> AnalyticsConfig:
    """Build the config from a parsed YAML document or host init options."""
    analytics = data.get("analytics") or {}
    collector = data.get("collector") or {}
    version = str(analytics.get("version") or "unknown")
    tags = ["version", version, *_string_list(analytics.get("tags"), "tags")]
    try:
        ttl_ms = int(analytics.get("auction_ttl_ms", DEFAULT_AUCTION_TTL_MS))
    except (TypeError, ValueError) as exc:
        raise ValueError("auction_ttl_ms must be an integer") from exc
    if ttl_ms <= 0:
        raise ValueError("auction_ttl_ms must be positive")
    return AnalyticsConfig(
        version=version,
        ad_units=tuple(code.lower() for code in _string_list(analytics.get("ad_units"), "ad_units")),
        tags=tuple(tags),
        api_key=analytics.get("key") or None,
        wanted_events=_wanted_events(analytics.get("events")),
        auction_ttl_ms=ttl_ms,
        collector=CollectorConfig(
            backend=str(collector.get("backend", "local")),
            options=dict(collector.get("options") or {}),
        ),
    )


@lru_cache(maxsize=1)
def get_analytics_config() -> AnalyticsConfig:
    path = Path(os.getenv("AUCTION_ANALYTICS_CONFIG_PATH", _DEFAULT_ANALYTICS_CONFIG))
    return load_analytics_config(_load_yaml(path))


def get_ad_unit_catalog_path() -> Path:
    return Path(os.getenv("AUCTION_ANALYTICS_AD_UNITS_PATH", _DEFAULT_AD_UNIT_CONFIG))

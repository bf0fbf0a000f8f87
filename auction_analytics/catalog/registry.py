"""Ad-unit catalog backed by YAML configuration."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Protocol

import yaml


class AdUnitCatalog(Protocol):
    def resolve_path(self, ad_unit_code: str) -> str | None: ...


@dataclass(frozen=True)
class AdUnitEntry:
    code: str
    path: str | None = None
    sizes: tuple[tuple[int, int], ...] = ()


class AdUnitRegistry:
    """Host ad-unit definitions, matched case-insensitively by code."""

    def __init__(self, entries: Iterable[AdUnitEntry] = ()) -> None:
        self._ad_units: dict[str, AdUnitEntry] = {}
        self._load(entries)

    @classmethod
    def from_yaml(cls, config_path: Path) -> "AdUnitRegistry":
        if not config_path.exists():
            raise FileNotFoundError(config_path)
        data = yaml.safe_load(config_path.read_text()) or {}
        entries = []
        for item in data.get("ad_units", []):
            entries.append(
                AdUnitEntry(
                    code=str(item["code"]),
                    path=item.get("path"),
                    sizes=tuple(tuple(size) for size in item.get("sizes", [])),
                )
            )
        return cls(entries)

    def _load(self, entries: Iterable[AdUnitEntry]) -> None:
        self._ad_units = {entry.code.lower(): entry for entry in entries}

    def all(self) -> Iterable[AdUnitEntry]:
        return self._ad_units.values()

    def get(self, ad_unit_code: str) -> AdUnitEntry | None:
        return self._ad_units.get(ad_unit_code.lower())

    def resolve_path(self, ad_unit_code: str) -> str | None:
        entry = self.get(ad_unit_code)
        return entry.path if entry else None

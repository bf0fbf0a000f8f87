"""JSON encoding for outbound snapshots."""

from __future__ import annotations

from typing import Any, Iterable

import orjson

from ..aggregator.models import EventKind

_ORJSON_OPTIONS = orjson.OPT_SORT_KEYS | orjson.OPT_NON_STR_KEYS


def dumps(payload: Any) -> bytes:
    """Serialize records, enums and snapshots; dataclasses are handled natively."""
    return orjson.dumps(payload, option=_ORJSON_OPTIONS)


def to_primitive(payload: Any) -> Any:
    return orjson.loads(dumps(payload))


def encode_envelope(kind: EventKind, snapshot: Any, tags: Iterable[str]) -> bytes:
    return dumps({"event": kind, "tags": list(tags), "payload": snapshot})

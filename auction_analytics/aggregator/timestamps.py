"""Epoch-millisecond helpers shared by the reducer and event parsing."""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Any


class TimestampError(ValueError):
    """Raised when an event timestamp cannot be read as epoch milliseconds."""


def now_ms() -> int:
    return int(time.time() * 1000)


def parse_timestamp(value: str) -> datetime:
    if not value:
        raise TimestampError("timestamp missing")
    try:
        if value.endswith("Z"):
            value = value[:-1] + "+00:00"
        dt = datetime.fromisoformat(value)
    except ValueError as exc:
        raise TimestampError("timestamp is not ISO-8601 compatible") from exc
    if dt.tzinfo is None:
        raise TimestampError("timestamp must include timezone information")
    return dt.astimezone(timezone.utc)


def to_epoch_ms(value: Any) -> int:
    """Accept epoch milliseconds (host default) or an ISO-8601 string."""
    if isinstance(value, bool):
        raise TimestampError("timestamp must be a number or ISO-8601 string")
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str):
        stripped = value.strip()
        if stripped.isdigit():
            return int(stripped)
        return int(parse_timestamp(stripped).timestamp() * 1000)
    raise TimestampError("timestamp must be a number or ISO-8601 string")


def optional_epoch_ms(value: Any) -> int | None:
    if value is None:
        return None
    return to_epoch_ms(value)

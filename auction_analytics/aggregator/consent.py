"""Map a GDPR consent payload to a reporting consent state."""

from __future__ import annotations

from typing import Any, Mapping

from .models import ConsentState


def _flags(raw: Any) -> list[Any]:
    if isinstance(raw, Mapping):
        return list(raw.values())
    if isinstance(raw, (list, tuple)):
        return list(raw)
    return []


def classify_consent(payload: Mapping[str, Any] | None) -> ConsentState:
    vendor_data = (payload or {}).get("vendorData")
    if not isinstance(vendor_data, Mapping):
        vendor_data = {}
    purposes = _flags(vendor_data.get("purposeConsents"))
    vendors = _flags(vendor_data.get("vendorConsents"))
    if not purposes and not vendors:
        return ConsentState.UNDEFINED
    if all(flag is True for flag in purposes) and all(flag is True for flag in vendors):
        return ConsentState.CONSENT
    return ConsentState.NO_CONSENT

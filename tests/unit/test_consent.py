"""Unit tests for GDPR consent classification."""

from __future__ import annotations

import pytest

from auction_analytics.aggregator.consent import classify_consent
from auction_analytics.aggregator.models import ConsentState


def _payload(purposes, vendors):
    return {"vendorData": {"purposeConsents": purposes, "vendorConsents": vendors}}


class TestClassifyConsent:
    @pytest.mark.parametrize(
        "payload",
        [None, {}, {"vendorData": None}, _payload({}, {}), _payload(None, None)],
    )
    def test_missing_signal_is_undefined(self, payload):
        """Test that an absent or empty consent payload maps to UNDEFINED."""
        assert classify_consent(payload) is ConsentState.UNDEFINED

    def test_all_flags_true_is_consent(self):
        payload = _payload({"1": True, "2": True}, {"32": True, "76": True})
        assert classify_consent(payload) is ConsentState.CONSENT

    def test_any_false_purpose_is_no_consent(self):
        payload = _payload({"1": True, "2": False}, {"32": True})
        assert classify_consent(payload) is ConsentState.NO_CONSENT

    def test_any_false_vendor_is_no_consent(self):
        payload = _payload({"1": True}, {"32": True, "76": False})
        assert classify_consent(payload) is ConsentState.NO_CONSENT

    def test_list_shaped_flags_are_accepted(self):
        assert classify_consent(_payload([True, True], [True])) is ConsentState.CONSENT
        assert classify_consent(_payload([True, False], [])) is ConsentState.NO_CONSENT

    def test_classification_is_idempotent(self):
        payload = _payload({"1": True, "2": False}, {"32": True})
        assert classify_consent(payload) == classify_consent(payload)
        assert payload == _payload({"1": True, "2": False}, {"32": True})

    def test_some_consent_is_reserved_but_never_produced(self):
        """Test that SOME_CONSENT keeps its wire value without being reachable."""
        assert ConsentState.SOME_CONSENT == 2
        mixed = [
            _payload({"1": True, "2": False}, {"32": True}),
            _payload({"1": True}, {"32": False}),
            _payload({"1": True}, {}),
        ]
        assert all(classify_consent(p) is not ConsentState.SOME_CONSENT for p in mixed)

"""
Tests for compliance value objects (``compliance_kernel.domain.values``).

Invariants tested:
- next_hire_dispatch is derived from the counters and the threshold.
- Hire classification resolves any label; only "dispatch" is Dispatch.
- RatioRule rejects ratios below one.
- All value objects are frozen.
"""

from dataclasses import FrozenInstanceError
from datetime import date, datetime, timezone
from uuid import uuid4

import pytest

from compliance_kernel.domain.values import (
    ComplianceState,
    ComplianceStatus,
    HireClassification,
    HireEvent,
    RatioRule,
)
from compliance_kernel.exceptions import ConfigurationError, InvalidRatioError


# =========================================================================
# HireClassification
# =========================================================================


class TestHireClassification:

    @pytest.mark.parametrize("raw", ["dispatch", "Dispatch", "  DISPATCH  ", "dispatch\t"])
    def test_dispatch_labels(self, raw):
        assert HireClassification.from_raw(raw) is HireClassification.DISPATCH

    @pytest.mark.parametrize("raw", ["Direct", "direct", "Name Call", "", None, "dispatched", "transfer"])
    def test_everything_else_counts_as_direct(self, raw):
        # Unrecognised labels are replayed as Direct rather than dropped.
        assert HireClassification.from_raw(raw) is HireClassification.DIRECT

    def test_str_enum_identity(self):
        assert HireClassification.DIRECT == "direct"
        assert HireClassification.DISPATCH == "dispatch"


# =========================================================================
# ComplianceStatus
# =========================================================================


class TestComplianceStatus:

    @pytest.mark.parametrize("label", ["Noncompliant", "non-compliant", "NON", " nonCompliant"])
    def test_non_prefix_is_noncompliant(self, label):
        assert ComplianceStatus.from_label(label) is ComplianceStatus.NONCOMPLIANT

    @pytest.mark.parametrize("label", ["Compliant", "compliant", "", None])
    def test_other_labels_are_compliant(self, label):
        assert ComplianceStatus.from_label(label) is ComplianceStatus.COMPLIANT


# =========================================================================
# ComplianceState
# =========================================================================


class TestComplianceState:

    def test_fresh_state(self):
        s = ComplianceState.fresh(2)
        assert s.status is ComplianceStatus.COMPLIANT
        assert (s.direct_count, s.dispatch_needed) == (0, 0)
        assert s.is_compliant

    @pytest.mark.parametrize(
        "direct_count, dispatch_needed, expected",
        [
            (0, 0, False),
            (1, 0, False),
            (2, 0, True),
            (3, 1, True),
            (0, 1, True),
        ],
    )
    def test_next_hire_dispatch(self, direct_count, dispatch_needed, expected):
        status = ComplianceStatus.NONCOMPLIANT if dispatch_needed else ComplianceStatus.COMPLIANT
        s = ComplianceState(status, direct_count, dispatch_needed, allowed_direct=2)
        assert s.next_hire_dispatch is expected

    def test_threshold_for_three_to_one(self):
        s = ComplianceState(ComplianceStatus.COMPLIANT, 2, 0, allowed_direct=3)
        assert s.next_hire_dispatch is False

    @pytest.mark.parametrize("direct_count, dispatch_needed", [(-1, 0), (0, -1)])
    def test_negative_counters_rejected(self, direct_count, dispatch_needed):
        with pytest.raises(ValueError):
            ComplianceState(ComplianceStatus.COMPLIANT, direct_count, dispatch_needed, 2)

    def test_frozen(self):
        s = ComplianceState.fresh(2)
        with pytest.raises(FrozenInstanceError):
            s.direct_count = 5


# =========================================================================
# RatioRule
# =========================================================================


class TestRatioRule:

    def test_valid_rule(self):
        rule = RatioRule(mode_id=uuid4(), mode_name="2To1", allowed_direct=2)
        assert rule.allowed_direct == 2

    @pytest.mark.parametrize("bad", [0, -1, 1.5, "2", True, None])
    def test_invalid_ratio(self, bad):
        with pytest.raises(InvalidRatioError) as exc_info:
            RatioRule(mode_id=uuid4(), mode_name="Bad", allowed_direct=bad)
        assert exc_info.value.code == "INVALID_RATIO"
        assert isinstance(exc_info.value, ConfigurationError)


# =========================================================================
# HireEvent
# =========================================================================


class TestHireEvent:

    def _hire(self, start, reviewed, id_number):
        return HireEvent(
            hire_id=uuid4(),
            contractor_id="C1",
            contractor_name="Acme",
            employer_id=None,
            member_name="Pat",
            id_number=id_number,
            classification=HireClassification.DIRECT,
            hire_type="Direct",
            start_date=start,
            reviewed_at=reviewed,
        )

    def test_replay_key_orders_by_start_then_review_then_id_number(self):
        t1 = datetime(2024, 1, 1, 8, tzinfo=timezone.utc)
        t2 = datetime(2024, 1, 1, 9, tzinfo=timezone.utc)
        a = self._hire(date(2024, 1, 2), t2, "A")
        b = self._hire(date(2024, 1, 1), t2, "Z")
        c = self._hire(date(2024, 1, 2), t1, "Z")
        d = self._hire(date(2024, 1, 2), t2, "0")

        ordered = sorted([a, b, c, d], key=lambda h: h.replay_key)
        assert ordered == [b, c, d, a]

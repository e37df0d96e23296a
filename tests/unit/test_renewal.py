"""
Unit tests for the renewal evaluator and its two call sites.

Instants are fixed; the renewal boundary is tested to the second.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock

import pytest

from ssh_cert_issuer.domain.models import RenewalDecision
from ssh_cert_issuer.railway import ErrorCode, ResultAssertions
from ssh_cert_issuer.renewal import (
    READY_FOR_RENEWAL_ATTRIBUTE,
    PlanModification,
    evaluate_renewal,
    parse_rfc3339,
    plan_renewal,
    refresh_renewal,
)
from tests.conftest import clock_at

END = datetime(2023, 1, 1, 22, 0, 0, tzinfo=UTC)
END_TEXT = "2023-01-01T22:00:00Z"


class TestEvaluateRenewal:
    """The pure renewal decision."""

    @pytest.mark.parametrize(
        ("now", "expected"),
        [
            (END - timedelta(hours=2, seconds=1), RenewalDecision.FRESH),
            (END - timedelta(hours=2), RenewalDecision.READY_FOR_RENEWAL),
            (END - timedelta(hours=1), RenewalDecision.READY_FOR_RENEWAL),
            (END + timedelta(days=30), RenewalDecision.READY_FOR_RENEWAL),
        ],
    )
    def test_boundary_is_inclusive(self, now: datetime, expected: RenewalDecision) -> None:
        """
        GIVEN end = 22:00 and 2 early renewal hours
        WHEN evaluate_renewal is called around 20:00
        THEN 20:00 itself is already READY_FOR_RENEWAL, one second earlier is FRESH.
        """
        assert evaluate_renewal(END, 2, now) is expected

    def test_zero_early_hours_means_expired(self) -> None:
        assert evaluate_renewal(END, 0, END - timedelta(seconds=1)) is RenewalDecision.FRESH
        assert evaluate_renewal(END, 0, END) is RenewalDecision.READY_FOR_RENEWAL

    def test_early_hours_beyond_validity_are_always_ready(self) -> None:
        """
        GIVEN more early renewal hours than the certificate is valid for
        WHEN evaluated right after issuance
        THEN it is already READY_FOR_RENEWAL.
        """
        issued = END - timedelta(hours=1)

        assert evaluate_renewal(END, 5, issued) is RenewalDecision.READY_FOR_RENEWAL

    def test_other_offsets_compare_as_instants(self) -> None:
        now = datetime.fromisoformat("2023-01-01T21:59:59+01:00")  # 20:59:59Z

        assert evaluate_renewal(END, 1, now) is RenewalDecision.FRESH


class TestParseRfc3339:
    """Stored validity timestamps."""

    def test_zulu_timestamp_parses(self) -> None:
        ResultAssertions.assert_success_value(parse_rfc3339(END_TEXT), END)

    def test_fractional_seconds_and_offset_parse(self) -> None:
        """
        GIVEN a timestamp with nanosecond fraction and a +01:00 offset
        WHEN parse_rfc3339 is called
        THEN it is the same instant, truncated to microseconds.
        """
        parsed = ResultAssertions.assert_success(parse_rfc3339("2023-01-01T23:00:00.123456789+01:00"))

        assert parsed == END + timedelta(microseconds=123456)

    @pytest.mark.parametrize(
        "text",
        [
            "",
            "garbage",
            "2023-13-01T00:00:00Z",
            "2023-01-01T22:00:00",
            "2023-W01-1T13:00:00+00:00",
            "20230101T220000Z",
            "2023-01-01 22:00:00Z",
            "2023-01-01T22:00Z",
        ],
    )
    def test_invalid_timestamp_fails(self, text: str) -> None:
        """
        GIVEN malformed text, a timestamp without offset, or an ISO 8601 form outside RFC3339
        WHEN parse_rfc3339 is called
        THEN it fails with TIMESTAMP_PARSE_FAILED naming the text.
        """
        error = ResultAssertions.assert_failure(parse_rfc3339(text), ErrorCode.TIMESTAMP_PARSE_FAILED)

        assert error.message == f"failed to parse data from string: {text}"
        assert error.details == {"timestamp": text}


class TestPlanRenewal:
    """Plan-time call site."""

    def test_no_certificate_yet_plans_nothing(self) -> None:
        """
        GIVEN no stored end time
        WHEN plan_renewal is called
        THEN an empty modification is returned and the clock is never read.
        """
        clock = MagicMock()

        ResultAssertions.assert_success_value(plan_renewal(None, 2, clock), PlanModification())
        clock.now.assert_not_called()

    def test_fresh_certificate_plans_nothing(self) -> None:
        modification = ResultAssertions.assert_success(
            plan_renewal(END_TEXT, 2, clock_at("2023-01-01T19:00:00Z"))
        )

        assert modification == PlanModification()
        assert modification.replace is False
        assert modification.ready_for_renewal is False

    def test_due_certificate_requires_replace(self) -> None:
        """
        GIVEN a certificate due for renewal
        WHEN plan_renewal is called
        THEN ready_for_renewal becomes unknown and the resource must be replaced.
        """
        modification = ResultAssertions.assert_success(
            plan_renewal(END_TEXT, 2, clock_at("2023-01-01T21:00:00Z"))
        )

        assert modification.ready_for_renewal is None
        assert modification.requires_replace == (READY_FOR_RENEWAL_ATTRIBUTE,)
        assert modification.replace is True

    def test_corrupt_end_time_fails(self) -> None:
        result = plan_renewal("not-a-time", 2, clock_at("2023-01-01T21:00:00Z"))

        ResultAssertions.assert_failure(result, ErrorCode.TIMESTAMP_PARSE_FAILED)


class TestRefreshRenewal:
    """Refresh-time call site."""

    def test_no_certificate_keeps_current_flag(self) -> None:
        clock = MagicMock()

        ResultAssertions.assert_success_value(refresh_renewal(None, 2, clock, current=True), True)
        ResultAssertions.assert_success_value(refresh_renewal(None, 2, clock), False)
        clock.now.assert_not_called()

    def test_fresh_certificate_reports_false(self) -> None:
        result = refresh_renewal(END_TEXT, 2, clock_at("2023-01-01T19:00:00Z"), current=True)

        ResultAssertions.assert_success_value(result, False)

    def test_due_certificate_reports_true_every_time(self) -> None:
        """
        GIVEN a certificate due for renewal
        WHEN refresh_renewal is called repeatedly
        THEN it keeps reporting true.
        """
        clock = clock_at("2023-01-01T21:00:00Z")

        first = ResultAssertions.assert_success(refresh_renewal(END_TEXT, 2, clock))
        second = ResultAssertions.assert_success(refresh_renewal(END_TEXT, 2, clock, current=first))

        assert first is True
        assert second is True

    def test_corrupt_end_time_fails(self) -> None:
        result = refresh_renewal("2023-01-01", 2, clock_at("2023-01-01T21:00:00Z"))

        ResultAssertions.assert_failure(result, ErrorCode.TIMESTAMP_PARSE_FAILED)

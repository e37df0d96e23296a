"""
Unit tests for the Result railway and its execution contexts.
"""

from __future__ import annotations

import pytest

from ssh_cert_issuer.railway import (
    ErrorCode,
    Failure,
    FailureDescription,
    LoggingExecutionContext,
    NoOpExecutionContext,
    Result,
    ResultAssertions,
    Success,
)


class TestResultTracks:
    """Success and failure tracks."""

    def test_map_and_flat_map_run_on_success(self) -> None:
        result = Result.success(2).map(lambda x: x * 10).flat_map(lambda x: Result.success(x + 1))

        ResultAssertions.assert_success_value(result, 21)

    def test_failure_short_circuits(self) -> None:
        """
        GIVEN a failed Result
        WHEN map and flat_map are chained
        THEN neither mapper runs and the first failure is kept.
        """
        calls: list[int] = []
        result = (
            Result.failure(ErrorCode.MALFORMED_PEM, "no block")
            .map(lambda x: calls.append(x))
            .flat_map(lambda x: Result.success(calls.append(x)))
        )

        ResultAssertions.assert_failure(result, ErrorCode.MALFORMED_PEM)
        assert calls == []

    def test_from_computation_captures_exception(self) -> None:
        def boom() -> int:
            raise ValueError("bad der")

        error = ResultAssertions.assert_failure(
            Result.from_computation(boom, ErrorCode.KEY_DECODE_FAILED, "decode", {"preamble": "X"}),
            ErrorCode.KEY_DECODE_FAILED,
        )

        assert isinstance(error.exception, ValueError)
        assert error.details == {"preamble": "X"}

    def test_combine_first_failure_wins(self) -> None:
        first = Result.failure(ErrorCode.SIGNING_FAILED, "first")
        second = Result.failure(ErrorCode.PUBLIC_KEY_PARSE_FAILED, "second")

        combined = Result.combine(first, second, lambda a, b: (a, b))

        ResultAssertions.assert_failure(combined, ErrorCode.SIGNING_FAILED)

    def test_peek_only_sees_success(self) -> None:
        seen: list[int] = []

        Result.success(1).peek(seen.append)
        Result.failure(ErrorCode.SIGNING_FAILED, "x").peek(seen.append)

        assert seen == [1]

    def test_failures_compare_by_code_and_message(self) -> None:
        assert Result.failure(ErrorCode.SIGNING_FAILED, "x") == Result.failure(
            ErrorCode.SIGNING_FAILED, "x", RuntimeError("cause")
        )
        assert Result.failure(ErrorCode.SIGNING_FAILED, "x") != Result.failure(ErrorCode.SIGNING_FAILED, "y")

    def test_value_of_failure_raises(self) -> None:
        with pytest.raises(ValueError):
            Result.failure(ErrorCode.UNKNOWN_ERROR, "x").value()

    def test_success_rejects_none(self) -> None:
        with pytest.raises(TypeError):
            Success(None)

    def test_pattern_matching(self) -> None:
        match Result.failure(ErrorCode.MALFORMED_PEM, "m"):
            case Failure(error):
                assert error.code is ErrorCode.MALFORMED_PEM
            case Success(_):
                pytest.fail("expected failure")


class TestFailureDescription:
    def test_str_includes_code_and_message(self) -> None:
        description = FailureDescription(ErrorCode.SIGNING_FAILED, "failed to sign certificate")

        assert "SIGNING_FAILED" in str(description)
        assert "failed to sign certificate" in str(description)


class TestExecutionContexts:
    """Wrapping a computation in an execution context."""

    def test_noop_context_returns_result_as_is(self) -> None:
        ResultAssertions.assert_success_value(NoOpExecutionContext().execute(lambda: Result.success(3)), 3)

    def test_logging_context_passes_failure_through(self) -> None:
        context = LoggingExecutionContext(operation="IssueUserCertificate")

        result = context.execute(
            lambda: Result.failure(ErrorCode.MALFORMED_PEM, "m", details={"remaining_bytes": 3})
        )

        ResultAssertions.assert_failure(result, ErrorCode.MALFORMED_PEM)

    def test_logging_context_converts_escaped_exception(self) -> None:
        """
        GIVEN a computation that raises instead of returning a Result
        WHEN it runs in a LoggingExecutionContext
        THEN the caller receives an UNKNOWN_ERROR failure naming the operation.
        """

        def crash() -> Result[int]:
            raise RuntimeError("adapter bug")

        result = LoggingExecutionContext(operation="IssueHostCertificate").execute(crash)

        error = ResultAssertions.assert_failure(result, ErrorCode.UNKNOWN_ERROR)
        assert "IssueHostCertificate" in error.message
        assert isinstance(error.exception, RuntimeError)

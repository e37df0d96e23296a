"""
Test assertions for Result values.

    parsed = ResultAssertions.assert_success(parse_private_key_pem(pem))
    error = ResultAssertions.assert_failure(result, ErrorCode.NO_PARSER_FOR_PREAMBLE)
"""

from __future__ import annotations

from typing import Any, TypeVar

from ssh_cert_issuer.railway.failure import ErrorCode, FailureDescription
from ssh_cert_issuer.railway.result import Result

T = TypeVar("T")


def _describe(result: Result[Any]) -> str:
    if result.is_success():
        return f"Success({result.value()!r})"
    return f"Failure({result.error()})"


class ResultAssertions:
    """Assertions that print the other track's content when they fail."""

    @staticmethod
    def assert_success(result: Result[T]) -> T:
        """Assert the Result is a Success and return its value."""
        assert result.is_success(), f"expected Success, got {_describe(result)}"
        return result.value()

    @staticmethod
    def assert_failure(result: Result[T], expected_code: ErrorCode | None = None) -> FailureDescription:
        """Assert the Result is a Failure (with the given code, if any) and return its description."""
        assert result.is_failure(), f"expected Failure, got {_describe(result)}"
        error = result.error()
        if expected_code is not None:
            assert error.code is expected_code, f"expected {expected_code.value}, got {error}"
        return error

    @staticmethod
    def assert_failure_message_contains(result: Result[T], substring: str) -> None:
        """Case-insensitive substring check on the failure message."""
        error = ResultAssertions.assert_failure(result)
        assert substring.lower() in error.message.lower(), (
            f"expected failure message to contain {substring!r}, got {error.message!r}"
        )

    @staticmethod
    def assert_success_value(result: Result[T], expected: Any) -> None:
        value = ResultAssertions.assert_success(result)
        assert value == expected, f"expected success value {expected!r}, got {value!r}"

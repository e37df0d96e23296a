"""
Result monad — the success/failure railway every issuer operation runs on.

A Result[T] is either Success(value: T) or Failure(error: FailureDescription).
Operations return Result instead of raising, so a failure in any stage of
issuance (parse → template → sign) short-circuits the remaining stages:

    parse_private_key_pem ──Success──▶ new_signer ──Success──▶ sign_certificate ──▶ Result[T]
            │ Failure                       │ Failure                 │ Failure
            └───────────────────────────────┴─────────────────────────┴──────────▶ Result[T]

Library exceptions are converted to failures at the adapter boundary with
Result.from_computation().
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from ssh_cert_issuer.railway.failure import ErrorCode, FailureDescription

T = TypeVar("T")
U = TypeVar("U")
A = TypeVar("A")
B = TypeVar("B")
R = TypeVar("R")


class Result(Generic[T]):
    """
    Railway-Oriented Programming Result monad.

        >>> Result.success(2).map(lambda hours: hours * 3600).value()
        7200
        >>> Result.failure(ErrorCode.SIGNING_FAILED, "boom").map(str).is_failure()
        True
    """

    def is_success(self) -> bool:
        return isinstance(self, Success)

    def is_failure(self) -> bool:
        return isinstance(self, Failure)

    def value(self) -> T:
        """The success value. Raises ValueError on a Failure."""
        if isinstance(self, Success):
            return self._value
        raise ValueError(f"Cannot get value from a Failure: {self.error().message}")

    def error(self) -> FailureDescription:
        """The failure description. Raises ValueError on a Success."""
        if isinstance(self, Failure):
            return self._error
        raise ValueError(f"Cannot get error from a Success: {self.value()!r}")

    # ──────────────────────── Transformations ────────────────────────

    def map(self, mapper: Callable[[T], U]) -> Result[U]:
        """Transform the success value. Short-circuits on failure."""
        match self:
            case Success(v):
                return Success(mapper(v))
            case Failure(err):
                return Failure(err)
        raise TypeError("unreachable")  # pragma: no cover

    def flat_map(self, mapper: Callable[[T], Result[U]]) -> Result[U]:
        """
        Chain a Result-returning stage. Short-circuits on failure.

            parse_private_key_pem(pem).flat_map(new_signer)
        """
        match self:
            case Success(v):
                return mapper(v)
            case Failure(err):
                return Failure(err)
        raise TypeError("unreachable")  # pragma: no cover

    def peek(self, action: Callable[[T], Any]) -> Result[T]:
        """Run a side effect (logging) on the success value."""
        if isinstance(self, Success):
            action(self._value)
        return self

    # ──────────────────────── Factories ────────────────────────

    @staticmethod
    def success(value: T) -> Result[T]:
        return Success(value)

    @staticmethod
    def failure(
        code: ErrorCode,
        message: str,
        exception: BaseException | None = None,
        details: Mapping[str, Any] | None = None,
    ) -> Result[T]:
        """
        Create a failed Result.

            Result.failure(ErrorCode.MALFORMED_PEM, "no PEM block", details={"remaining_bytes": 12})
        """
        return Failure(FailureDescription(code, message, exception, dict(details or {})))

    @staticmethod
    def from_computation(
        computation: Callable[[], T],
        error_code: ErrorCode,
        error_message: str,
        details: Mapping[str, Any] | None = None,
    ) -> Result[T]:
        """
        Run a library call that may raise; any exception becomes a failure.

            Result.from_computation(
                lambda: serialization.load_der_private_key(der, password=None),
                ErrorCode.KEY_DECODE_FAILED,
                "failed to parse private key given PEM preamble 'PRIVATE KEY'",
            )
        """
        try:
            return Result.success(computation())
        except Exception as e:
            return Result.failure(error_code, error_message, e, details)

    @staticmethod
    def combine(ra: Result[A], rb: Result[B], combiner: Callable[[A, B], R]) -> Result[R]:
        """Combine two Results; the first failure wins."""
        return ra.flat_map(lambda a: rb.map(lambda b: combiner(a, b)))


@dataclass(frozen=True, slots=True, eq=False)
class Success(Result[T]):
    """The success track. Holds a non-None value."""

    _value: T

    def __init__(self, value: T) -> None:
        if value is None:
            raise TypeError("Success value must not be None")
        object.__setattr__(self, "_value", value)

    def __repr__(self) -> str:
        return f"Success({self._value!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Success):
            return bool(self._value == other._value)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(("Success", self._value))


# Enable structural pattern matching: case Success(value)
Success.__match_args__ = ("_value",)


@dataclass(frozen=True, slots=True, eq=False)
class Failure(Result[T]):
    """The failure track. Two failures are equal when code and message match."""

    _error: FailureDescription

    def __init__(self, error: FailureDescription) -> None:
        object.__setattr__(self, "_error", error)

    def __repr__(self) -> str:
        return f"Failure({self._error.code.value}: {self._error.message!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Failure):
            return (self._error.code, self._error.message) == (other._error.code, other._error.message)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(("Failure", self._error.code, self._error.message))


# Enable structural pattern matching: case Failure(error)
Failure.__match_args__ = ("_error",)

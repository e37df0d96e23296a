"""
Execution contexts — wrap a Result-returning computation with side effects.

The issuance railway itself is pure; HOW it runs (timing, structured logging,
catching anything that escaped an adapter) is decided by the context it runs in.

    ctx = LoggingExecutionContext(operation="IssueUserCertificate")
    result = ctx.execute(lambda: issue_certificate(...))
"""

from __future__ import annotations

import time
from collections.abc import Callable
from typing import Protocol, TypeVar, runtime_checkable

import structlog

from ssh_cert_issuer.railway.failure import ErrorCode, FailureDescription
from ssh_cert_issuer.railway.result import Failure, Result

T = TypeVar("T")
log = structlog.get_logger()


@runtime_checkable
class ExecutionContext(Protocol):
    """Anything with execute(computation) is an execution context."""

    def execute(self, computation: Callable[[], Result[T]]) -> Result[T]: ...


class NoOpExecutionContext:
    """Runs the computation as is."""

    def execute(self, computation: Callable[[], Result[T]]) -> Result[T]:
        return computation()


class LoggingExecutionContext:
    """
    Logs start, duration and outcome of a computation.

    An exception escaping the computation is turned into an UNKNOWN_ERROR
    failure so callers only ever see a Result.
    """

    def __init__(
        self,
        inner: ExecutionContext | None = None,
        operation: str = "unknown",
    ) -> None:
        self._inner = inner or NoOpExecutionContext()
        self._operation = operation

    def execute(self, computation: Callable[[], Result[T]]) -> Result[T]:
        log.debug("execution.started", operation=self._operation)
        start = time.monotonic()

        try:
            result = self._inner.execute(computation)
        except Exception as e:
            log.error(
                "execution.crashed",
                operation=self._operation,
                elapsed_seconds=round(time.monotonic() - start, 3),
                error=str(e),
            )
            return Failure(
                FailureDescription(
                    ErrorCode.UNKNOWN_ERROR,
                    f"{self._operation} failed unexpectedly: {e}",
                    e,
                )
            )

        elapsed = round(time.monotonic() - start, 3)
        if result.is_success():
            log.info("execution.completed", operation=self._operation, elapsed_seconds=elapsed)
        else:
            failure = result.error()
            log.error(
                "execution.failed",
                operation=self._operation,
                elapsed_seconds=elapsed,
                error_code=failure.code.value,
                message=failure.message,
                **failure.details,
            )
        return result

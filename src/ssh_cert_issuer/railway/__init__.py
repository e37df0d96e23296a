"""
Railway-Oriented Programming primitives used across the issuer.

    from ssh_cert_issuer.railway import ErrorCode, Result

    def require_hours(hours: int) -> Result[int]:
        if hours < 0:
            return Result.failure(ErrorCode.VALIDATION_ERROR, "hours must be non-negative")
        return Result.success(hours)
"""

from ssh_cert_issuer.railway.assertions import ResultAssertions
from ssh_cert_issuer.railway.execution import (
    ExecutionContext,
    LoggingExecutionContext,
    NoOpExecutionContext,
)
from ssh_cert_issuer.railway.failure import ErrorCode, FailureDescription
from ssh_cert_issuer.railway.result import Failure, Result, Success

__all__ = [
    "Result",
    "Success",
    "Failure",
    "ErrorCode",
    "FailureDescription",
    "ExecutionContext",
    "NoOpExecutionContext",
    "LoggingExecutionContext",
    "ResultAssertions",
]

"""
Railway-Oriented Programming (ROP) support for the OCSP response checker.

Explicit, composable, functional error handling — no exceptions in business logic.

    from railway import Result, ErrorCode

    def require_nonce(value: bytes | None) -> Result[bytes]:
        if value is None:
            return Result.failure(ErrorCode.NONCE_MISSING, "Nonce extension not found")
        return Result.success(value)
"""

from railway.result import Result, Success, Failure
from railway.failure import ErrorCode, FailureDescription
from railway.execution import (
    ExecutionContext,
    NoOpExecutionContext,
    LoggingExecutionContext,
)
from railway.result_failures import ResultFailures
from railway.assertions import ResultAssertions

__all__ = [
    "Result",
    "Success",
    "Failure",
    "ErrorCode",
    "FailureDescription",
    "ExecutionContext",
    "NoOpExecutionContext",
    "LoggingExecutionContext",
    "ResultFailures",
    "ResultAssertions",
]

__version__ = "1.0.0"

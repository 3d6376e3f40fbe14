"""
Execution contexts — separate WHAT (pure logic) from HOW (side effects).

Pure functions describe WHAT should happen and return Result[T].
An ExecutionContext describes HOW it happens: here, structured logging of the
operation name, duration and outcome around a validation call.

Usage:
    ctx = LoggingExecutionContext(operation="OcspResponseValidation")
    result = ctx.execute(lambda: validator.validate(response, nonce))
"""

from __future__ import annotations

import time
from typing import Callable, Protocol, TypeVar, runtime_checkable

import structlog

from railway.failure import ErrorCode, FailureDescription
from railway.result import Failure, Result

T = TypeVar("T")
log = structlog.get_logger()


@runtime_checkable
class ExecutionContext(Protocol):
    """
    Protocol for execution contexts.

    Any class implementing execute(computation) satisfies this protocol
    via structural typing — no explicit inheritance needed.
    """

    def execute(self, computation: Callable[[], Result[T]]) -> Result[T]:
        """Execute a Result-returning computation within this context."""
        ...


class NoOpExecutionContext:
    """Passthrough execution context — runs computation without any wrapper."""

    def execute(self, computation: Callable[[], Result[T]]) -> Result[T]:
        return computation()


class LoggingExecutionContext:
    """
    Execution context that logs start, completion, duration and result state.

    Wraps another context (decorator pattern). An exception escaping the
    computation is converted to a TECHNICAL_ERROR failure.

        ctx = LoggingExecutionContext(operation="OcspResponseValidation")
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
            elapsed = time.monotonic() - start
            log.error(
                "execution.crashed",
                operation=self._operation,
                elapsed_seconds=round(elapsed, 3),
                error=str(e),
            )
            return Failure(
                FailureDescription(
                    ErrorCode.TECHNICAL_ERROR,
                    f"Execution failed: {e}",
                    e,
                )
            )

        elapsed = time.monotonic() - start
        if result.is_success():
            log.info(
                "execution.completed",
                operation=self._operation,
                elapsed_seconds=round(elapsed, 3),
                state="SUCCESS",
            )
        else:
            error = result.error()
            log.warning(
                "execution.completed",
                operation=self._operation,
                elapsed_seconds=round(elapsed, 3),
                state="FAILURE",
                code=error.code.value,
                reason=error.message,
            )
        return result

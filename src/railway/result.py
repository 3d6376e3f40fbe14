"""
Result monad — the core of Railway-Oriented Programming.

A Result[T] is either Success(value: T) or Failure(error: FailureDescription).
Every pipeline stage returns Result, never throws. Errors propagate automatically
through the failure track via .flat_map() short-circuiting, which is exactly the
fail-fast behavior response validation needs: the first rejected check ends the
pipeline and no later check runs.

    ┌───────────┐   flat_map    ┌───────────┐   flat_map    ┌──────────┐
    │  status   │──Success──────│   nonce   │──Success──────│  signer  │──→ Result[T]
    │   gate    │               │   check   │               │  trust   │
    └─────┬─────┘               └─────┬─────┘               └─────┬────┘
          │ Failure                   │ Failure                   │ Failure
          └───────────────────────────┴───────────────────────────┴──→ Result[T]

Result offers no recover() or get_or_else(): a rejected OCSP response has
no fallback value.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import (
    Any,
    Callable,
    Generic,
    Optional,
    TypeVar,
)

from railway.failure import ErrorCode, FailureDescription

T = TypeVar("T")
U = TypeVar("U")
R = TypeVar("R")


class Result(Generic[T]):
    """
    Railway-Oriented Programming Result monad.

    Two possible states:
      - Success(value: T)  — the happy path
      - Failure(error: FailureDescription) — the error track

    Usage:
        >>> result = Result.success(b"\\xa1").map(len)
        >>> result.value()
        1

        >>> result = Result.failure(ErrorCode.NONCE_MISSING, "no nonce")
        >>> result.map(len).is_failure()
        True
    """

    # ──────────────────────── Introspection ────────────────────────

    def is_success(self) -> bool:
        """Check if this Result is a Success."""
        return isinstance(self, Success)

    def is_failure(self) -> bool:
        """Check if this Result is a Failure."""
        return isinstance(self, Failure)

    def value(self) -> T:
        """
        Extract the success value. Raises ValueError if called on a Failure.

        Prefer .either() or match/case for safe access.
        """
        match self:
            case Success(v):
                return v
            case Failure(err):
                raise ValueError(f"Cannot get value from a Failure: {err.message}")
        raise TypeError("unreachable")  # pragma: no cover

    def error(self) -> FailureDescription:
        """Extract the failure description. Raises ValueError if called on a Success."""
        match self:
            case Failure(err):
                return err
            case Success(v):
                raise ValueError(f"Cannot get error from a Success: {v}")
        raise TypeError("unreachable")  # pragma: no cover

    # ──────────────────────── Core Transformations ────────────────────────

    def either(
        self,
        on_success: Callable[[T], R],
        on_failure: Callable[[FailureDescription], R],
    ) -> R:
        """
        Apply one of two functions depending on the state.

            result.either(
                on_success=lambda vr: f"{len(vr.statuses)} statuses",
                on_failure=lambda err: f"Rejected: {err.code.value}",
            )
        """
        match self:
            case Success(v):
                return on_success(v)
            case Failure(err):
                return on_failure(err)
        raise TypeError("unreachable")  # pragma: no cover

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
        Chain a Result-returning function. Short-circuits on failure.

        This is the KEY operator of ROP — it connects railway segments.
        """
        match self:
            case Success(v):
                return mapper(v)
            case Failure(err):
                return Failure(err)
        raise TypeError("unreachable")  # pragma: no cover

    # ──────────────────────── Side Effects ────────────────────────

    def peek(self, action: Callable[[T], Any]) -> Result[T]:
        """Execute a side effect on success value without altering the Result."""
        match self:
            case Success(v):
                action(v)
        return self

    # ──────────────────────── Static Factories ────────────────────────

    @staticmethod
    def success(value: T) -> Result[T]:
        """Create a successful Result wrapping the given value."""
        return Success(value)

    @staticmethod
    def failure(
        code: ErrorCode,
        message: str,
        exception: Optional[BaseException] = None,
        *,
        cause: Optional[FailureDescription] = None,
        details: Mapping[str, Any] | None = None,
    ) -> Result[T]:
        """
        Create a failed Result with error code, message, and optional exception,
        wrapped cause and diagnostic details.

            Result.failure(ErrorCode.NONCE_MISSING, "Nonce extension not found")
            Result.failure(ErrorCode.VERIFICATION_ERROR, "Provider failed", ex)
        """
        return Failure(
            FailureDescription.create(
                code=code,
                message=message,
                exception=exception,
                cause=cause,
                details=details,
            )
        )

    @staticmethod
    def from_computation(
        computation: Callable[[], T],
        error_code: ErrorCode,
        error_message: str,
    ) -> Result[T]:
        """
        Create a Result from a computation that may raise.

        Wraps exceptions into Result.failure — this is the adapter boundary where
        pyasn1 / cryptography exceptions become failure-track values:

            return Result.from_computation(
                lambda: x509.load_der_x509_certificate(der),
                ErrorCode.SIGNER_CERTIFICATE_UNAVAILABLE,
                "Responder certificate does not decode",
            )
        """
        try:
            return Result.success(computation())
        except Exception as e:
            return Result.failure(error_code, f"{error_message}: {e}", e)

    @staticmethod
    def from_optional(
        value: Optional[T],
        error_message: str,
        error_code: ErrorCode,
    ) -> Result[T]:
        """Create a Result from an Optional/None value."""
        if value is not None:
            return Result.success(value)
        return Result.failure(error_code, error_message)

    # ──────────────────────── Dunder methods ────────────────────────

    def __bool__(self) -> bool:
        """Allow truthiness check: `if result: ...` succeeds only on Success."""
        return self.is_success()

    def __repr__(self) -> str:
        match self:
            case Success(v):
                return f"Success({v!r})"
            case Failure(err):
                return f"Failure({err.code.value}: {err.message!r})"
        raise TypeError("unreachable")  # pragma: no cover

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Result):
            return NotImplemented
        match (self, other):
            case (Success(a), Success(b)):
                return a == b
            case (Failure(a), Failure(b)):
                return a.code == b.code and a.message == b.message
            case _:
                return False


@dataclass(frozen=True, slots=True)
class Success(Result[T]):
    """The success track — wraps a value of type T."""

    _value: T

    def __init__(self, value: T) -> None:
        if value is None:
            raise TypeError("Success value must not be None")
        object.__setattr__(self, "_value", value)

    def __repr__(self) -> str:
        return f"Success({self._value!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Success):
            return self._value == other._value
        return NotImplemented

    def __hash__(self) -> int:
        return hash(("Success", self._value))


# Enable structural pattern matching: case Success(value)
Success.__match_args__ = ("_value",)


@dataclass(frozen=True, slots=True)
class Failure(Result[T]):
    """The failure track — wraps a FailureDescription."""

    _error: FailureDescription

    def __init__(self, error: FailureDescription) -> None:
        if error is None:
            raise TypeError("Failure error must not be None")
        object.__setattr__(self, "_error", error)

    def __repr__(self) -> str:
        return f"Failure({self._error.code.value}: {self._error.message!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Failure):
            return (
                self._error.code == other._error.code
                and self._error.message == other._error.message
            )
        return NotImplemented

    def __hash__(self) -> int:
        return hash(("Failure", self._error.code, self._error.message))


# Enable structural pattern matching: case Failure(error)
Failure.__match_args__ = ("_error",)

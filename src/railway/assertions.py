"""
Test assertions for Result values.

Usage in tests:
    from railway import ErrorCode, ResultAssertions

    def test_replayed_response_is_rejected():
        result = validator.validate(response, b"\\xa1\\xb2\\xc3")
        error = ResultAssertions.assert_failure(result, ErrorCode.NONCE_MISMATCH)
        assert error.details["received"] == "ffffff"
"""

from __future__ import annotations

from typing import Any, TypeVar

from railway.failure import ErrorCode, FailureDescription
from railway.result import Result

T = TypeVar("T")


class ResultAssertions:
    """Expressive test assertions for Result values."""

    @staticmethod
    def assert_success(result: Result[T], message: str = "") -> T:
        """
        Assert the Result is a Success and return the value.

            value = ResultAssertions.assert_success(result)
        """
        context = f" — {message}" if message else ""
        assert result.is_success(), (
            f"Expected Success but got Failure("
            f"{result.error().code.value}: {result.error().message!r}){context}"
        )
        return result.value()

    @staticmethod
    def assert_failure(
        result: Result[T],
        expected_code: ErrorCode | None = None,
        message: str = "",
    ) -> FailureDescription:
        """
        Assert the Result is a Failure, optionally checking the error code.

            error = ResultAssertions.assert_failure(result, ErrorCode.NONCE_MISSING)
        """
        context = f" — {message}" if message else ""
        assert result.is_failure(), (
            f"Expected Failure but got Success({result.value()!r}){context}"
        )
        error = result.error()
        if expected_code is not None:
            assert error.code == expected_code, (
                f"Expected error code {expected_code.value} "
                f"but got {error.code.value}: {error.message!r}{context}"
            )
        return error

    @staticmethod
    def assert_failure_caused_by(
        result: Result[T],
        expected_code: ErrorCode,
        expected_cause: ErrorCode,
    ) -> FailureDescription:
        """Assert a Failure with `expected_code` that wraps a cause with `expected_cause`."""
        error = ResultAssertions.assert_failure(result, expected_code)
        assert error.cause is not None, (
            f"Expected {expected_code.value} to wrap a cause, but it has none"
        )
        assert error.cause.code == expected_cause, (
            f"Expected cause {expected_cause.value} but got {error.cause.code.value}"
        )
        return error.cause

    @staticmethod
    def assert_failure_message_contains(result: Result[T], substring: str) -> None:
        """Assert that the failure message contains the given substring."""
        assert result.is_failure(), (
            f"Expected Failure but got Success({result.value()!r})"
        )
        error = result.error()
        assert substring.lower() in error.message.lower(), (
            f"Expected failure message to contain {substring!r} "
            f"but message was: {error.message!r}"
        )

    @staticmethod
    def assert_success_value(result: Result[T], expected_value: Any) -> None:
        """Assert the Result is a Success with the specific value."""
        value = ResultAssertions.assert_success(result)
        assert value == expected_value, (
            f"Expected success value {expected_value!r} but got {value!r}"
        )

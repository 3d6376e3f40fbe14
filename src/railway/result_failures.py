"""
Convenience factory methods for the response-validation failures.

One factory per rejection kind, so the pipeline reads as a list of outcomes:

    from railway.result_failures import ResultFailures

    # Instead of:
    Result.failure(ErrorCode.NONCE_MISSING, "Nonce extension not found in response")

    # Write:
    ResultFailures.nonce_missing()
"""

from __future__ import annotations

from typing import TypeVar

from railway.failure import ErrorCode, FailureDescription
from railway.result import Result

T = TypeVar("T")


class ResultFailures:
    """Factory methods for the ErrorCode taxonomy."""

    @staticmethod
    def responder_error(status: int) -> Result:
        """Responder answered with a non-successful top-level status."""
        return Result.failure(
            ErrorCode.RESPONDER_ERROR,
            f"Unsuccessful OCSP response. Status: {status}",
            details={"status": status},
        )

    @staticmethod
    def malformed_response(message: str, exception: BaseException | None = None) -> Result:
        """Response body or an extension failed to decode."""
        return Result.failure(ErrorCode.MALFORMED_RESPONSE, message, exception)

    @staticmethod
    def nonce_missing() -> Result:
        """Response did not echo the request nonce."""
        return Result.failure(ErrorCode.NONCE_MISSING, "Nonce extension not found in response")

    @staticmethod
    def nonce_mismatch(expected: bytes, received: bytes) -> Result:
        """
        Response nonce differs from the request nonce.

        Both values are kept (hex) in `details` for diagnostics only.
        """
        return Result.failure(
            ErrorCode.NONCE_MISMATCH,
            f"Expected nonce: {expected.hex()}, but received: {received.hex()}",
            details={"expected": expected.hex(), "received": received.hex()},
        )

    @staticmethod
    def signer_certificate_unavailable(
        message: str, exception: BaseException | None = None
    ) -> Result:
        """No usable responder certificate in the response."""
        return Result.failure(ErrorCode.SIGNER_CERTIFICATE_UNAVAILABLE, message, exception)

    @staticmethod
    def untrusted_signer(cause: FailureDescription) -> Result:
        """Wrap a path-validation failure; the cause is kept unchanged."""
        return Result.failure(
            ErrorCode.UNTRUSTED_SIGNER,
            f"Responder certificate is not trusted: {cause.message}",
            cause.exception,
            cause=cause,
        )

    @staticmethod
    def signature_invalid() -> Result:
        """Signature verified cryptographically and came out false."""
        return Result.failure(ErrorCode.SIGNATURE_INVALID, "Unable to verify response signature")

    @staticmethod
    def verification_error(cause: FailureDescription) -> Result:
        """The crypto provider raised during verification."""
        return Result.failure(
            ErrorCode.VERIFICATION_ERROR,
            f"Signature verification failed: {cause.message}",
            cause.exception,
            cause=cause,
        )

    @staticmethod
    def path_validation_error(message: str, exception: BaseException | None = None) -> Result:
        """Certificate path could not be built or validated."""
        return Result.failure(ErrorCode.PATH_VALIDATION_ERROR, message, exception)

    @staticmethod
    def configuration_error(message: str, exception: BaseException | None = None) -> Result:
        """System misconfiguration."""
        return Result.failure(ErrorCode.CONFIGURATION_ERROR, message, exception)

"""
Failure description — structured error information for the failure track.

Every way an OCSP response can be rejected has its own ErrorCode, so callers
can tell a replayed response (NONCE_MISMATCH) from a forged one
(SIGNATURE_INVALID) without parsing messages.

A FailureDescription may wrap the failure of a delegated collaborator as its
`cause` (e.g. UNTRUSTED_SIGNER wraps the path validator's own failure), and may
carry read-only diagnostic `details` such as the expected and received nonce.
"""

from __future__ import annotations

import traceback
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum, unique
from types import MappingProxyType
from typing import Any, Optional


@unique
class ErrorCode(Enum):
    """
    Structured error codes for the failure track.

    The first eight codes are the terminal rejections of the response
    validation pipeline, in pipeline order. The remaining codes belong to the
    adapters and the composition root.
    """

    # --- Response validation pipeline ---
    RESPONDER_ERROR = "RESPONDER_ERROR"
    """Top-level OCSP response status is not 'successful'."""

    MALFORMED_RESPONSE = "MALFORMED_RESPONSE"
    """Response body or nonce extension does not decode."""

    NONCE_MISSING = "NONCE_MISSING"
    """Response carries no nonce extension (possible replay)."""

    NONCE_MISMATCH = "NONCE_MISMATCH"
    """Response nonce differs from the one sent in the request."""

    SIGNER_CERTIFICATE_UNAVAILABLE = "SIGNER_CERTIFICATE_UNAVAILABLE"
    """No usable responder certificate embedded in the response."""

    UNTRUSTED_SIGNER = "UNTRUSTED_SIGNER"
    """Responder certificate does not chain to a trusted root."""

    SIGNATURE_INVALID = "SIGNATURE_INVALID"
    """Response signature does not verify with the responder key."""

    VERIFICATION_ERROR = "VERIFICATION_ERROR"
    """The crypto provider raised while verifying the signature."""

    # --- Adapters / infrastructure ---
    PATH_VALIDATION_ERROR = "PATH_VALIDATION_ERROR"
    """Certificate path could not be built or validated."""

    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    """Misconfiguration: settings, trust store, provider registration."""

    TECHNICAL_ERROR = "TECHNICAL_ERROR"
    """Unexpected exception escaping an execution context."""


def _freeze(details: Mapping[str, Any] | None) -> Mapping[str, Any]:
    return MappingProxyType(dict(details or {}))


@dataclass(frozen=True, slots=True)
class FailureDescription:
    """
    Immutable failure descriptor carrying error code, message, optional exception,
    optional wrapped cause, diagnostic details and timestamp.

    >>> desc = FailureDescription(ErrorCode.NONCE_MISSING, "Nonce extension not found")
    >>> desc.code
    <ErrorCode.NONCE_MISSING: 'NONCE_MISSING'>
    >>> desc.cause is None
    True
    """

    code: ErrorCode
    message: str
    exception: Optional[BaseException] = field(default=None, repr=False)
    cause: Optional[FailureDescription] = field(default=None, repr=False)
    details: Mapping[str, Any] = field(default_factory=dict, compare=False)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __post_init__(self) -> None:
        object.__setattr__(self, "details", _freeze(self.details))

    @staticmethod
    def create(
        code: ErrorCode,
        message: str,
        exception: Optional[BaseException] = None,
        cause: Optional[FailureDescription] = None,
        details: Mapping[str, Any] | None = None,
    ) -> FailureDescription:
        """Factory method with keyword-friendly defaults."""
        return FailureDescription(
            code=code,
            message=message,
            exception=exception,
            cause=cause,
            details=_freeze(details),
        )

    def root_cause(self) -> FailureDescription:
        """Follow the `cause` chain down to the innermost failure."""
        current = self
        while current.cause is not None:
            current = current.cause
        return current

    def full_stack_trace(self) -> str:
        """
        Full trace string: the message, the exception chain if any, then the
        wrapped causes, innermost last.
        """
        parts = [self.message]
        if self.exception is not None:
            parts.append(
                "".join(
                    traceback.format_exception(
                        type(self.exception), self.exception, self.exception.__traceback__
                    )
                )
            )
        if self.cause is not None:
            parts.append(f"Caused by {self.cause.code.value}: {self.cause.full_stack_trace()}")
        return "\n".join(parts)

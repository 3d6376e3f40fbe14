"""
Domain models — immutable data structures for OCSP responses and their outcome.

These are pure value objects with no behavior beyond simple accessors.
They represent an RFC 6960 OCSP response after DER decoding (OcspResponse,
BasicResponse, SingleStatusEntry) and the validated outcome handed back to the
caller (StatusInfo, ValidationResult).

All models are frozen dataclasses (immutable) following functional principles.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, IntEnum, unique
from types import MappingProxyType

# id-pkix-ocsp arc (RFC 6960 §4.4)
OCSP_BASIC_RESPONSE_OID = "1.3.6.1.5.5.7.48.1.1"
OCSP_NONCE_OID = "1.3.6.1.5.5.7.48.1.2"


@unique
class ResponseStatus(IntEnum):
    """Top-level OCSPResponseStatus values (RFC 6960 §4.2.1)."""

    SUCCESSFUL = 0
    MALFORMED_REQUEST = 1
    INTERNAL_ERROR = 2
    TRY_LATER = 3
    SIG_REQUIRED = 5
    UNAUTHORIZED = 6


@unique
class CertStatus(Enum):
    """Classification of one certificate in a validated response."""

    GOOD = "GOOD"
    REVOKED = "REVOKED"
    UNKNOWN = "UNKNOWN"


@unique
class RevocationReason(IntEnum):
    """CRLReason codes (RFC 5280 §5.3.1). Value 7 is unused."""

    UNSPECIFIED = 0
    KEY_COMPROMISE = 1
    CA_COMPROMISE = 2
    AFFILIATION_CHANGED = 3
    SUPERSEDED = 4
    CESSATION_OF_OPERATION = 5
    CERTIFICATE_HOLD = 6
    REMOVE_FROM_CRL = 8
    PRIVILEGE_WITHDRAWN = 9
    AA_COMPROMISE = 10


@dataclass(frozen=True, slots=True)
class CertificateId:
    """
    OCSP CertID — identifies the certificate a SingleStatusEntry is about.

    Only `serial_number` is used as a key; the hashes are carried for callers
    that want to match entries to a specific issuer.
    """

    serial_number: int
    issuer_name_hash: bytes = field(default=b"", repr=False)
    issuer_key_hash: bytes = field(default=b"", repr=False)
    hash_algorithm_oid: str | None = None


@dataclass(frozen=True, slots=True)
class RevokedStatus:
    """Per-entry `revoked` status object. `reason` is None when the responder omitted it."""

    revocation_time: datetime
    reason: int | None = None


@dataclass(frozen=True, slots=True)
class UnknownStatus:
    """Per-entry `unknown` status object."""


@dataclass(frozen=True, slots=True)
class SingleStatusEntry:
    """
    One SingleResponse from the basic response.

    `status` is None for a certificate the responder reports as good, in the
    same way a decoded `good` CHOICE carries no status object.
    `next_update` absent means the responder always has newer information.
    """

    cert_id: CertificateId
    status: RevokedStatus | UnknownStatus | None = None
    this_update: datetime | None = None
    next_update: datetime | None = None

    @property
    def serial_number(self) -> int:
        return self.cert_id.serial_number


@dataclass(frozen=True, slots=True)
class BasicResponse:
    """
    Decoded BasicOCSPResponse.

    `extensions` maps the dotted OID of each response extension to the DER of
    its `extnValue` OCTET STRING (the outer wrapper, not the payload).
    `certificates` holds the DER of each embedded certificate, in order; the
    first one is the responder (signer) certificate.
    `tbs_response_data` is the signed ResponseData exactly as transmitted.
    `signature_algorithm_parameters` is the DER of the signature
    AlgorithmIdentifier parameters (None when absent).
    """

    tbs_response_data: bytes = field(repr=False)
    signature_algorithm_oid: str
    signature: bytes = field(repr=False)
    produced_at: datetime | None = None
    extensions: Mapping[str, bytes] = field(default_factory=dict, repr=False)
    certificates: tuple[bytes, ...] = field(default=(), repr=False)
    entries: tuple[SingleStatusEntry, ...] = ()
    signature_algorithm_parameters: bytes | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "extensions", MappingProxyType(dict(self.extensions)))
        object.__setattr__(self, "certificates", tuple(self.certificates))
        object.__setattr__(self, "entries", tuple(self.entries))

    def extension_value(self, oid: str) -> bytes | None:
        """Return the raw extension value for `oid`, or None if the extension is absent."""
        return self.extensions.get(oid)


@dataclass(frozen=True, slots=True)
class OcspResponse:
    """
    Decoded outer OCSPResponse.

    `response_bytes` is the still-encoded `responseBytes.response` octets
    (None when the responder sent no body, as it does for every non-successful
    status). The BasicResponse is decoded from it during validation.
    """

    status: int
    response_type: str | None = None
    response_bytes: bytes | None = field(default=None, repr=False)
    raw: bytes = field(default=b"", repr=False)

    @property
    def is_successful(self) -> bool:
        return self.status == ResponseStatus.SUCCESSFUL

    @property
    def status_name(self) -> str:
        try:
            return ResponseStatus(self.status).name.lower()
        except ValueError:
            return f"unrecognized({self.status})"


@dataclass(frozen=True, slots=True)
class StatusInfo:
    """
    Status of one certificate in a validated response.

    `revocation_time` and `reason` are set only for REVOKED; a revoked status
    always has an integer reason (0 = unspecified when the responder gave none).
    """

    status: CertStatus
    revocation_time: datetime | None = None
    reason: int | None = None

    @staticmethod
    def good() -> StatusInfo:
        return StatusInfo(CertStatus.GOOD)

    @staticmethod
    def unknown() -> StatusInfo:
        return StatusInfo(CertStatus.UNKNOWN)

    @staticmethod
    def revoked(
        revocation_time: datetime, reason: int = RevocationReason.UNSPECIFIED
    ) -> StatusInfo:
        return StatusInfo(CertStatus.REVOKED, revocation_time=revocation_time, reason=int(reason))

    @property
    def is_revoked(self) -> bool:
        return self.status is CertStatus.REVOKED


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """
    Outcome of a fully validated OCSP response.

    Built only by the validation pipeline, after the nonce, the responder's
    trust path and the response signature have all been checked.
    `statuses` maps certificate serial number → StatusInfo and is read-only.
    """

    response: OcspResponse = field(repr=False)
    statuses: Mapping[int, StatusInfo] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "statuses", MappingProxyType(dict(self.statuses)))

    def status_of(self, serial_number: int) -> StatusInfo | None:
        return self.statuses.get(serial_number)

    def revoked_serials(self) -> frozenset[int]:
        return frozenset(serial for serial, info in self.statuses.items() if info.is_revoked)

"""
Certificate path validator adapter — responder certificate → trust anchor.

Adapter layer — implements the CertificatePathValidator port using:
  - cryptography (PyCA): issuer signature checks (verify_directly_issued_by),
    BasicConstraints / ExtendedKeyUsage extensions, validity windows

Path building walks issuer links from the certificate through the repository's
intermediates until it reaches a trust anchor:

  leaf
    → validity window (+ id-kp-OCSPSigning if required)
    → issuer: subject match + signature, CA=True, pathLenConstraint, validity
      → ... at most max_path_length intermediates
        → trust anchor

A certificate that is itself a trust anchor is accepted as-is. All failures
use PATH_VALIDATION_ERROR.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import UTC, datetime

import structlog
from cryptography import x509
from cryptography.exceptions import InvalidSignature
from cryptography.x509.oid import ExtendedKeyUsageOID
from railway import ErrorCode
from railway.result import Result
from railway.result_failures import ResultFailures

from ocsp_checker.domain.ports import TrustedCertificateRepository

log = structlog.get_logger()

DEFAULT_MAX_PATH_LENGTH = 10


def _subject(certificate: x509.Certificate) -> str:
    return certificate.subject.rfc4514_string()


def _is_directly_issued_by(certificate: x509.Certificate, issuer: x509.Certificate) -> bool:
    try:
        certificate.verify_directly_issued_by(issuer)
    except (ValueError, TypeError, InvalidSignature):
        return False
    return True


def find_issuer(
    certificate: x509.Certificate, candidates: Sequence[x509.Certificate]
) -> x509.Certificate | None:
    """First candidate whose subject and signature make it the issuer of `certificate`."""
    for candidate in candidates:
        if candidate.subject == certificate.issuer and _is_directly_issued_by(
            certificate, candidate
        ):
            return candidate
    return None


def check_validity(certificate: x509.Certificate, at: datetime) -> Result[x509.Certificate]:
    if at < certificate.not_valid_before_utc:
        return ResultFailures.path_validation_error(
            f"Certificate '{_subject(certificate)}' is not yet valid "
            f"(valid from {certificate.not_valid_before_utc.isoformat()})"
        )
    if at > certificate.not_valid_after_utc:
        return ResultFailures.path_validation_error(
            f"Certificate '{_subject(certificate)}' has expired "
            f"(expired on {certificate.not_valid_after_utc.isoformat()})"
        )
    return Result.success(certificate)


def read_extensions(certificate: x509.Certificate) -> Result[x509.Extensions]:
    """Extensions are parsed on first access; duplicates or bad encodings fail here."""
    return Result.from_computation(
        lambda: certificate.extensions,
        ErrorCode.PATH_VALIDATION_ERROR,
        f"Certificate '{_subject(certificate)}' has unreadable extensions",
    )


def check_ca(certificate: x509.Certificate, certificates_below: int) -> Result[x509.Certificate]:
    """
    The issuer must be a CA, and its pathLenConstraint must allow the
    intermediates already below it.
    """
    return read_extensions(certificate).flat_map(
        lambda extensions: _check_basic_constraints(certificate, extensions, certificates_below)
    )


def _check_basic_constraints(
    certificate: x509.Certificate, extensions: x509.Extensions, certificates_below: int
) -> Result[x509.Certificate]:
    try:
        constraints = extensions.get_extension_for_class(x509.BasicConstraints).value
    except x509.ExtensionNotFound:
        return ResultFailures.path_validation_error(
            f"Issuer '{_subject(certificate)}' has no BasicConstraints extension"
        )
    if not constraints.ca:
        return ResultFailures.path_validation_error(
            f"Issuer '{_subject(certificate)}' is not a CA"
        )
    if constraints.path_length is not None and certificates_below > constraints.path_length:
        return ResultFailures.path_validation_error(
            f"Issuer '{_subject(certificate)}' allows {constraints.path_length} intermediate(s) "
            f"below it, path has {certificates_below}"
        )
    return Result.success(certificate)


def check_ocsp_signing(certificate: x509.Certificate) -> Result[x509.Certificate]:
    return read_extensions(certificate).flat_map(
        lambda extensions: _check_extended_key_usage(certificate, extensions)
    )


def _check_extended_key_usage(
    certificate: x509.Certificate, extensions: x509.Extensions
) -> Result[x509.Certificate]:
    try:
        usages = extensions.get_extension_for_class(x509.ExtendedKeyUsage).value
    except x509.ExtensionNotFound:
        usages = ()
    if ExtendedKeyUsageOID.OCSP_SIGNING not in usages:
        return ResultFailures.path_validation_error(
            f"Certificate '{_subject(certificate)}' lacks the OCSPSigning extended key usage"
        )
    return Result.success(certificate)


class ChainPathValidator:
    """
    Validate a certificate against the anchors of a TrustedCertificateRepository.

    `clock` returns the validation time (aware UTC); defaults to now.
    """

    def __init__(
        self,
        repository: TrustedCertificateRepository,
        max_path_length: int = DEFAULT_MAX_PATH_LENGTH,
        require_ocsp_signing: bool = False,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._repository = repository
        self._max_path_length = max_path_length
        self._require_ocsp_signing = require_ocsp_signing
        self._clock = clock or (lambda: datetime.now(UTC))

    def validate(self, certificate: x509.Certificate) -> Result[x509.Certificate]:
        at = self._clock()
        return (
            self._check_leaf(certificate, at)
            .flat_map(lambda leaf: self._build_path(leaf, at))
            .peek(
                lambda path: log.debug(
                    "path_validator.validated",
                    subject=_subject(certificate),
                    anchor=_subject(path[-1]),
                    length=len(path),
                )
            )
            .map(lambda _: certificate)
        )

    def _check_leaf(self, certificate: x509.Certificate, at: datetime) -> Result[x509.Certificate]:
        result = check_validity(certificate, at)
        if self._require_ocsp_signing:
            result = result.flat_map(check_ocsp_signing)
        return result

    def _build_path(
        self, leaf: x509.Certificate, at: datetime
    ) -> Result[list[x509.Certificate]]:
        trusted = self._repository.trusted_certificates()
        if leaf in trusted:
            return Result.success([leaf])
        intermediates = self._repository.intermediate_certificates()

        path = [leaf]
        for _ in range(self._max_path_length + 1):
            current = path[-1]
            certificates_below = len(path) - 1

            anchor = find_issuer(current, trusted)
            if anchor is not None:
                return (
                    check_ca(anchor, certificates_below)
                    .flat_map(lambda ca: check_validity(ca, at))
                    .map(lambda ca: [*path, ca])
                )

            issuer = find_issuer(current, [c for c in intermediates if c not in path])
            if issuer is None:
                return ResultFailures.path_validation_error(
                    f"No trusted issuer found for '{_subject(current)}' "
                    f"(issuer '{current.issuer.rfc4514_string()}')"
                )
            checked = check_ca(issuer, certificates_below).flat_map(
                lambda ca: check_validity(ca, at)
            )
            if checked.is_failure():
                return checked
            path.append(issuer)

        return ResultFailures.path_validation_error(
            f"Path from '{_subject(leaf)}' exceeds {self._max_path_length} intermediate(s)"
        )

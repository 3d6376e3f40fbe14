"""
Response validator — the ROP pipeline that accepts or rejects an OCSP response.

Domain layer — the only I/O (trust-path lookups, signature computation) happens
behind the injected ports.

The pipeline connects stages via flat_map, forming a railway:

  check_status(response)                  → RESPONDER_ERROR
    → extract_basic(response)             → MALFORMED_RESPONSE
      → check_nonce(basic, nonce)         → NONCE_MISSING / NONCE_MISMATCH / MALFORMED_RESPONSE
        → extract_signer(basic)           → SIGNER_CERTIFICATE_UNAVAILABLE
          → path_validator.validate()     → UNTRUSTED_SIGNER
            → signature_verifier.verify() → SIGNATURE_INVALID / VERIFICATION_ERROR
              → collect_statuses(basic)
                → ValidationResult

Each stage returns Result[T]. The first failure short-circuits every later
stage, so a ValidationResult exists only for a response that passed all checks.
A validator instance holds no per-call state and can be shared between threads.
"""

from __future__ import annotations

import structlog
from cryptography import x509
from railway import ErrorCode
from railway.result import Result
from railway.result_failures import ResultFailures

from ocsp_checker.adapters.ocsp_parser import OcspResponseParser
from ocsp_checker.domain.models import (
    OCSP_NONCE_OID,
    BasicResponse,
    OcspResponse,
    StatusInfo,
    ValidationResult,
)
from ocsp_checker.domain.ports import CertificatePathValidator, SignatureVerifier
from ocsp_checker.nonce import decode_nonce, nonces_match
from ocsp_checker.status import classify

log = structlog.get_logger()


def check_status(response: OcspResponse) -> Result[OcspResponse]:
    """Step 1: only a 'successful' response has a body worth looking at."""
    if not response.is_successful:
        return ResultFailures.responder_error(response.status)
    return Result.success(response)


def check_nonce(basic: BasicResponse, expected_nonce: bytes) -> Result[BasicResponse]:
    """
    Step 3: the response must echo the request nonce.

    A missing nonce is a failure, never a pass: a responder that drops it may be
    serving a stale, replayable response.
    """
    extension_value = basic.extension_value(OCSP_NONCE_OID)
    if extension_value is None:
        return ResultFailures.nonce_missing()
    return decode_nonce(extension_value).flat_map(
        lambda received: Result.success(basic)
        if nonces_match(expected_nonce, received)
        else ResultFailures.nonce_mismatch(expected_nonce, received)
    )


def extract_signer(basic: BasicResponse) -> Result[x509.Certificate]:
    """
    Step 4: the first embedded certificate is the responder certificate.

    A certificate whose public key cannot be loaded is as unusable as one
    that does not decode.
    """
    if not basic.certificates:
        return ResultFailures.signer_certificate_unavailable(
            "No responder certificate embedded in response"
        )
    return Result.from_computation(
        lambda: x509.load_der_x509_certificate(basic.certificates[0]),
        ErrorCode.SIGNER_CERTIFICATE_UNAVAILABLE,
        "Responder certificate does not decode",
    ).flat_map(
        lambda certificate: Result.from_computation(
            certificate.public_key,
            ErrorCode.SIGNER_CERTIFICATE_UNAVAILABLE,
            "Responder public key is not usable",
        ).map(lambda _: certificate)
    )


class ResponseValidator:
    """
    Validate OCSP responses against a caller-supplied nonce.

    Collaborators:
      - path_validator:     trust path of the responder certificate
      - signature_verifier: signature of the basic response
      - parser:             DER decoding of the response body
    """

    def __init__(
        self,
        path_validator: CertificatePathValidator,
        signature_verifier: SignatureVerifier,
        parser: OcspResponseParser | None = None,
        reject_duplicate_serials: bool = False,
    ) -> None:
        self._path_validator = path_validator
        self._signature_verifier = signature_verifier
        self._parser = parser or OcspResponseParser()
        self._reject_duplicate_serials = reject_duplicate_serials

    def validate(self, response: OcspResponse, expected_nonce: bytes) -> Result[ValidationResult]:
        """
        Run the full validation pipeline on a decoded response.

        Returns Result[ValidationResult] with the serial → status mapping on
        success, or the failure of the first check that rejected the response.
        """
        return (
            check_status(response)
            .flat_map(self._parser.extract_basic)
            .flat_map(lambda basic: check_nonce(basic, expected_nonce))
            .flat_map(
                lambda basic: extract_signer(basic)
                .flat_map(self._validate_trust_path)
                .flat_map(lambda signer: self._verify_signature(basic, signer))
            )
            .flat_map(self._collect_statuses)
            .map(lambda statuses: ValidationResult(response=response, statuses=statuses))
        )

    def validate_der(self, raw: bytes, expected_nonce: bytes) -> Result[ValidationResult]:
        """Decode a DER-encoded OCSPResponse, then validate it."""
        return self._parser.parse(raw).flat_map(
            lambda response: self.validate(response, expected_nonce)
        )

    def _validate_trust_path(self, signer: x509.Certificate) -> Result[x509.Certificate]:
        """
        Step 5: any path failure becomes UNTRUSTED_SIGNER with the original as cause.

        An exception raised by the path validator counts as a path failure.
        """
        return (
            Result.from_computation(
                lambda: self._path_validator.validate(signer),
                ErrorCode.PATH_VALIDATION_ERROR,
                "Path validation raised",
            )
            .flat_map(lambda outcome: outcome)
            .either(
                lambda _: Result.success(signer),
                ResultFailures.untrusted_signer,
            )
        )

    def _verify_signature(
        self, basic: BasicResponse, signer: x509.Certificate
    ) -> Result[BasicResponse]:
        """
        Step 6: `False` is SIGNATURE_INVALID, a verifier failure is VERIFICATION_ERROR.

        extract_signer has already loaded the public key once.
        """
        return self._signature_verifier.verify(basic, signer.public_key()).either(
            lambda valid: Result.success(basic) if valid else ResultFailures.signature_invalid(),
            ResultFailures.verification_error,
        )

    def _collect_statuses(self, basic: BasicResponse) -> Result[dict[int, StatusInfo]]:
        """Step 7: one StatusInfo per entry, keyed by serial number."""
        statuses: dict[int, StatusInfo] = {}
        for entry in basic.entries:
            serial = entry.serial_number
            if serial in statuses:
                if self._reject_duplicate_serials:
                    return ResultFailures.malformed_response(
                        f"Duplicate status entry for serial {serial:#x}"
                    )
                log.warning("validator.duplicate_serial", serial=hex(serial))
            statuses[serial] = classify(entry)

        log.debug("validator.statuses_collected", entries=len(statuses))
        return Result.success(statuses)

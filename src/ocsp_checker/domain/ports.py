"""
Ports — Protocol-based interfaces for the collaborators the validator delegates to.

These define WHAT the validation pipeline needs (contracts) without specifying
HOW it's done (implementation). Following hexagonal architecture:

  Domain ← Ports (protocols) ← Adapters (implementations)

Each port is a Protocol (structural typing) with a single method, so tests can
substitute doubles that deterministically accept or reject:

  1. CertificatePathValidator    → does the responder certificate chain to a trusted root?
  2. SignatureVerifier           → does the response signature verify with that key?
  3. TrustedCertificateRepository → where trusted and intermediate certificates come from
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from cryptography import x509
from cryptography.hazmat.primitives.asymmetric.types import CertificatePublicKeyTypes
from railway.result import Result

from ocsp_checker.domain.models import BasicResponse


@runtime_checkable
class CertificatePathValidator(Protocol):
    """
    Port: validate the trust path of a certificate.

    Returns Result[x509.Certificate] with the validated certificate on success.
    Any failure is wrapped unchanged by the validator as UNTRUSTED_SIGNER; the
    validator never interprets why the path failed.
    """

    def validate(self, certificate: x509.Certificate) -> Result[x509.Certificate]: ...


@runtime_checkable
class SignatureVerifier(Protocol):
    """
    Port: verify the signature of a BasicResponse with a public key.

    Returns:
      - Success(True)  → signature is valid
      - Success(False) → signature checked and does not match
      - Failure        → the crypto provider raised (unsupported algorithm, key mismatch, ...)
    """

    def verify(
        self,
        basic_response: BasicResponse,
        public_key: CertificatePublicKeyTypes,
    ) -> Result[bool]: ...


@runtime_checkable
class TrustedCertificateRepository(Protocol):
    """
    Port: supply the certificates a trust path may use.

    trusted_certificates()      → trust anchors (roots)
    intermediate_certificates() → untrusted issuers usable to build a path
    """

    def trusted_certificates(self) -> list[x509.Certificate]: ...

    def intermediate_certificates(self) -> list[x509.Certificate]: ...

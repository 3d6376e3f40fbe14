"""
Trust store adapter — supplies trust anchors and intermediate certificates.

Adapter layer — implements the TrustedCertificateRepository port using:
  - cryptography (PyCA): PEM bundle and DER certificate loading

Two implementations:
  - InMemoryCertificateRepository: certificates handed over by the caller
  - DirectoryCertificateRepository: certificates read once from directories
    (*.pem, *.crt, *.cer, *.der; a PEM file may hold several certificates)
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

import structlog
from cryptography import x509
from railway import ErrorCode
from railway.result import Result
from railway.result_failures import ResultFailures

log = structlog.get_logger()

CERTIFICATE_SUFFIXES = frozenset({".pem", ".crt", ".cer", ".der"})
PEM_CERTIFICATE_MARKER = b"-----BEGIN CERTIFICATE-----"


def load_certificate_file(path: Path) -> list[x509.Certificate]:
    """Load every certificate in one file, PEM (bundle) or DER. May raise."""
    data = path.read_bytes()
    if PEM_CERTIFICATE_MARKER in data:
        return x509.load_pem_x509_certificates(data)
    return [x509.load_der_x509_certificate(data)]


def load_certificate_directory(directory: Path) -> list[x509.Certificate]:
    """Load all certificate files of a directory in file-name order. May raise."""
    if not directory.is_dir():
        raise NotADirectoryError(f"Not a directory: {directory}")
    certificates: list[x509.Certificate] = []
    for path in sorted(directory.iterdir()):
        if path.is_file() and path.suffix.lower() in CERTIFICATE_SUFFIXES:
            certificates.extend(load_certificate_file(path))
    return certificates


class InMemoryCertificateRepository:
    """Trust anchors and intermediates held in memory."""

    def __init__(
        self,
        trusted: Iterable[x509.Certificate],
        intermediates: Iterable[x509.Certificate] = (),
    ) -> None:
        self._trusted = tuple(trusted)
        self._intermediates = tuple(intermediates)

    def trusted_certificates(self) -> list[x509.Certificate]:
        return list(self._trusted)

    def intermediate_certificates(self) -> list[x509.Certificate]:
        return list(self._intermediates)


class DirectoryCertificateRepository(InMemoryCertificateRepository):
    """
    Certificates loaded from a trusted directory and an optional intermediate
    directory. Files are read once, by load(); later changes on disk are not seen.
    """

    def __init__(
        self,
        trusted: Iterable[x509.Certificate],
        intermediates: Iterable[x509.Certificate],
        trusted_dir: Path,
        intermediate_dir: Path | None = None,
    ) -> None:
        super().__init__(trusted, intermediates)
        self.trusted_dir = trusted_dir
        self.intermediate_dir = intermediate_dir

    @classmethod
    def load(
        cls,
        trusted_dir: Path,
        intermediate_dir: Path | None = None,
    ) -> Result[DirectoryCertificateRepository]:
        """
        Read both directories.

        Returns CONFIGURATION_ERROR if a directory or file cannot be read, or if
        no trust anchor was found.
        """
        return (
            Result.from_computation(
                lambda: cls(
                    trusted=load_certificate_directory(trusted_dir),
                    intermediates=(
                        load_certificate_directory(intermediate_dir)
                        if intermediate_dir is not None
                        else []
                    ),
                    trusted_dir=trusted_dir,
                    intermediate_dir=intermediate_dir,
                ),
                ErrorCode.CONFIGURATION_ERROR,
                "Failed to load trust store",
            )
            .flat_map(cls._require_anchor)
            .peek(
                lambda repository: log.info(
                    "trust_store.loaded",
                    trusted_dir=str(trusted_dir),
                    trusted=len(repository.trusted_certificates()),
                    intermediates=len(repository.intermediate_certificates()),
                )
            )
        )

    @staticmethod
    def _require_anchor(
        repository: DirectoryCertificateRepository,
    ) -> Result[DirectoryCertificateRepository]:
        if not repository.trusted_certificates():
            return ResultFailures.configuration_error(
                f"No trusted certificates found in {repository.trusted_dir}"
            )
        return Result.success(repository)

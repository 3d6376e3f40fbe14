"""
Application entry point — wires dependencies and validates one OCSP response.

Composition root: creates concrete adapters and injects them into the
ResponseValidator. This is the ONLY place where concrete adapter classes are
instantiated; everything else depends on Protocol interfaces.

Responsibilities:
  1. Load and validate configuration from environment
  2. Configure structlog
  3. Register the signature provider (idempotent)
  4. Create the trust store, path validator and signature verifier
  5. Validate the response file and report one line per certificate

    ocsp-checker response.der --nonce 0a1b2c3d
    ocsp-checker response.pem --nonce 0a1b2c3d --pem

Exit codes: 0 validated, 1 response rejected, 2 configuration error.
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence
from pathlib import Path

import structlog
from railway import ErrorCode, FailureDescription
from railway.execution import LoggingExecutionContext
from railway.result import Result

from ocsp_checker import __version__
from ocsp_checker.adapters.ocsp_parser import OcspResponseParser
from ocsp_checker.adapters.path_validator import ChainPathValidator
from ocsp_checker.adapters.signature import ProviderSignatureVerifier, register_provider
from ocsp_checker.adapters.trust_store import DirectoryCertificateRepository
from ocsp_checker.config import AppSettings
from ocsp_checker.domain.models import OcspResponse, ValidationResult
from ocsp_checker.validator import ResponseValidator

EXIT_OK = 0
EXIT_REJECTED = 1
EXIT_CONFIGURATION_ERROR = 2


def configure_structlog(log_level: str = "INFO") -> None:
    """Configure structlog for colored, human-readable console output."""
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, log_level.upper(), logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def create_validator(settings: AppSettings) -> Result[ResponseValidator]:
    """
    Build a ResponseValidator from application settings.

    Registers the default signature provider first; returns CONFIGURATION_ERROR
    if the trust store cannot be loaded.
    """
    register_provider()
    parser = OcspResponseParser()
    return (
        DirectoryCertificateRepository.load(
            settings.trust_store.trusted_dir,
            settings.trust_store.intermediate_dir,
        )
        .map(
            lambda repository: ChainPathValidator(
                repository,
                max_path_length=settings.path_validation.max_path_length,
                require_ocsp_signing=settings.path_validation.require_ocsp_signing,
            )
        )
        .flat_map(
            lambda path_validator: ProviderSignatureVerifier.from_registry().map(
                lambda signature_verifier: ResponseValidator(
                    path_validator,
                    signature_verifier,
                    parser=parser,
                    reject_duplicate_serials=settings.reject_duplicate_serials,
                )
            )
        )
    )


def read_response(path: Path, pem: bool = False) -> Result[OcspResponse]:
    """Read and decode a DER (or PEM with `pem=True`) response file."""
    parser = OcspResponseParser()
    if pem:
        return Result.from_computation(
            lambda: path.read_text(encoding="ascii"),
            ErrorCode.CONFIGURATION_ERROR,
            f"Cannot read response file {path}",
        ).flat_map(parser.parse_pem)
    return Result.from_computation(
        path.read_bytes,
        ErrorCode.CONFIGURATION_ERROR,
        f"Cannot read response file {path}",
    ).flat_map(parser.parse)


def _nonce(value: str) -> bytes:
    try:
        return bytes.fromhex(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"nonce must be hexadecimal: {e}") from e


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="ocsp-checker",
        description="Validate an OCSP response against the nonce sent in the request.",
    )
    parser.add_argument("response_file", type=Path, help="DER-encoded OCSP response")
    parser.add_argument("--nonce", type=_nonce, required=True, help="request nonce (hex)")
    parser.add_argument("--pem", action="store_true", help="response file is PEM-armored")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser.parse_args(argv)


def _report_success(validation: ValidationResult) -> int:
    log = structlog.get_logger()
    for serial, info in sorted(validation.statuses.items()):
        log.info(
            "app.certificate_status",
            serial=hex(serial),
            status=info.status.value,
            revocation_time=info.revocation_time.isoformat() if info.revocation_time else None,
            reason=info.reason,
        )
    return EXIT_OK


def _report_failure(error: FailureDescription) -> int:
    structlog.get_logger().error(
        "app.validation_failed",
        code=error.code.name,
        reason=error.message,
        root_cause=error.root_cause().code.name,
    )
    if error.code is ErrorCode.CONFIGURATION_ERROR:
        return EXIT_CONFIGURATION_ERROR
    return EXIT_REJECTED


def main(argv: Sequence[str] | None = None) -> int:
    """Parse arguments, wire dependencies, validate, and return the exit code."""
    args = _parse_args(argv)

    try:
        settings = AppSettings()
    except Exception as e:
        print(f"FATAL: Configuration error — {e}", file=sys.stderr)  # noqa: T201
        return EXIT_CONFIGURATION_ERROR

    configure_structlog(settings.log_level)
    log = structlog.get_logger()
    log.info(
        "app.starting",
        version=__version__,
        response_file=str(args.response_file),
        trusted_dir=str(settings.trust_store.trusted_dir),
    )

    validator_result = create_validator(settings)
    if validator_result.is_failure():
        return _report_failure(validator_result.error())
    validator = validator_result.value()

    context = LoggingExecutionContext(operation="OcspResponseValidation")
    result = context.execute(
        lambda: read_response(args.response_file, args.pem).flat_map(
            lambda response: validator.validate(response, args.nonce)
        )
    )
    return result.either(_report_success, _report_failure)


if __name__ == "__main__":
    sys.exit(main())

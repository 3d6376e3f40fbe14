"""
Unit tests for the composition root — validator wiring and the CLI.

configure_structlog is replaced by a mock in CLI tests and log events are
read with structlog.testing.capture_logs, so no test leaves a cached logger
bound to a captured stream.
"""

from __future__ import annotations

import logging
from pathlib import Path
from unittest.mock import MagicMock

import pytest
import structlog
from cryptography.x509 import ocsp
from railway import ErrorCode, ResultAssertions
from structlog.testing import capture_logs

from ocsp_checker import main as main_module
from ocsp_checker.adapters.signature import is_registered
from ocsp_checker.config import AppSettings, TrustStoreSettings
from ocsp_checker.main import (
    EXIT_CONFIGURATION_ERROR,
    EXIT_OK,
    EXIT_REJECTED,
    configure_structlog,
    create_validator,
    main,
    read_response,
)
from ocsp_checker.validator import ResponseValidator
from tests.pki import REQUEST_NONCE, Identity, build_response, build_unsuccessful, to_pem


@pytest.fixture()
def configure_mock(monkeypatch: pytest.MonkeyPatch) -> MagicMock:
    mock = MagicMock()
    monkeypatch.setattr(main_module, "configure_structlog", mock)
    return mock


@pytest.fixture()
def env(monkeypatch: pytest.MonkeyPatch, trust_dir: Path) -> Path:
    """Point the settings at the generated trust directory."""
    monkeypatch.setenv("OCSP_CHECKER_TRUST_STORE__TRUSTED_DIR", str(trust_dir))
    monkeypatch.delenv("OCSP_CHECKER_TRUST_STORE__INTERMEDIATE_DIR", raising=False)
    return trust_dir


@pytest.fixture()
def good_response_file(
    tmp_path: Path, root_ca: Identity, responder: Identity, subject_cert: Identity
) -> Path:
    path = tmp_path / "response.der"
    path.write_bytes(
        build_response(
            issuer=root_ca,
            responder=responder,
            subject=subject_cert.certificate,
            nonce=REQUEST_NONCE,
        )
    )
    return path


class TestConfigureStructlog:
    def test_sets_filtering_level(self) -> None:
        try:
            configure_structlog("warning")
            wrapper = structlog.get_config()["wrapper_class"]
            assert wrapper is structlog.make_filtering_bound_logger(logging.WARNING)
        finally:
            structlog.reset_defaults()


class TestCreateValidator:
    def test_builds_validator_and_registers_provider(self, trust_dir: Path) -> None:
        settings = AppSettings(
            _env_file=None, trust_store=TrustStoreSettings(trusted_dir=trust_dir)
        )

        result = create_validator(settings)

        assert isinstance(ResultAssertions.assert_success(result), ResponseValidator)
        assert is_registered()

    def test_empty_trust_store_is_configuration_error(self, tmp_path: Path) -> None:
        settings = AppSettings(
            _env_file=None, trust_store=TrustStoreSettings(trusted_dir=tmp_path)
        )

        result = create_validator(settings)

        ResultAssertions.assert_failure(result, ErrorCode.CONFIGURATION_ERROR)


class TestReadResponse:
    def test_missing_file_is_configuration_error(self, tmp_path: Path) -> None:
        result = read_response(tmp_path / "absent.der")

        ResultAssertions.assert_failure(result, ErrorCode.CONFIGURATION_ERROR)

    def test_pem_file(self, tmp_path: Path, good_response_file: Path) -> None:
        pem_path = tmp_path / "response.pem"
        pem_path.write_text(to_pem(good_response_file.read_bytes()))

        response = ResultAssertions.assert_success(read_response(pem_path, pem=True))

        assert response.is_successful


@pytest.mark.usefixtures("configure_mock")
class TestMain:
    """
    GIVEN a configured trust store and a response file
    WHEN the CLI runs
    THEN its exit code says whether the response was accepted.
    """

    def test_accepted_response_exits_zero(
        self, env: Path, good_response_file: Path, subject_cert: Identity
    ) -> None:
        with capture_logs() as logs:
            code = main([str(good_response_file), "--nonce", REQUEST_NONCE.hex()])

        assert code == EXIT_OK
        statuses = [entry for entry in logs if entry["event"] == "app.certificate_status"]
        assert len(statuses) == 1
        assert statuses[0]["serial"] == hex(subject_cert.certificate.serial_number)
        assert statuses[0]["status"] == "GOOD"

    def test_configures_logging_from_settings(
        self, env: Path, good_response_file: Path, configure_mock: MagicMock
    ) -> None:
        main([str(good_response_file), "--nonce", REQUEST_NONCE.hex()])

        configure_mock.assert_called_once_with("INFO")

    def test_pem_response(self, env: Path, tmp_path: Path, good_response_file: Path) -> None:
        pem_path = tmp_path / "response.pem"
        pem_path.write_text(to_pem(good_response_file.read_bytes()))

        assert main([str(pem_path), "--nonce", REQUEST_NONCE.hex(), "--pem"]) == EXIT_OK

    def test_wrong_nonce_exits_one(self, env: Path, good_response_file: Path) -> None:
        with capture_logs() as logs:
            code = main([str(good_response_file), "--nonce", "ffff"])

        assert code == EXIT_REJECTED
        failures = [entry for entry in logs if entry["event"] == "app.validation_failed"]
        assert failures[0]["code"] == "NONCE_MISMATCH"

    def test_responder_error_exits_one(self, env: Path, tmp_path: Path) -> None:
        path = tmp_path / "unauthorized.der"
        path.write_bytes(build_unsuccessful(ocsp.OCSPResponseStatus.UNAUTHORIZED))

        assert main([str(path), "--nonce", "00"]) == EXIT_REJECTED

    def test_missing_response_file_exits_two(self, env: Path, tmp_path: Path) -> None:
        assert main([str(tmp_path / "absent.der"), "--nonce", "00"]) == EXIT_CONFIGURATION_ERROR

    def test_invalid_settings_exit_two(
        self,
        monkeypatch: pytest.MonkeyPatch,
        tmp_path: Path,
        good_response_file: Path,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        monkeypatch.setenv("OCSP_CHECKER_TRUST_STORE__TRUSTED_DIR", str(tmp_path / "absent"))

        code = main([str(good_response_file), "--nonce", "00"])

        assert code == EXIT_CONFIGURATION_ERROR
        assert "Configuration error" in capsys.readouterr().err

    def test_empty_trust_store_exits_two(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path, good_response_file: Path
    ) -> None:
        empty = tmp_path / "empty"
        empty.mkdir()
        monkeypatch.setenv("OCSP_CHECKER_TRUST_STORE__TRUSTED_DIR", str(empty))

        assert main([str(good_response_file), "--nonce", "00"]) == EXIT_CONFIGURATION_ERROR

    def test_non_hex_nonce_is_a_usage_error(self, env: Path, good_response_file: Path) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main([str(good_response_file), "--nonce", "not-hex"])

        assert exc_info.value.code == 2

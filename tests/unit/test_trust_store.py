"""
Unit tests for the trust store adapters — in-memory and directory-backed.
"""

from __future__ import annotations

from pathlib import Path

from railway import ErrorCode, ResultAssertions

from ocsp_checker.adapters.trust_store import (
    DirectoryCertificateRepository,
    InMemoryCertificateRepository,
    load_certificate_file,
)
from tests.pki import Identity, make_identity


class TestInMemoryCertificateRepository:
    def test_returns_what_it_was_given(self, root_ca: Identity, responder: Identity) -> None:
        repository = InMemoryCertificateRepository([root_ca.certificate], [responder.certificate])

        assert repository.trusted_certificates() == [root_ca.certificate]
        assert repository.intermediate_certificates() == [responder.certificate]

    def test_returned_lists_are_copies(self, root_ca: Identity) -> None:
        repository = InMemoryCertificateRepository([root_ca.certificate])

        repository.trusted_certificates().clear()

        assert repository.trusted_certificates() == [root_ca.certificate]
        assert repository.intermediate_certificates() == []


class TestLoadCertificateFile:
    def test_pem_bundle(self, tmp_path: Path, root_ca: Identity, responder: Identity) -> None:
        bundle = tmp_path / "bundle.pem"
        bundle.write_bytes(root_ca.pem + responder.pem)

        assert load_certificate_file(bundle) == [root_ca.certificate, responder.certificate]

    def test_der_file(self, tmp_path: Path, root_ca: Identity) -> None:
        path = tmp_path / "root.der"
        path.write_bytes(root_ca.der)

        assert load_certificate_file(path) == [root_ca.certificate]


class TestDirectoryCertificateRepository:
    """
    GIVEN directories of PEM and DER files
    WHEN DirectoryCertificateRepository.load is called
    THEN every certificate file is read and other files are ignored.
    """

    def test_loads_trusted_and_intermediates(
        self, tmp_path: Path, trust_dir: Path, root_ca: Identity
    ) -> None:
        intermediate = make_identity("Issuing CA", issuer=root_ca, ca=True)
        intermediate_dir = tmp_path / "intermediates"
        intermediate_dir.mkdir()
        (intermediate_dir / "issuing.cer").write_bytes(intermediate.der)

        result = DirectoryCertificateRepository.load(trust_dir, intermediate_dir)

        repository = ResultAssertions.assert_success(result)
        assert repository.trusted_certificates() == [root_ca.certificate]
        assert repository.intermediate_certificates() == [intermediate.certificate]
        assert repository.trusted_dir == trust_dir

    def test_ignores_other_files(self, trust_dir: Path) -> None:
        (trust_dir / "README.txt").write_text("not a certificate")

        repository = ResultAssertions.assert_success(DirectoryCertificateRepository.load(trust_dir))

        assert len(repository.trusted_certificates()) == 1

    def test_empty_trusted_directory(self, tmp_path: Path) -> None:
        result = DirectoryCertificateRepository.load(tmp_path)

        ResultAssertions.assert_failure(result, ErrorCode.CONFIGURATION_ERROR)
        ResultAssertions.assert_failure_message_contains(result, "No trusted certificates")

    def test_missing_directory(self, tmp_path: Path) -> None:
        result = DirectoryCertificateRepository.load(tmp_path / "absent")

        ResultAssertions.assert_failure(result, ErrorCode.CONFIGURATION_ERROR)

    def test_corrupt_certificate_file(self, trust_dir: Path) -> None:
        (trust_dir / "broken.crt").write_bytes(b"\x30\x03\x02\x01\x00")

        result = DirectoryCertificateRepository.load(trust_dir)

        ResultAssertions.assert_failure(result, ErrorCode.CONFIGURATION_ERROR)
        ResultAssertions.assert_failure_message_contains(result, "Failed to load trust store")

"""
Shared test fixtures for the ocsp-checker test suite.

Provides a small generated PKI (root CA, delegated OCSP responder, subject
certificate) plus a trust directory. The PKI is session-scoped: key
generation is the slowest part of the suite.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from tests.pki import REQUEST_NONCE, Identity, make_identity


@pytest.fixture(scope="session")
def root_ca() -> Identity:
    return make_identity("Test Root CA", ca=True)


@pytest.fixture(scope="session")
def responder(root_ca: Identity) -> Identity:
    return make_identity("Test OCSP Responder", issuer=root_ca, ocsp_signing=True)


@pytest.fixture(scope="session")
def subject_cert(root_ca: Identity) -> Identity:
    return make_identity("subject.example.test", issuer=root_ca)


@pytest.fixture()
def request_nonce() -> bytes:
    return REQUEST_NONCE


@pytest.fixture()
def trust_dir(tmp_path: Path, root_ca: Identity) -> Path:
    """A directory holding the root CA as PEM."""
    directory = tmp_path / "trusted"
    directory.mkdir()
    (directory / "root.pem").write_bytes(root_ca.pem)
    return directory

"""
Unit tests for the signature adapter — provider registry, the cryptography
provider and the SignatureVerifier port implementation.
"""

from __future__ import annotations

import dataclasses
import threading
from unittest.mock import MagicMock

import pytest
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec, ed25519, padding, rsa
from pyasn1.codec.der import encoder as der_encoder
from pyasn1.error import PyAsn1Error
from pyasn1_modules import rfc4055
from railway import ErrorCode, ResultAssertions

from ocsp_checker.adapters import signature
from ocsp_checker.adapters.ocsp_parser import OcspResponseParser
from ocsp_checker.adapters.signature import (
    DEFAULT_PROVIDER_NAME,
    CryptographySignatureProvider,
    ProviderSignatureVerifier,
    get_provider,
    is_registered,
    register_provider,
)
from ocsp_checker.domain.models import BasicResponse
from tests.pki import REQUEST_NONCE, Identity, build_response

DATA = b"tbsResponseData stand-in"

ECDSA_SHA256 = "1.2.840.10045.4.3.2"
RSA_SHA256 = "1.2.840.113549.1.1.11"
ED25519 = "1.3.101.112"
RSASSA_PSS = "1.2.840.113549.1.1.10"


@pytest.fixture()
def empty_registry(monkeypatch: pytest.MonkeyPatch) -> None:
    """Give each test its own empty provider registry."""
    monkeypatch.setattr(signature, "_providers", {})


@pytest.fixture()
def basic(root_ca: Identity, responder: Identity, subject_cert: Identity) -> BasicResponse:
    der = build_response(
        issuer=root_ca, responder=responder, subject=subject_cert.certificate, nonce=REQUEST_NONCE
    )
    parser = OcspResponseParser()
    return parser.parse(der).flat_map(parser.extract_basic).value()


# ─────────────────────── Provider ───────────────────────


class TestCryptographySignatureProvider:
    def test_ecdsa_valid(self) -> None:
        key = ec.generate_private_key(ec.SECP256R1())
        sig = key.sign(DATA, ec.ECDSA(hashes.SHA256()))

        assert CryptographySignatureProvider().verify(DATA, sig, ECDSA_SHA256, key.public_key())

    def test_ecdsa_other_data_is_invalid(self) -> None:
        key = ec.generate_private_key(ec.SECP256R1())
        sig = key.sign(DATA, ec.ECDSA(hashes.SHA256()))

        assert not CryptographySignatureProvider().verify(
            DATA + b"!", sig, ECDSA_SHA256, key.public_key()
        )

    def test_rsa_pkcs1v15_valid(self) -> None:
        key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
        sig = key.sign(DATA, padding.PKCS1v15(), hashes.SHA256())

        assert CryptographySignatureProvider().verify(DATA, sig, RSA_SHA256, key.public_key())

    def test_ed25519_valid(self) -> None:
        key = ed25519.Ed25519PrivateKey.generate()

        assert CryptographySignatureProvider().verify(
            DATA, key.sign(DATA), ED25519, key.public_key()
        )

    def test_unknown_algorithm_raises(self) -> None:
        """
        GIVEN a signature algorithm OID the provider does not know
        WHEN verify is called
        THEN UnsupportedAlgorithm is raised rather than returning False.
        """
        key = ec.generate_private_key(ec.SECP256R1())

        with pytest.raises(UnsupportedAlgorithm):
            CryptographySignatureProvider().verify(DATA, b"sig", "1.2.3.4", key.public_key())

    def test_key_algorithm_mismatch_raises(self) -> None:
        key = ec.generate_private_key(ec.SECP256R1())

        with pytest.raises(TypeError):
            CryptographySignatureProvider().verify(DATA, b"sig", RSA_SHA256, key.public_key())

    def test_supports(self) -> None:
        provider = CryptographySignatureProvider()

        assert provider.supports(ECDSA_SHA256)
        assert provider.supports(RSASSA_PSS)
        assert not provider.supports("1.2.840.113549.1.1.4")


class TestRsaPss:
    """RSASSA-PSS, whose hash, mask and salt come from the algorithm parameters."""

    @pytest.fixture(scope="class")
    def rsa_key(self) -> rsa.RSAPrivateKey:
        return rsa.generate_private_key(public_exponent=65537, key_size=2048)

    def test_sha256_parameters(self, rsa_key: rsa.RSAPrivateKey) -> None:
        """
        GIVEN a PSS signature with SHA-256, MGF1-SHA-256 and a 20-byte salt
        WHEN verify is called with matching RSASSA-PSS-params
        THEN the signature is valid.
        """
        sig = rsa_key.sign(
            DATA, padding.PSS(mgf=padding.MGF1(hashes.SHA256()), salt_length=20), hashes.SHA256()
        )
        params = der_encoder.encode(rfc4055.rSASSA_PSS_SHA256_Params)

        assert CryptographySignatureProvider().verify(
            DATA, sig, RSASSA_PSS, rsa_key.public_key(), parameters=params
        )

    def test_empty_parameters_use_defaults(self, rsa_key: rsa.RSAPrivateKey) -> None:
        """
        GIVEN an empty RSASSA-PSS-params SEQUENCE
        WHEN verify is called
        THEN SHA-1, MGF1-SHA-1 and a 20-byte salt are assumed.
        """
        sig = rsa_key.sign(
            DATA, padding.PSS(mgf=padding.MGF1(hashes.SHA1()), salt_length=20), hashes.SHA1()
        )

        assert CryptographySignatureProvider().verify(
            DATA, sig, RSASSA_PSS, rsa_key.public_key(), parameters=b"\x30\x00"
        )

    def test_salt_length_mismatch_is_invalid(self, rsa_key: rsa.RSAPrivateKey) -> None:
        sig = rsa_key.sign(
            DATA, padding.PSS(mgf=padding.MGF1(hashes.SHA256()), salt_length=32), hashes.SHA256()
        )
        params = der_encoder.encode(rfc4055.rSASSA_PSS_SHA256_Params)

        assert not CryptographySignatureProvider().verify(
            DATA, sig, RSASSA_PSS, rsa_key.public_key(), parameters=params
        )

    def test_missing_parameters_raise(self, rsa_key: rsa.RSAPrivateKey) -> None:
        with pytest.raises(ValueError, match="no parameters"):
            CryptographySignatureProvider().verify(DATA, b"sig", RSASSA_PSS, rsa_key.public_key())

    def test_malformed_parameters_raise(self, rsa_key: rsa.RSAPrivateKey) -> None:
        with pytest.raises(PyAsn1Error):
            CryptographySignatureProvider().verify(
                DATA, b"sig", RSASSA_PSS, rsa_key.public_key(), parameters=b"\x04\x01\x00"
            )

    def test_verifier_passes_response_parameters(
        self, basic: BasicResponse, rsa_key: rsa.RSAPrivateKey
    ) -> None:
        """
        GIVEN a basic response signed with RSASSA-PSS
        WHEN the SignatureVerifier port verifies it
        THEN the AlgorithmIdentifier parameters reach the provider.
        """
        sig = rsa_key.sign(
            basic.tbs_response_data,
            padding.PSS(mgf=padding.MGF1(hashes.SHA256()), salt_length=20),
            hashes.SHA256(),
        )
        pss_basic = dataclasses.replace(
            basic,
            signature=sig,
            signature_algorithm_oid=RSASSA_PSS,
            signature_algorithm_parameters=der_encoder.encode(rfc4055.rSASSA_PSS_SHA256_Params),
        )
        verifier = ProviderSignatureVerifier(CryptographySignatureProvider())

        ResultAssertions.assert_success_value(
            verifier.verify(pss_basic, rsa_key.public_key()), True
        )


# ─────────────────────── Registry ───────────────────────


@pytest.mark.usefixtures("empty_registry")
class TestRegistry:
    """
    GIVEN the process-wide provider registry
    WHEN providers are registered and looked up
    THEN registration happens once and lookups before it fail cleanly.
    """

    def test_lookup_before_registration_is_configuration_error(self) -> None:
        result = get_provider()

        ResultAssertions.assert_failure(result, ErrorCode.CONFIGURATION_ERROR)
        ResultAssertions.assert_failure_message_contains(result, "register_provider")

    def test_register_then_lookup(self) -> None:
        assert register_provider() is True

        provider = ResultAssertions.assert_success(get_provider())
        assert provider.name == DEFAULT_PROVIDER_NAME
        assert is_registered()

    def test_second_registration_is_a_no_op(self) -> None:
        """
        GIVEN a provider already registered
        WHEN register_provider is called again with another instance
        THEN it returns False and the first instance stays registered.
        """
        first = CryptographySignatureProvider()
        register_provider(first)

        assert register_provider(CryptographySignatureProvider()) is False
        assert get_provider().value() is first

    def test_concurrent_registration_registers_once(self) -> None:
        """
        GIVEN 16 threads registering at the same time
        WHEN they all finish
        THEN exactly one of them reports having registered.
        """
        outcomes: list[bool] = []
        barrier = threading.Barrier(16)

        def register() -> None:
            barrier.wait()
            outcomes.append(register_provider())

        threads = [threading.Thread(target=register) for _ in range(16)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert outcomes.count(True) == 1
        assert outcomes.count(False) == 15

    def test_custom_provider_name(self) -> None:
        custom = MagicMock()
        custom.name = "hsm"

        register_provider(custom)

        assert get_provider("hsm").value() is custom
        ResultAssertions.assert_failure(get_provider(), ErrorCode.CONFIGURATION_ERROR)


# ─────────────────────── SignatureVerifier port ───────────────────────


class TestProviderSignatureVerifier:
    def test_genuine_response_verifies(self, basic: BasicResponse, responder: Identity) -> None:
        verifier = ProviderSignatureVerifier(CryptographySignatureProvider())

        result = verifier.verify(basic, responder.certificate.public_key())

        ResultAssertions.assert_success_value(result, True)

    def test_tampered_signed_data_does_not_verify(
        self, basic: BasicResponse, responder: Identity
    ) -> None:
        tampered = dataclasses.replace(basic, tbs_response_data=basic.tbs_response_data + b"\x00")
        verifier = ProviderSignatureVerifier(CryptographySignatureProvider())

        result = verifier.verify(tampered, responder.certificate.public_key())

        ResultAssertions.assert_success_value(result, False)

    def test_wrong_key_does_not_verify(self, basic: BasicResponse, root_ca: Identity) -> None:
        verifier = ProviderSignatureVerifier(CryptographySignatureProvider())

        result = verifier.verify(basic, root_ca.certificate.public_key())

        ResultAssertions.assert_success_value(result, False)

    def test_provider_exception_is_verification_error(self, basic: BasicResponse) -> None:
        provider = MagicMock()
        provider.name = "broken"
        provider.verify.side_effect = RuntimeError("hardware token unavailable")

        result = ProviderSignatureVerifier(provider).verify(basic, MagicMock())

        error = ResultAssertions.assert_failure(result, ErrorCode.VERIFICATION_ERROR)
        assert isinstance(error.exception, RuntimeError)
        assert "hardware token unavailable" in error.message

    def test_provider_receives_signed_parts(self, basic: BasicResponse) -> None:
        provider = MagicMock()
        provider.verify.return_value = True
        key = MagicMock()

        ProviderSignatureVerifier(provider).verify(basic, key)

        provider.verify.assert_called_once_with(
            basic.tbs_response_data,
            basic.signature,
            basic.signature_algorithm_oid,
            key,
            parameters=None,
        )

    @pytest.mark.usefixtures("empty_registry")
    def test_from_registry_without_provider(self) -> None:
        result = ProviderSignatureVerifier.from_registry()

        ResultAssertions.assert_failure(result, ErrorCode.CONFIGURATION_ERROR)

    @pytest.mark.usefixtures("empty_registry")
    def test_from_registry_with_provider(self) -> None:
        register_provider()

        result = ProviderSignatureVerifier.from_registry()

        assert isinstance(ResultAssertions.assert_success(result), ProviderSignatureVerifier)

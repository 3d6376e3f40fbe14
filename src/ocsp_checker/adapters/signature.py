"""
Signature adapter — process-wide provider registry + SignatureVerifier implementation.

Adapter layer — implements the SignatureVerifier port using:
  - cryptography (PyCA): RSA (PKCS#1 v1.5 and PSS), ECDSA, DSA, Ed25519, Ed448 verification
  - pyasn1 + pyasn1-modules (rfc4055): RSASSA-PSS-params decoding

Provider registration is explicit: the host application calls
register_provider() once at startup, before any validator is built.
Registration is register-once-if-absent and safe to call from several threads;
a second call is a no-op that returns False.

    register_provider()
    verifier = ProviderSignatureVerifier.from_registry().value()
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

import structlog
from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import dsa, ec, ed448, ed25519, padding, rsa
from pyasn1.codec.der import decoder as der_decoder
from pyasn1_modules import rfc4055, rfc5280
from railway import ErrorCode
from railway.result import Result

from ocsp_checker.domain.models import BasicResponse

log = structlog.get_logger()

DEFAULT_PROVIDER_NAME = "pyca-cryptography"


@runtime_checkable
class SignatureProvider(Protocol):
    """A named signature-verification backend."""

    name: str

    def verify(
        self,
        data: bytes,
        signature: bytes,
        algorithm_oid: str,
        public_key: Any,
        parameters: bytes | None = None,
    ) -> bool:
        """
        True if valid, False if not; raises when it cannot decide.

        `parameters` is the DER of the AlgorithmIdentifier parameters, if any.
        """
        ...


# ─────────────────────── Algorithm table ───────────────────────


@dataclass(frozen=True, slots=True)
class _Scheme:
    key_type: type | tuple[type, ...]
    check: Callable[[Any, bytes, bytes, bytes | None], None]


def _rsa_pkcs1v15(hash_cls: type[hashes.HashAlgorithm]) -> _Scheme:
    return _Scheme(
        rsa.RSAPublicKey,
        lambda key, signature, data, _: key.verify(
            signature, data, padding.PKCS1v15(), hash_cls()
        ),
    )


def _ecdsa(hash_cls: type[hashes.HashAlgorithm]) -> _Scheme:
    return _Scheme(
        ec.EllipticCurvePublicKey,
        lambda key, signature, data, _: key.verify(signature, data, ec.ECDSA(hash_cls())),
    )


def _dsa(hash_cls: type[hashes.HashAlgorithm]) -> _Scheme:
    return _Scheme(
        dsa.DSAPublicKey,
        lambda key, signature, data, _: key.verify(signature, data, hash_cls()),
    )


def _eddsa(key_type: type) -> _Scheme:
    return _Scheme(key_type, lambda key, signature, data, _: key.verify(signature, data))


# ─────────────────────── RSASSA-PSS ───────────────────────

_PSS_HASHES: dict[str, type[hashes.HashAlgorithm]] = {
    str(rfc4055.id_sha1): hashes.SHA1,
    str(rfc4055.id_sha224): hashes.SHA224,
    str(rfc4055.id_sha256): hashes.SHA256,
    str(rfc4055.id_sha384): hashes.SHA384,
    str(rfc4055.id_sha512): hashes.SHA512,
}


def _pss_hash(identifier: Any | None) -> hashes.HashAlgorithm:
    """Hash named by a PSS AlgorithmIdentifier; SHA-1 when the field is absent."""
    if identifier is None:
        return hashes.SHA1()
    oid = str(identifier["algorithm"])
    hash_cls = _PSS_HASHES.get(oid)
    if hash_cls is None:
        raise UnsupportedAlgorithm(f"Unsupported RSASSA-PSS hash algorithm: {oid}")
    return hash_cls()


def _present(params: Any, name: str) -> Any | None:
    value = params.getComponentByName(name, default=None, instantiate=False)
    if value is None or not value.isValue:
        return None
    return value


def decode_pss_parameters(parameters: bytes | None) -> tuple[hashes.HashAlgorithm, padding.PSS]:
    """
    Decode RSASSA-PSS-params into the message hash and the PSS padding.

    Absent fields take their RFC 4055 defaults: SHA-1, MGF1 with SHA-1, a
    20-byte salt and trailer field 1. Raises ValueError for missing or
    malformed parameters and UnsupportedAlgorithm for an unknown hash or
    mask generation function.
    """
    if parameters is None:
        raise ValueError("RSASSA-PSS signature algorithm carries no parameters")
    params, rest = der_decoder.decode(parameters, asn1Spec=rfc4055.RSASSA_PSS_params())
    if rest:
        raise ValueError(f"{len(rest)} trailing byte(s) after RSASSA-PSS parameters")

    message_hash = _pss_hash(_present(params, "hashAlgorithm"))

    mgf = _present(params, "maskGenAlgorithm")
    if mgf is None:
        mgf_hash: hashes.HashAlgorithm = hashes.SHA1()
    else:
        if str(mgf["algorithm"]) != str(rfc4055.id_mgf1):
            raise UnsupportedAlgorithm(
                f"Unsupported RSASSA-PSS mask generation function: {mgf['algorithm']}"
            )
        mgf_parameters = _present(mgf, "parameters")
        if mgf_parameters is None:
            raise ValueError("MGF1 carries no hash algorithm")
        mgf_identifier, rest = der_decoder.decode(
            mgf_parameters.asOctets(), asn1Spec=rfc5280.AlgorithmIdentifier()
        )
        if rest:
            raise ValueError(f"{len(rest)} trailing byte(s) after MGF1 hash algorithm")
        mgf_hash = _pss_hash(mgf_identifier)

    salt = _present(params, "saltLength")
    trailer = _present(params, "trailerField")
    if trailer is not None and int(trailer) != 1:
        raise ValueError(f"Unsupported RSASSA-PSS trailer field: {int(trailer)}")

    pss = padding.PSS(
        mgf=padding.MGF1(mgf_hash),
        salt_length=int(salt) if salt is not None else 20,
    )
    return message_hash, pss


def _rsa_pss(key: Any, signature: bytes, data: bytes, parameters: bytes | None) -> None:
    message_hash, pss = decode_pss_parameters(parameters)
    key.verify(signature, data, pss, message_hash)


_SCHEMES: dict[str, _Scheme] = {
    "1.2.840.113549.1.1.5": _rsa_pkcs1v15(hashes.SHA1),
    "1.2.840.113549.1.1.14": _rsa_pkcs1v15(hashes.SHA224),
    "1.2.840.113549.1.1.11": _rsa_pkcs1v15(hashes.SHA256),
    "1.2.840.113549.1.1.12": _rsa_pkcs1v15(hashes.SHA384),
    "1.2.840.113549.1.1.13": _rsa_pkcs1v15(hashes.SHA512),
    str(rfc4055.id_RSASSA_PSS): _Scheme(rsa.RSAPublicKey, _rsa_pss),
    "1.2.840.10045.4.1": _ecdsa(hashes.SHA1),
    "1.2.840.10045.4.3.1": _ecdsa(hashes.SHA224),
    "1.2.840.10045.4.3.2": _ecdsa(hashes.SHA256),
    "1.2.840.10045.4.3.3": _ecdsa(hashes.SHA384),
    "1.2.840.10045.4.3.4": _ecdsa(hashes.SHA512),
    "1.2.840.10040.4.3": _dsa(hashes.SHA1),
    "2.16.840.1.101.3.4.3.1": _dsa(hashes.SHA224),
    "2.16.840.1.101.3.4.3.2": _dsa(hashes.SHA256),
    "1.3.101.112": _eddsa(ed25519.Ed25519PublicKey),
    "1.3.101.113": _eddsa(ed448.Ed448PublicKey),
}


class CryptographySignatureProvider:
    """Signature provider backed by pyca/cryptography."""

    name = DEFAULT_PROVIDER_NAME

    def supports(self, algorithm_oid: str) -> bool:
        return algorithm_oid in _SCHEMES

    def verify(
        self,
        data: bytes,
        signature: bytes,
        algorithm_oid: str,
        public_key: Any,
        parameters: bytes | None = None,
    ) -> bool:
        """
        Verify `signature` over `data`.

        Raises UnsupportedAlgorithm for an unknown signature algorithm OID and
        TypeError when the key type does not fit the algorithm. RSASSA-PSS
        parameters that cannot be decoded raise ValueError.
        """
        scheme = _SCHEMES.get(algorithm_oid)
        if scheme is None:
            raise UnsupportedAlgorithm(f"Unsupported signature algorithm: {algorithm_oid}")
        if not isinstance(public_key, scheme.key_type):
            raise TypeError(
                f"{type(public_key).__name__} cannot verify signature algorithm {algorithm_oid}"
            )
        try:
            scheme.check(public_key, signature, data, parameters)
        except InvalidSignature:
            return False
        return True


# ─────────────────────── Registry ───────────────────────

_providers: dict[str, SignatureProvider] = {}
_lock = threading.Lock()


def register_provider(provider: SignatureProvider | None = None) -> bool:
    """
    Register `provider` (default: CryptographySignatureProvider) unless one with
    the same name is already registered.

    Returns True if this call registered it, False if it was already present.
    """
    if provider is None:
        provider = CryptographySignatureProvider()
    with _lock:
        if provider.name in _providers:
            return False
        _providers[provider.name] = provider
    log.info("provider.registered", provider=provider.name)
    return True


def is_registered(name: str = DEFAULT_PROVIDER_NAME) -> bool:
    with _lock:
        return name in _providers


def get_provider(name: str = DEFAULT_PROVIDER_NAME) -> Result[SignatureProvider]:
    """Look up a registered provider; CONFIGURATION_ERROR if it was never registered."""
    with _lock:
        provider = _providers.get(name)
    return Result.from_optional(
        provider,
        f"Signature provider {name!r} is not registered; call register_provider() at startup",
        ErrorCode.CONFIGURATION_ERROR,
    )


# ─────────────────────── SignatureVerifier port ───────────────────────


class ProviderSignatureVerifier:
    """
    Verify basic responses through a registered SignatureProvider.

    Implements the SignatureVerifier port. Provider exceptions are caught at
    this boundary and surface as VERIFICATION_ERROR.
    """

    def __init__(self, provider: SignatureProvider) -> None:
        self._provider = provider

    @classmethod
    def from_registry(cls, name: str = DEFAULT_PROVIDER_NAME) -> Result[ProviderSignatureVerifier]:
        return get_provider(name).map(cls)

    def verify(self, basic_response: BasicResponse, public_key: Any) -> Result[bool]:
        return Result.from_computation(
            lambda: self._provider.verify(
                basic_response.tbs_response_data,
                basic_response.signature,
                basic_response.signature_algorithm_oid,
                public_key,
                parameters=basic_response.signature_algorithm_parameters,
            ),
            ErrorCode.VERIFICATION_ERROR,
            f"Signature provider {self._provider.name!r} failed",
        )

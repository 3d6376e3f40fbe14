"""
Nonce codec — decode and compare the OCSP nonce extension (RFC 8954).

The nonce is double-wrapped: the extension's extnValue is an OCTET STRING
whose contents are the DER of another OCTET STRING holding the nonce bytes.

  04 05 | 04 03 | A1 B2 C3
  outer   inner   payload

decode_nonce() therefore performs exactly two decode passes. Comparing the
outer contents directly with the request nonce would never match.
"""

from __future__ import annotations

import hmac

from pyasn1.codec.der import decoder as der_decoder
from pyasn1.type import univ
from railway import ErrorCode
from railway.result import Result


def _unwrap_octet_string(substrate: bytes, layer: str) -> bytes:
    """Decode one DER OCTET STRING and return its contents. May raise."""
    octet_string, rest = der_decoder.decode(substrate, asn1Spec=univ.OctetString())
    if rest:
        raise ValueError(f"{len(rest)} trailing byte(s) after {layer} OCTET STRING")
    return octet_string.asOctets()


def _decode(extension_value: bytes) -> bytes:
    inner = _unwrap_octet_string(extension_value, "outer")
    return _unwrap_octet_string(inner, "inner")


def decode_nonce(extension_value: bytes) -> Result[bytes]:
    """
    Decode the raw nonce extension value into the nonce payload.

    Returns Result.failure(MALFORMED_RESPONSE) if either layer is not a
    well-formed OCTET STRING.
    """
    return Result.from_computation(
        lambda: _decode(extension_value),
        ErrorCode.MALFORMED_RESPONSE,
        "Malformed nonce extension",
    )


def nonces_match(expected: bytes, received: bytes) -> bool:
    """Constant-time byte-for-byte equality. Two empty nonces match."""
    return hmac.compare_digest(expected, received)

"""
OCSP response parser adapter — DER decoding into domain models.

Adapter layer — decodes RFC 6960 structures using:
  - pyasn1 + pyasn1-modules (rfc6960): OCSPResponse / BasicOCSPResponse schema
  - pyasn1 `Any` components: tbsResponseData and the embedded certificates
    are kept as the transmitted bytes and never re-encoded

Pipeline:
  raw DER bytes
    → decode OCSPResponse             → OcspResponse (status + still-encoded body)
    → decode responseBytes.response   → BasicResponse (extensions, certs, entries)

A non-successful response carries no body; the body is only decoded after
the status check has passed.
"""

from __future__ import annotations

import io
from datetime import UTC, datetime
from typing import Any

import structlog
from pyasn1.codec.der import decoder as der_decoder
from pyasn1.codec.der import encoder as der_encoder
from pyasn1.type import namedtype, tag, univ
from pyasn1_modules import pem, rfc5280, rfc6960
from railway import ErrorCode
from railway.result import Result

from ocsp_checker.domain.models import (
    OCSP_BASIC_RESPONSE_OID,
    BasicResponse,
    CertificateId,
    OcspResponse,
    RevokedStatus,
    SingleStatusEntry,
    UnknownStatus,
)

log = structlog.get_logger()

PEM_START_MARKER = "-----BEGIN OCSP RESPONSE-----"
PEM_END_MARKER = "-----END OCSP RESPONSE-----"


# ─────────────────────── pyasn1 helpers ───────────────────────


def _optional(component: Any, name: str) -> Any | None:
    """Return an OPTIONAL component of a decoded SEQUENCE, or None if it was absent."""
    value = component.getComponentByName(name, default=None, instantiate=False)
    if value is None or not value.isValue:
        return None
    return value


def _as_datetime(generalized_time: Any) -> datetime:
    """Convert a pyasn1 GeneralizedTime to an aware UTC datetime."""
    value = generalized_time.asDateTime
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def _decode_exactly(substrate: bytes, spec: Any, what: str) -> Any:
    """DER-decode `substrate` against `spec`, rejecting trailing bytes."""
    decoded, rest = der_decoder.decode(substrate, asn1Spec=spec)
    if rest:
        raise ValueError(f"{len(rest)} trailing byte(s) after {what}")
    return decoded


class SignedBasicOCSPResponse(univ.Sequence):
    """
    BasicOCSPResponse with tbsResponseData and each certificate left undecoded.

    An untagged `Any` holds the complete TLV it was decoded from.
    """

    componentType = namedtype.NamedTypes(
        namedtype.NamedType("tbsResponseData", univ.Any()),
        namedtype.NamedType("signatureAlgorithm", rfc5280.AlgorithmIdentifier()),
        namedtype.NamedType("signature", univ.BitString()),
        namedtype.OptionalNamedType(
            "certs",
            univ.SequenceOf(componentType=univ.Any()).subtype(
                explicitTag=tag.Tag(tag.tagClassContext, tag.tagFormatConstructed, 0)
            ),
        ),
    )


# ─────────────────────── SingleResponse ───────────────────────


def _decode_status(cert_status: Any) -> RevokedStatus | UnknownStatus | None:
    """
    Map the CertStatus CHOICE to a per-entry status object.

    good    → None (no status object)
    revoked → RevokedStatus (reason None if the responder omitted it)
    unknown → UnknownStatus
    """
    name = cert_status.getName()
    if name == "good":
        return None
    if name == "revoked":
        revoked_info = cert_status.getComponent()
        reason = _optional(revoked_info, "revocationReason")
        return RevokedStatus(
            revocation_time=_as_datetime(revoked_info["revocationTime"]),
            reason=int(reason) if reason is not None else None,
        )
    return UnknownStatus()


def _decode_entry(single_response: Any) -> SingleStatusEntry:
    """Convert one decoded SingleResponse into a SingleStatusEntry."""
    asn1_cert_id = single_response["certID"]
    cert_id = CertificateId(
        serial_number=int(asn1_cert_id["serialNumber"]),
        issuer_name_hash=bytes(asn1_cert_id["issuerNameHash"]),
        issuer_key_hash=bytes(asn1_cert_id["issuerKeyHash"]),
        hash_algorithm_oid=str(asn1_cert_id["hashAlgorithm"]["algorithm"]),
    )
    next_update = _optional(single_response, "nextUpdate")
    return SingleStatusEntry(
        cert_id=cert_id,
        status=_decode_status(single_response["certStatus"]),
        this_update=_as_datetime(single_response["thisUpdate"]),
        next_update=_as_datetime(next_update) if next_update is not None else None,
    )


# ─────────────────────── Public decoding functions ───────────────────────


def decode_ocsp_response(raw: bytes) -> OcspResponse:
    """
    Decode the outer OCSPResponse. May raise (pyasn1 errors, ValueError).

    The body (responseBytes.response) is kept encoded.
    """
    asn1_response = _decode_exactly(raw, rfc6960.OCSPResponse(), "OCSPResponse")
    status = int(asn1_response["responseStatus"])
    response_bytes = _optional(asn1_response, "responseBytes")
    if response_bytes is None:
        return OcspResponse(status=status, raw=raw)
    return OcspResponse(
        status=status,
        response_type=str(response_bytes["responseType"]),
        response_bytes=bytes(response_bytes["response"]),
        raw=raw,
    )


def decode_basic_response(response: OcspResponse) -> BasicResponse:
    """
    Decode the BasicOCSPResponse carried by `response`. May raise.

    Raises ValueError when the response has no body or a body of a type other
    than id-pkix-ocsp-basic.
    """
    if response.response_bytes is None:
        raise ValueError("OCSP response carries no responseBytes")
    if response.response_type != OCSP_BASIC_RESPONSE_OID:
        raise ValueError(f"Unsupported OCSP response type: {response.response_type}")

    basic = _decode_exactly(
        response.response_bytes, SignedBasicOCSPResponse(), "BasicOCSPResponse"
    )
    tbs_der = basic["tbsResponseData"].asOctets()
    tbs = _decode_exactly(tbs_der, rfc6960.ResponseData(), "ResponseData")
    algorithm = basic["signatureAlgorithm"]
    parameters = _optional(algorithm, "parameters")

    extensions: dict[str, bytes] = {}
    asn1_extensions = _optional(tbs, "responseExtensions")
    if asn1_extensions is not None:
        for extension in asn1_extensions:
            extensions[str(extension["extnID"])] = der_encoder.encode(extension["extnValue"])

    asn1_certs = _optional(basic, "certs")
    certificates = (
        tuple(cert.asOctets() for cert in asn1_certs) if asn1_certs is not None else ()
    )

    entries = tuple(_decode_entry(single) for single in tbs["responses"])

    log.debug(
        "parser.basic_response_decoded",
        entries=len(entries),
        certificates=len(certificates),
        extensions=sorted(extensions),
    )

    return BasicResponse(
        tbs_response_data=tbs_der,
        signature_algorithm_oid=str(algorithm["algorithm"]),
        signature=basic["signature"].asOctets(),
        produced_at=_as_datetime(tbs["producedAt"]),
        extensions=extensions,
        certificates=certificates,
        entries=entries,
        signature_algorithm_parameters=(
            parameters.asOctets() if parameters is not None else None
        ),
    )


def pem_to_der(text: str) -> bytes:
    """Strip the `OCSP RESPONSE` PEM armor. Raises ValueError if no block is found."""
    substrate = pem.readPemFromFile(
        io.StringIO(text), startMarker=PEM_START_MARKER, endMarker=PEM_END_MARKER
    )
    if not substrate:
        raise ValueError("No OCSP RESPONSE PEM block found")
    return bytes(substrate)


# ─────────────────────── Public Parser Class ───────────────────────


class OcspResponseParser:
    """
    Parse raw OCSP responses into domain models.

    All exceptions are caught at this adapter boundary via Result.from_computation()
    and surface as MALFORMED_RESPONSE.
    """

    def parse(self, raw: bytes) -> Result[OcspResponse]:
        """Decode a DER-encoded OCSPResponse."""
        return Result.from_computation(
            lambda: decode_ocsp_response(raw),
            ErrorCode.MALFORMED_RESPONSE,
            "Failed to decode OCSP response",
        )

    def parse_pem(self, text: str) -> Result[OcspResponse]:
        """Decode a PEM-armored (`OCSP RESPONSE`) OCSPResponse."""
        return Result.from_computation(
            lambda: pem_to_der(text),
            ErrorCode.MALFORMED_RESPONSE,
            "Failed to read PEM OCSP response",
        ).flat_map(self.parse)

    def extract_basic(self, response: OcspResponse) -> Result[BasicResponse]:
        """Decode the BasicOCSPResponse body of an already-decoded response."""
        return Result.from_computation(
            lambda: decode_basic_response(response),
            ErrorCode.MALFORMED_RESPONSE,
            "Failed to decode basic OCSP response",
        )

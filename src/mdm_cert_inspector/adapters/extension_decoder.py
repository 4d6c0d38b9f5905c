"""
Extension decoder & fingerprinter — raw extensions → displayable records.

Adapter layer — implements the ExtensionEnricher port using:
  - cryptography (PyCA) hashes: SHA-1, SHA-256 and MD5 over the DER bytes
  - asn1crypto: one-layer TLV unwrap of private extension payloads

Microsoft Intune stamps the MDM device certificate with private extensions
under the 1.2.840.113556.5 arc. Their payloads are identifiers wrapped in a
single ASN.1 value (a string type, an OCTET STRING or an INTEGER), or a bare
16-byte GUID.

Decoding is data-driven: EXTENSION_TABLE maps a dotted OID to a
KnownExtension(name, decode). Whatever a decode function raises, the
enricher renders that one extension as hex and carries on. Unknown
OIDs get UNKNOWN_EXTENSION_NAME and a hex value.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from types import MappingProxyType

import structlog
from asn1crypto import core
from cryptography.hazmat.primitives import hashes
from cryptography.x509.oid import ExtensionOID

from mdm_cert_inspector.domain.models import ExtensionRecord, Fingerprints, RawExtension

log = structlog.get_logger()

INTUNE_OID_ARC = "1.2.840.113556.5"
UNKNOWN_EXTENSION_NAME = "Unknown Extension"

type Decoder = Callable[[bytes], str]


@dataclass(frozen=True, slots=True)
class KnownExtension:
    """Display label and payload decoder for one known OID."""

    name: str
    decode: Decoder


# ─────────────────────── Fingerprints ───────────────────────


def _digest(algorithm: hashes.HashAlgorithm, data: bytes) -> str:
    hasher = hashes.Hash(algorithm)
    hasher.update(data)
    return hasher.finalize().hex()


def compute_fingerprints(der_bytes: bytes) -> Fingerprints:
    """Digest the exact bytes given; nothing is re-encoded first."""
    return Fingerprints(
        sha1=_digest(hashes.SHA1(), der_bytes),
        sha256=_digest(hashes.SHA256(), der_bytes),
        md5=_digest(hashes.MD5(), der_bytes),
    )


# ─────────────────────── Payload Decoders ───────────────────────


def hex_value(raw: bytes) -> str:
    return raw.hex()


def format_ms_guid(raw: bytes) -> str:
    """
    Render 16 bytes as a Microsoft GUID.

    Windows stores the first three GUID groups little-endian and the last
    two big-endian, which is exactly uuid's bytes_le layout.
    """
    return str(uuid.UUID(bytes_le=raw))


def _decode_octets(octets: bytes) -> str:
    try:
        text = octets.decode("utf-8")
    except UnicodeDecodeError:
        text = None
    if text and text.isprintable():
        return text.strip()
    if len(octets) == 16:
        return format_ms_guid(octets)
    return octets.hex()


def decode_identifier(raw: bytes) -> str:
    """
    Decode an Intune identifier payload.

    Unwraps one ASN.1 value:
      - string types (UTF8String, PrintableString, IA5String, ...) → the text
      - OCTET STRING → printable UTF-8 text, a GUID for 16 binary octets, else hex
      - INTEGER → decimal
    A payload that is not a single ASN.1 value but is exactly 16 bytes long is
    a raw GUID. Anything else raises ValueError.
    """
    try:
        value = core.Asn1Value.load(raw, strict=True)
    except (ValueError, TypeError) as e:
        if len(raw) == 16:
            return format_ms_guid(raw)
        raise ValueError(f"payload is not a single ASN.1 value: {e}") from e

    try:
        match value:
            case core.AbstractTime():
                # UTCTime/GeneralizedTime subclass AbstractString but decode to datetime
                pass
            case core.AbstractString():
                return value.native.strip()
            case core.OctetString():
                return _decode_octets(value.native)
            case core.Integer():
                return str(value.native)
    except (ValueError, TypeError) as e:
        raise ValueError(f"undecodable {value.__class__.__name__}: {e}") from e

    if len(raw) == 16:
        return format_ms_guid(raw)
    raise ValueError(f"unexpected ASN.1 type {value.__class__.__name__}")


# ─────────────────────── OID Table ───────────────────────

_INTUNE_EXTENSIONS: dict[str, KnownExtension] = {
    f"{INTUNE_OID_ARC}.4": KnownExtension("Intune Device ID", decode_identifier),
    f"{INTUNE_OID_ARC}.6": KnownExtension("Account ID", decode_identifier),
    f"{INTUNE_OID_ARC}.10": KnownExtension("Entra User ID", decode_identifier),
    f"{INTUNE_OID_ARC}.11": KnownExtension("Unknown ID", decode_identifier),
    f"{INTUNE_OID_ARC}.14": KnownExtension("Tenant ID", decode_identifier),
    f"{INTUNE_OID_ARC}.15": KnownExtension("MDM Enrollment ID", decode_identifier),
    f"{INTUNE_OID_ARC}.16": KnownExtension("Policy ID", decode_identifier),
    f"{INTUNE_OID_ARC}.17": KnownExtension("Resource ID", decode_identifier),
    f"{INTUNE_OID_ARC}.18": KnownExtension("Profile ID", decode_identifier),
    f"{INTUNE_OID_ARC}.19": KnownExtension(f"OID {INTUNE_OID_ARC}.19", decode_identifier),
}

# Labelled for display only; payloads are shown as hex.
_STANDARD_EXTENSIONS: dict[str, KnownExtension] = {
    oid.dotted_string: KnownExtension(name, hex_value)
    for oid, name in [
        (ExtensionOID.BASIC_CONSTRAINTS, "Basic Constraints"),
        (ExtensionOID.KEY_USAGE, "Key Usage"),
        (ExtensionOID.EXTENDED_KEY_USAGE, "Extended Key Usage"),
        (ExtensionOID.SUBJECT_KEY_IDENTIFIER, "Subject Key Identifier"),
        (ExtensionOID.AUTHORITY_KEY_IDENTIFIER, "Authority Key Identifier"),
        (ExtensionOID.SUBJECT_ALTERNATIVE_NAME, "Subject Alternative Name"),
        (ExtensionOID.CRL_DISTRIBUTION_POINTS, "CRL Distribution Points"),
        (ExtensionOID.AUTHORITY_INFORMATION_ACCESS, "Authority Information Access"),
        (ExtensionOID.CERTIFICATE_POLICIES, "Certificate Policies"),
    ]
}

EXTENSION_TABLE: Mapping[str, KnownExtension] = MappingProxyType(
    {**_STANDARD_EXTENSIONS, **_INTUNE_EXTENSIONS}
)

# OIDs whose presence marks a certificate as issued by Intune (.11 and .19 excluded)
INTUNE_MARKER_OIDS = frozenset(
    f"{INTUNE_OID_ARC}.{suffix}" for suffix in (4, 6, 10, 14, 15, 16, 17, 18)
)


def is_intune_oid(oid: str) -> bool:
    return oid.startswith(f"{INTUNE_OID_ARC}.")


# ─────────────────────── Public Enricher Class ───────────────────────


class IntuneExtensionEnricher:
    """
    Fingerprint a certificate and decode its raw extensions.

    Implements the ExtensionEnricher port. Never fails: a decoder error
    degrades that one extension to hex. When an OID occurs more than once
    the first occurrence is kept, the rest are dropped and the OID is
    reported in the returned duplicates tuple.
    """

    def __init__(self, table: Mapping[str, KnownExtension] = EXTENSION_TABLE) -> None:
        self._table = table

    def enrich(
        self,
        der: bytes,
        raw_extensions: Sequence[RawExtension],
    ) -> tuple[Fingerprints, tuple[ExtensionRecord, ...], tuple[str, ...]]:
        fingerprints = compute_fingerprints(der)

        records: list[ExtensionRecord] = []
        seen: set[str] = set()
        duplicates: list[str] = []
        for raw in raw_extensions:
            if raw.oid in seen:
                if raw.oid not in duplicates:
                    duplicates.append(raw.oid)
                log.warning("decoder.duplicate_extension", oid=raw.oid, policy="first_wins")
                continue
            seen.add(raw.oid)
            records.append(self._decode(raw))

        return fingerprints, tuple(records), tuple(duplicates)

    def _decode(self, raw: RawExtension) -> ExtensionRecord:
        known = self._table.get(raw.oid)
        if known is None:
            return ExtensionRecord(
                oid=raw.oid,
                name=UNKNOWN_EXTENSION_NAME,
                value=raw.value.hex(),
                critical=raw.critical,
            )

        try:
            value = known.decode(raw.value)
        except Exception as e:
            log.warning("decoder.hex_fallback", oid=raw.oid, name=known.name, reason=str(e))
            value = raw.value.hex()

        return ExtensionRecord(oid=raw.oid, name=known.name, value=value, critical=raw.critical)

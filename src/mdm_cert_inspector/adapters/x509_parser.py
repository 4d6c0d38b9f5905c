"""
X.509 parser adapter — DER/PEM certificate → ParsedCertificate.

Adapter layer — implements the CertificateParser port using:
  - asn1crypto: PEM unarmoring, the TBSCertificate walk (version, serial
    octets, raw extension list) without interpreting extension payloads
  - cryptography (PyCA): typed subject/issuer names and validity window

Pipeline:
  raw bytes
    → asn1crypto: pem.unarmor() if armored
    → asn1crypto: Certificate.load(strict=True) → version check
    → cryptography: x509.load_der_x509_certificate() for names and dates
    → asn1crypto: serial INTEGER octets + extensions (OID, critical, octets)
    → ParsedCertificate (domain model)

asn1crypto owns the extension walk because cryptography refuses to expose a
certificate's extensions at all when one of them is duplicated or when a
known extension is malformed; this inspector must still report those.
"""

from __future__ import annotations

import structlog
from asn1crypto import core, pem
from asn1crypto import x509 as asn1_x509
from cryptography import x509
from cryptography.x509.oid import NameOID
from railway.result import Result

from mdm_cert_inspector.domain.errors import (
    CertificateParseError,
    StructuralParseError,
    UnsupportedFeatureError,
)
from mdm_cert_inspector.domain.models import ParsedCertificate, RawExtension

log = structlog.get_logger()

# cryptography only reads v1 and v3 certificates
_SUPPORTED_VERSIONS = frozenset({"v1", "v3"})

CERTIFICATE_PEM_TYPES = frozenset({"CERTIFICATE", "X509 CERTIFICATE"})


# ─────────────────────── PEM Unwrapping ───────────────────────


def unwrap_pem(raw: bytes) -> bytes:
    """Return the DER payload of a PEM certificate, or `raw` unchanged if not armored."""
    if not pem.detect(raw):
        return raw
    try:
        type_name, _headers, der_bytes = pem.unarmor(raw)
    except ValueError as e:
        raise StructuralParseError(f"Invalid PEM armor: {e}") from e
    if type_name not in CERTIFICATE_PEM_TYPES:
        raise StructuralParseError(f"PEM block is {type_name!r}, not a certificate")
    return der_bytes


# ─────────────────────── TBSCertificate Walk ───────────────────────


def _load_structure(der_bytes: bytes) -> asn1_x509.TbsCertificate:
    """Load the outer Certificate SEQUENCE and return its checked TBSCertificate."""
    if not der_bytes:
        raise StructuralParseError("Certificate data is empty")
    try:
        certificate = asn1_x509.Certificate.load(der_bytes, strict=True)
        tbs = certificate["tbs_certificate"]
        version = tbs["version"].native
    except (ValueError, TypeError) as e:
        raise StructuralParseError(f"Malformed certificate structure: {e}") from e

    if version not in _SUPPORTED_VERSIONS:
        raise UnsupportedFeatureError(f"Unsupported X.509 certificate version: {version!r}")
    return tbs


def render_serial(integer_octets: bytes) -> str:
    """
    Render DER INTEGER content octets as uppercase hex.

    The leading 0x00 DER adds to keep a high-bit serial positive is not part
    of the number and is dropped; no other padding is added or removed.
    """
    if not integer_octets:
        raise StructuralParseError("Serial number INTEGER has no content")
    if len(integer_octets) > 1 and integer_octets[0] == 0x00:
        integer_octets = integer_octets[1:]
    return integer_octets.hex().upper()


def _extract_serial(tbs: asn1_x509.TbsCertificate) -> str:
    try:
        octets = tbs["serial_number"].contents
    except (ValueError, TypeError) as e:
        raise StructuralParseError(f"Malformed serial number: {e}") from e
    return render_serial(octets or b"")


def _extract_raw_extensions(tbs: asn1_x509.TbsCertificate) -> tuple[RawExtension, ...]:
    """
    Every extension in encoding order: dotted OID, raw extnValue octets, critical flag.

    Payloads are never parsed here, so a malformed known extension cannot
    fail the certificate. A certificate without extensions yields ().
    """
    extensions = tbs["extensions"]
    if isinstance(extensions, core.Void):
        return ()

    raw_extensions: list[RawExtension] = []
    try:
        for extension in extensions:
            raw_extensions.append(
                RawExtension(
                    oid=extension["extn_id"].dotted,
                    value=extension["extn_value"].contents or b"",
                    critical=bool(extension["critical"].native),
                )
            )
    except (ValueError, TypeError) as e:
        raise StructuralParseError(f"Malformed extensions sequence: {e}") from e
    return tuple(raw_extensions)


# ─────────────────────── Typed Fields (cryptography) ───────────────────────


def _load_typed(der_bytes: bytes) -> x509.Certificate:
    try:
        return x509.load_der_x509_certificate(der_bytes)
    except x509.InvalidVersion as e:
        raise UnsupportedFeatureError(f"Unsupported X.509 certificate version: {e}") from e
    except ValueError as e:
        raise StructuralParseError(f"Malformed certificate: {e}") from e


def _extract_common_name(subject: x509.Name) -> str | None:
    """First CN attribute of the subject, or None when the subject has no CN."""
    attributes = subject.get_attributes_for_oid(NameOID.COMMON_NAME)
    if not attributes:
        return None
    value = attributes[0].value
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


# ─────────────────────── Public Parser Class ───────────────────────


class X509CertificateParser:
    """
    Parse one DER or PEM certificate into a ParsedCertificate.

    Implements the CertificateParser port. Parse errors are caught at this
    adapter boundary and returned as Result failures:
      - STRUCTURAL_PARSE_ERROR: not a well-formed certificate
      - UNSUPPORTED_FEATURE: well-formed but an unsupported version
    """

    def parse(self, raw: bytes) -> Result[ParsedCertificate]:
        try:
            parsed = self._do_parse(raw)
        except CertificateParseError as e:
            log.info("parser.rejected", code=e.code.value, reason=str(e))
            return Result.failure(e.code, str(e), e)

        log.debug(
            "parser.complete",
            common_name=parsed.common_name,
            serial=parsed.serial_number,
            extensions=len(parsed.raw_extensions),
        )
        return Result.success(parsed)

    def _do_parse(self, raw: bytes) -> ParsedCertificate:
        """Internal parse — raises CertificateParseError subclasses only."""
        der_bytes = unwrap_pem(raw)
        tbs = _load_structure(der_bytes)
        certificate = _load_typed(der_bytes)

        try:
            common_name = _extract_common_name(certificate.subject)
            issuer = certificate.issuer.rfc4514_string()
            valid_from = certificate.not_valid_before_utc
            valid_to = certificate.not_valid_after_utc
        except ValueError as e:
            raise StructuralParseError(f"Malformed subject, issuer or validity: {e}") from e

        return ParsedCertificate(
            der=der_bytes,
            common_name=common_name,
            issuer=issuer,
            serial_number=_extract_serial(tbs),
            valid_from=valid_from,
            valid_to=valid_to,
            raw_extensions=_extract_raw_extensions(tbs),
        )

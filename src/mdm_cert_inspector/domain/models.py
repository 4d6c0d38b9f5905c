"""
Domain models — immutable value objects produced by an inspection.

ParsedCertificate is the parser's output (standard fields + undecoded
extensions); CertificateRecord is the final, decoded result handed to
renderers. Nothing mutates a record after construction: all models are
frozen dataclasses and every collection is a tuple.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True, slots=True)
class RawExtension:
    """One entry of the certificate's extensions sequence, payload not interpreted."""

    oid: str
    value: bytes = field(repr=False)
    critical: bool = False


@dataclass(frozen=True, slots=True)
class ParsedCertificate:
    """
    Standard X.509 fields plus the raw extension list, in encoding order.

    `der` holds the exact certificate bytes that were parsed (after PEM
    unwrapping, if the input was PEM); fingerprints are computed over it.
    """

    der: bytes = field(repr=False)
    common_name: str | None = None
    issuer: str | None = None
    serial_number: str | None = None
    valid_from: datetime | None = None
    valid_to: datetime | None = None
    raw_extensions: tuple[RawExtension, ...] = ()


@dataclass(frozen=True, slots=True)
class Fingerprints:
    """Lowercase hex digests of the DER certificate bytes."""

    sha1: str
    sha256: str
    md5: str


@dataclass(frozen=True, slots=True)
class ExtensionRecord:
    """A decoded extension: dotted OID, display label, display value."""

    oid: str
    name: str
    value: str
    critical: bool = False


@dataclass(frozen=True, slots=True)
class CertificateRecord:
    """
    The decoded MDM certificate.

    `extensions` keeps certificate encoding order and holds at most one
    record per OID (first occurrence wins). OIDs that appeared more than
    once are listed in `duplicate_oids` so the drop is never silent.
    """

    fingerprints: Fingerprints
    common_name: str | None = None
    issuer: str | None = None
    serial_number: str | None = None
    valid_from: datetime | None = None
    valid_to: datetime | None = None
    extensions: tuple[ExtensionRecord, ...] = ()
    duplicate_oids: tuple[str, ...] = ()

    def extension(self, oid: str) -> ExtensionRecord | None:
        """Return the extension with the given dotted OID, or None."""
        return next((ext for ext in self.extensions if ext.oid == oid), None)

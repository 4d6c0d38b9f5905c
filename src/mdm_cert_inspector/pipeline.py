"""
Pipeline — the ROP pipeline from certificate bytes to CertificateRecord.

Domain layer — pure orchestration; all I/O sits behind the injected ports.

  source.load_candidates()
    → select_mdm_certificate(candidates)   (parses each candidate)
      → enrich(der, raw_extensions)        (fingerprints + decoded extensions)
        → CertificateRecord

inspect_certificate() is the core on its own: bytes in, record out, with
no discovery step.
"""

from __future__ import annotations

from railway.result import Result

from mdm_cert_inspector.domain.models import CertificateRecord, ParsedCertificate
from mdm_cert_inspector.domain.ports import (
    CertificateParser,
    CertificateSource,
    ExtensionEnricher,
)
from mdm_cert_inspector.selection import select_mdm_certificate


def build_record(parsed: ParsedCertificate, enricher: ExtensionEnricher) -> CertificateRecord:
    """Combine parsed standard fields with fingerprints and decoded extensions."""
    fingerprints, extensions, duplicate_oids = enricher.enrich(parsed.der, parsed.raw_extensions)
    return CertificateRecord(
        fingerprints=fingerprints,
        common_name=parsed.common_name,
        issuer=parsed.issuer,
        serial_number=parsed.serial_number,
        valid_from=parsed.valid_from,
        valid_to=parsed.valid_to,
        extensions=extensions,
        duplicate_oids=duplicate_oids,
    )


def inspect_certificate(
    raw: bytes,
    parser: CertificateParser,
    enricher: ExtensionEnricher,
) -> Result[CertificateRecord]:
    """
    Inspect one certificate (DER or PEM).

    Fails only when the parser fails (STRUCTURAL_PARSE_ERROR or
    UNSUPPORTED_FEATURE); extension problems never fail an inspection.
    """
    return parser.parse(raw).map(lambda parsed: build_record(parsed, enricher))


def run_inspection(
    source: CertificateSource,
    parser: CertificateParser,
    enricher: ExtensionEnricher,
    require_intune: bool = True,
) -> Result[CertificateRecord]:
    """
    Locate the MDM certificate through `source` and inspect it.

    Flow:
      1. Load candidate certificates (keychain or file)
      2. Select the MDM device certificate
      3. Fingerprint it and decode its extensions

    Returns the first failing stage's error on failure.
    """
    return (
        source.load_candidates()
        .flat_map(
            lambda candidates: select_mdm_certificate(candidates, parser, require_intune)
        )
        .map(lambda parsed: build_record(parsed, enricher))
    )

"""
Unit tests for the ROP pipeline — orchestrates the full workflow.

Uses mock ports (fake adapters) to test the pipeline in isolation, and the
real parser/enricher for the single-certificate core.

The pipeline has 3 stages:
  1. source.load_candidates() → candidate buffers
  2. select_mdm_certificate(candidates) → ParsedCertificate
  3. enrich(der, raw_extensions) → CertificateRecord

Test categories:
  - Success track: certificate found and decoded
  - Failure at each stage: source / parser
  - Short-circuit: early failure prevents later stages from being called
"""

from __future__ import annotations

from datetime import UTC, datetime
from unittest.mock import MagicMock

from asn1crypto import core
from railway import ErrorCode, Result, ResultAssertions

from mdm_cert_inspector.adapters.extension_decoder import (
    IntuneExtensionEnricher,
    compute_fingerprints,
)
from mdm_cert_inspector.adapters.x509_parser import X509CertificateParser
from mdm_cert_inspector.domain.models import (
    ExtensionRecord,
    Fingerprints,
    ParsedCertificate,
    RawExtension,
)
from mdm_cert_inspector.pipeline import build_record, inspect_certificate, run_inspection
from tests.conftest import (
    DEVICE_CN,
    DEVICE_ID,
    DEVICE_ID_OID,
    TENANT_ID,
    TENANT_ID_OID,
    append_raw_extension,
    build_certificate,
    to_pem,
    utf8,
)

# ─────────────────────── Mock Port Factories ───────────────────────


def _make_source(result: Result[list[bytes]]) -> MagicMock:
    """Create a mock CertificateSource returning the given Result."""
    mock = MagicMock()
    mock.load_candidates.return_value = result
    return mock


def _make_parser(result: Result[ParsedCertificate]) -> MagicMock:
    """Create a mock CertificateParser returning the given Result."""
    mock = MagicMock()
    mock.parse.return_value = result
    return mock


def _make_enricher() -> MagicMock:
    """Create a mock ExtensionEnricher with fixed output."""
    mock = MagicMock()
    mock.enrich.return_value = (
        Fingerprints(sha1="aa", sha256="bb", md5="cc"),
        (ExtensionRecord(oid=TENANT_ID_OID, name="Tenant ID", value=TENANT_ID),),
        (),
    )
    return mock


def _parsed(common_name: str = DEVICE_CN) -> ParsedCertificate:
    return ParsedCertificate(
        der=b"\x30\x00",
        common_name=common_name,
        serial_number="01",
        raw_extensions=(RawExtension(TENANT_ID_OID, utf8(TENANT_ID)),),
    )


# ─────────────────────── Single Certificate ───────────────────────


class TestInspectCertificate:
    """inspect_certificate(): bytes in, record out."""

    def test_end_to_end_with_real_adapters(self, device_certificate: bytes) -> None:
        """
        GIVEN a generated MDM device certificate
        WHEN it is inspected with the real parser and enricher
        THEN the record holds the standard fields, fingerprints and decoded extensions.
        """
        record = ResultAssertions.assert_success(
            inspect_certificate(device_certificate, X509CertificateParser(), IntuneExtensionEnricher())
        )

        assert record.common_name == DEVICE_CN
        assert record.fingerprints == compute_fingerprints(device_certificate)
        assert record.extension(TENANT_ID_OID).value == TENANT_ID
        assert record.extension(DEVICE_ID_OID).name == "Intune Device ID"
        assert record.extension(DEVICE_ID_OID).value == DEVICE_ID
        assert record.duplicate_oids == ()

    def test_pem_and_der_give_the_same_record(self, device_certificate: bytes) -> None:
        parser, enricher = X509CertificateParser(), IntuneExtensionEnricher()

        from_der = ResultAssertions.assert_success(inspect_certificate(device_certificate, parser, enricher))
        from_pem = ResultAssertions.assert_success(inspect_certificate(to_pem(device_certificate), parser, enricher))

        assert from_der == from_pem

    def test_time_typed_intune_extension_does_not_fail_inspection(self) -> None:
        """
        GIVEN a certificate whose Intune Device ID payload is a UTCTime
        WHEN it is inspected
        THEN a record is returned with that extension rendered as hex.
        """
        payload = core.UTCTime(datetime(2024, 1, 1, tzinfo=UTC)).dump()
        der = build_certificate(extensions=[(DEVICE_ID_OID, payload), (TENANT_ID_OID, utf8(TENANT_ID))])

        record = ResultAssertions.assert_success(
            inspect_certificate(der, X509CertificateParser(), IntuneExtensionEnricher())
        )

        assert record.extension(DEVICE_ID_OID).value == payload.hex()
        assert record.extension(TENANT_ID_OID).value == TENANT_ID

    def test_duplicate_extension_is_reported_on_record(self) -> None:
        der = append_raw_extension(
            build_certificate(extensions=[(TENANT_ID_OID, utf8("first"))]),
            TENANT_ID_OID,
            utf8("second"),
        )

        record = ResultAssertions.assert_success(
            inspect_certificate(der, X509CertificateParser(), IntuneExtensionEnricher())
        )

        assert [ext.value for ext in record.extensions] == ["first"]
        assert record.duplicate_oids == (TENANT_ID_OID,)

    def test_parse_failure_short_circuits(self) -> None:
        """
        GIVEN the parser fails
        WHEN inspecting
        THEN the failure is returned and the enricher is never called.
        """
        parser = _make_parser(Result.failure(ErrorCode.STRUCTURAL_PARSE_ERROR, "bad"))
        enricher = _make_enricher()

        result = inspect_certificate(b"x", parser, enricher)

        ResultAssertions.assert_failure(result, ErrorCode.STRUCTURAL_PARSE_ERROR)
        enricher.enrich.assert_not_called()


class TestBuildRecord:
    def test_combines_parsed_fields_and_enrichment(self) -> None:
        parsed = _parsed()
        enricher = _make_enricher()

        record = build_record(parsed, enricher)

        enricher.enrich.assert_called_once_with(parsed.der, parsed.raw_extensions)
        assert record.common_name == DEVICE_CN
        assert record.serial_number == "01"
        assert record.fingerprints.sha256 == "bb"
        assert record.extensions[0].value == TENANT_ID


# ─────────────────────── Full Inspection ───────────────────────


class TestRunInspectionSuccess:
    """Happy path — source, selection and decoding all succeed."""

    def test_returns_record_for_selected_certificate(
        self, device_certificate: bytes, unrelated_certificate: bytes,
    ) -> None:
        source = _make_source(Result.success([unrelated_certificate, device_certificate]))

        record = ResultAssertions.assert_success(
            run_inspection(source, X509CertificateParser(), IntuneExtensionEnricher())
        )

        assert record.common_name == DEVICE_CN
        source.load_candidates.assert_called_once()

    def test_require_intune_false_accepts_plain_certificate(
        self, unrelated_certificate: bytes,
    ) -> None:
        source = _make_source(Result.success([unrelated_certificate]))

        record = ResultAssertions.assert_success(
            run_inspection(
                source, X509CertificateParser(), IntuneExtensionEnricher(), require_intune=False
            )
        )

        assert record.common_name == "Apple Worldwide Developer"
        assert record.extensions[0].name == "Basic Constraints"


class TestRunInspectionFailures:
    """Each stage's failure propagates and stops later stages."""

    def test_source_failure_short_circuits(self) -> None:
        source = _make_source(Result.failure(ErrorCode.EXTERNAL_SERVICE_ERROR, "Keychain access failed"))
        parser = _make_parser(Result.success(_parsed()))
        enricher = _make_enricher()

        result = run_inspection(source, parser, enricher)

        ResultAssertions.assert_failure(result, ErrorCode.EXTERNAL_SERVICE_ERROR)
        parser.parse.assert_not_called()
        enricher.enrich.assert_not_called()

    def test_no_mdm_certificate(self, unrelated_certificate: bytes) -> None:
        source = _make_source(Result.success([unrelated_certificate]))
        enricher = _make_enricher()

        result = run_inspection(source, X509CertificateParser(), enricher)

        ResultAssertions.assert_failure(result, ErrorCode.NOT_FOUND)
        enricher.enrich.assert_not_called()

    def test_parser_failure_for_every_candidate(self) -> None:
        source = _make_source(Result.success([b"a", b"b"]))
        parser = _make_parser(Result.failure(ErrorCode.UNSUPPORTED_FEATURE, "Unsupported X.509 certificate version: 'v2'"))

        result = run_inspection(source, parser, _make_enricher())

        ResultAssertions.assert_failure(result, ErrorCode.UNSUPPORTED_FEATURE)
        assert parser.parse.call_count == 2

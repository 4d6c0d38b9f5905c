"""
Shared test fixtures and helpers for the mdm-cert-inspector test suite.

Certificates are built at test time with cryptography's CertificateBuilder
(signed with a throwaway EC key). Variants a well-behaved builder
refuses to produce (duplicate extensions, unsupported versions) are made by
re-encoding a built certificate with asn1crypto.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, datetime

import pytest
from asn1crypto import core
from asn1crypto import x509 as asn1_x509
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.x509.oid import NameOID

INTUNE = "1.2.840.113556.5"
DEVICE_ID_OID = f"{INTUNE}.4"
ACCOUNT_ID_OID = f"{INTUNE}.6"
USER_ID_OID = f"{INTUNE}.10"
TENANT_ID_OID = f"{INTUNE}.14"
ENROLLMENT_ID_OID = f"{INTUNE}.15"
UNRELATED_OID = "1.3.6.1.4.1.99999.1"

DEVICE_CN = "3f2504e0-4f89-11d3-9a0c-0305e82c3301"
TENANT_ID = "72f988bf-86f1-41af-91ab-2d7cd011db47"
DEVICE_ID = "a1b2c3d4-1111-2222-3333-444455556666"
USER_ID = "0e9c2a51-7d2b-4f3a-8c61-2f0d9a7b6c11"
ISSUER_CN = "Microsoft Intune MDM Device CA"

NOT_BEFORE = datetime(2024, 1, 1, tzinfo=UTC)
NOT_AFTER = datetime(2025, 1, 1, tzinfo=UTC)

_SIGNING_KEY = ec.generate_private_key(ec.SECP256R1())


def utf8(value: str) -> bytes:
    """DER UTF8String payload."""
    return core.UTF8String(value).dump()


def octets(value: bytes) -> bytes:
    """DER OCTET STRING payload."""
    return core.OctetString(value).dump()


def build_certificate(
    common_name: str | None = "Test Device",
    serial: int = 0x01020304,
    extensions: Iterable[tuple[str, bytes]] = (),
    critical_oids: Iterable[str] = (),
    with_basic_constraints: bool = False,
) -> bytes:
    """
    Build and sign a DER certificate.

    `extensions` are (dotted OID, raw extnValue payload) pairs, added in order.
    A subject without a CN gets O=Contoso so the Name is not empty.
    """
    if common_name is None:
        subject = x509.Name([x509.NameAttribute(NameOID.ORGANIZATION_NAME, "Contoso")])
    else:
        subject = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, common_name)])
    issuer = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, ISSUER_CN)])
    critical = set(critical_oids)

    builder = (
        x509.CertificateBuilder()
        .subject_name(subject)
        .issuer_name(issuer)
        .public_key(_SIGNING_KEY.public_key())
        .serial_number(serial)
        .not_valid_before(NOT_BEFORE)
        .not_valid_after(NOT_AFTER)
    )
    if with_basic_constraints:
        builder = builder.add_extension(x509.BasicConstraints(ca=False, path_length=None), critical=True)
    for oid, value in extensions:
        builder = builder.add_extension(
            x509.UnrecognizedExtension(x509.ObjectIdentifier(oid), value),
            critical=oid in critical,
        )
    certificate = builder.sign(_SIGNING_KEY, hashes.SHA256())
    return certificate.public_bytes(serialization.Encoding.DER)


def to_pem(der: bytes) -> bytes:
    return x509.load_der_x509_certificate(der).public_bytes(serialization.Encoding.PEM)


def append_raw_extension(der: bytes, oid: str, value: bytes) -> bytes:
    """Re-encode `der` with one more extension appended (duplicates allowed)."""
    certificate = asn1_x509.Certificate.load(der)
    certificate["tbs_certificate"]["extensions"].append(
        asn1_x509.Extension({"extn_id": oid, "critical": False, "extn_value": value})
    )
    return certificate.dump(force=True)


def with_version(der: bytes, version: int | str) -> bytes:
    """Re-encode `der` claiming a different X.509 version."""
    certificate = asn1_x509.Certificate.load(der)
    certificate["tbs_certificate"]["version"] = version
    return certificate.dump(force=True)


def intune_extensions() -> list[tuple[str, bytes]]:
    """The private extensions a typical MDM device certificate carries."""
    return [
        (DEVICE_ID_OID, utf8(DEVICE_ID)),
        (TENANT_ID_OID, octets(TENANT_ID.encode())),
        (USER_ID_OID, utf8(USER_ID)),
    ]


@pytest.fixture()
def device_certificate() -> bytes:
    """MDM device certificate: GUID-only CN plus Intune extensions."""
    return build_certificate(common_name=DEVICE_CN, extensions=intune_extensions())


@pytest.fixture()
def agent_certificate() -> bytes:
    """Intune agent certificate: IntuneMDMAgent- CN plus Intune extensions."""
    return build_certificate(
        common_name="IntuneMDMAgent-0f6e4b1c",
        serial=0x0A0B,
        extensions=[(TENANT_ID_OID, utf8(TENANT_ID))],
    )


@pytest.fixture()
def unrelated_certificate() -> bytes:
    """A certificate with no Intune extensions."""
    return build_certificate(common_name="Apple Worldwide Developer", serial=0x77, with_basic_constraints=True)

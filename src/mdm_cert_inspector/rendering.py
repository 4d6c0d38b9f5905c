"""
Rendering — turn a CertificateRecord into CLI output.

Display policy lives here, not in the record: the record keeps certificate
encoding order, and sort_for_display() applies the preferred Intune order
used by the report.

Output modes:
  - render_text:            full human-readable report
  - extract_field:          one value, for scripts (`--field tenantId`)
  - render_extension_list:  `name: value` lines sorted by name
  - render_json:            pydantic report model, camelCase keys
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from railway import ErrorCode
from railway.result import Result

from mdm_cert_inspector.adapters.extension_decoder import INTUNE_OID_ARC, is_intune_oid
from mdm_cert_inspector.domain.models import CertificateRecord, ExtensionRecord

PREFERRED_EXTENSION_ORDER: tuple[str, ...] = tuple(
    f"{INTUNE_OID_ARC}.{suffix}" for suffix in (4, 14, 10, 6, 15, 16, 17, 18, 11, 19)
)

_DISPLAY_RANK = {oid: rank for rank, oid in enumerate(PREFERRED_EXTENSION_ORDER)}


def sort_for_display(extensions: Iterable[ExtensionRecord]) -> list[ExtensionRecord]:
    """Preferred Intune order first; everything else keeps certificate order."""
    return sorted(extensions, key=lambda ext: _DISPLAY_RANK.get(ext.oid, len(_DISPLAY_RANK)))


def format_timestamp(value: datetime) -> str:
    return value.strftime("%b %d, %Y at %H:%M UTC")


# ─────────────────────── Text Report ───────────────────────


def _section(title: str) -> list[str]:
    return [title, "=" * len(title)]


def _extension_lines(extensions: Iterable[ExtensionRecord], verbose: bool) -> list[str]:
    lines: list[str] = []
    for ext in extensions:
        lines.append(f"{ext.name}: {ext.value}")
        if verbose:
            critical = " (critical)" if ext.critical else ""
            lines.append(f"  OID: {ext.oid}{critical}")
    return lines


def render_text(record: CertificateRecord, verbose: bool = False) -> str:
    """
    Human-readable report.

    Intune extensions are always shown; other extensions and OIDs only with
    `verbose`.
    """
    lines = _section("MDM Certificate Information")
    if record.common_name is not None:
        lines.append(f"Common Name: {record.common_name}")
    if record.issuer is not None:
        lines.append(f"Issuer: {record.issuer}")
    if record.serial_number is not None:
        lines.append(f"Serial Number: {record.serial_number}")
    if record.valid_from is not None:
        lines.append(f"Not Valid Before: {format_timestamp(record.valid_from)}")
    if record.valid_to is not None:
        lines.append(f"Not Valid After: {format_timestamp(record.valid_to)}")

    ordered = sort_for_display(record.extensions)
    intune = [ext for ext in ordered if is_intune_oid(ext.oid)]
    others = [ext for ext in ordered if not is_intune_oid(ext.oid)]

    if intune:
        lines += ["", *_section("Microsoft Intune Extensions"), *_extension_lines(intune, verbose)]
    if verbose and others:
        lines += ["", *_section("Other Extensions"), *_extension_lines(others, verbose)]
    if verbose and record.duplicate_oids:
        lines += ["", f"Duplicate extensions ignored: {', '.join(record.duplicate_oids)}"]

    lines += [
        "",
        *_section("Certificate Fingerprints"),
        f"SHA-256: {record.fingerprints.sha256}",
        f"SHA-1: {record.fingerprints.sha1}",
        f"MD5: {record.fingerprints.md5}",
    ]
    return "\n".join(lines)


# ─────────────────────── Single Field ───────────────────────


def _extension_value(oid: str) -> Callable[[CertificateRecord], str | None]:
    def getter(record: CertificateRecord) -> str | None:
        ext = record.extension(oid)
        return ext.value if ext is not None else None

    return getter


def _optional_timestamp(value: datetime | None) -> str | None:
    return format_timestamp(value) if value is not None else None


_FIELD_GETTERS: dict[str, Callable[[CertificateRecord], str | None]] = {
    "commonname": lambda r: r.common_name,
    "cn": lambda r: r.common_name,
    "issuer": lambda r: r.issuer,
    "serialnumber": lambda r: r.serial_number,
    "serial": lambda r: r.serial_number,
    "notvalidbefore": lambda r: _optional_timestamp(r.valid_from),
    "validfrom": lambda r: _optional_timestamp(r.valid_from),
    "notvalidafter": lambda r: _optional_timestamp(r.valid_to),
    "validto": lambda r: _optional_timestamp(r.valid_to),
    "tenantid": _extension_value(f"{INTUNE_OID_ARC}.14"),
    "deviceid": _extension_value(f"{INTUNE_OID_ARC}.4"),
    "intunedeviceid": _extension_value(f"{INTUNE_OID_ARC}.4"),
    "userid": _extension_value(f"{INTUNE_OID_ARC}.10"),
    "entrauserid": _extension_value(f"{INTUNE_OID_ARC}.10"),
    "accountid": _extension_value(f"{INTUNE_OID_ARC}.6"),
    "enrollmentid": _extension_value(f"{INTUNE_OID_ARC}.15"),
    "mdmenrollmentid": _extension_value(f"{INTUNE_OID_ARC}.15"),
    "sha1": lambda r: r.fingerprints.sha1,
    "sha1fingerprint": lambda r: r.fingerprints.sha1,
    "sha256": lambda r: r.fingerprints.sha256,
    "sha256fingerprint": lambda r: r.fingerprints.sha256,
    "md5": lambda r: r.fingerprints.md5,
    "md5fingerprint": lambda r: r.fingerprints.md5,
}


def extract_field(record: CertificateRecord, field: str) -> Result[str]:
    """
    Value of one named field, case-insensitive.

    Known aliases (commonName, tenantId, sha256, ...) resolve directly and
    yield "" when the certificate lacks that value. Otherwise the field is
    matched against extension OIDs and names (substring). A blank field or
    anything else is a VALIDATION_ERROR.
    """
    if not field.strip():
        return Result.failure(ErrorCode.VALIDATION_ERROR, "Field name must not be empty")

    key = field.lower()
    getter = _FIELD_GETTERS.get(key)
    if getter is not None:
        return Result.success(getter(record) or "")

    found = next(
        (ext for ext in record.extensions if ext.oid == field or key in ext.name.lower()),
        None,
    )
    if found is None:
        return Result.failure(ErrorCode.VALIDATION_ERROR, f"Field '{field}' not found")
    return Result.success(found.value)


# ─────────────────────── Extension List ───────────────────────


def render_extension_list(
    record: CertificateRecord,
    values_only: bool = False,
    verbose: bool = False,
) -> str:
    if not record.extensions:
        return "No extensions found"

    ordered = sorted(record.extensions, key=lambda ext: ext.name)
    if values_only:
        return "\n".join(ext.value for ext in ordered)
    return "\n".join(_extension_lines(ordered, verbose))


# ─────────────────────── JSON Report ───────────────────────


class _ReportModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, validate_by_name=True, frozen=True)


class FingerprintsReport(_ReportModel):
    sha1: str
    sha256: str
    md5: str


class ExtensionReport(_ReportModel):
    name: str
    value: str
    critical: bool = False


class CertificateReport(_ReportModel):
    """JSON shape of a CertificateRecord; `extensions` is keyed by dotted OID."""

    common_name: str | None = None
    issuer: str | None = None
    serial_number: str | None = None
    not_valid_before: datetime | None = None
    not_valid_after: datetime | None = None
    fingerprints: FingerprintsReport
    extensions: dict[str, ExtensionReport]
    duplicate_oids: list[str] | None = None

    @classmethod
    def from_record(cls, record: CertificateRecord) -> CertificateReport:
        return cls(
            common_name=record.common_name,
            issuer=record.issuer,
            serial_number=record.serial_number,
            not_valid_before=record.valid_from,
            not_valid_after=record.valid_to,
            fingerprints=FingerprintsReport(
                sha1=record.fingerprints.sha1,
                sha256=record.fingerprints.sha256,
                md5=record.fingerprints.md5,
            ),
            extensions={
                ext.oid: ExtensionReport(name=ext.name, value=ext.value, critical=ext.critical)
                for ext in record.extensions
            },
            duplicate_oids=list(record.duplicate_oids) or None,
        )


def render_json(record: CertificateRecord) -> str:
    """Pretty-printed JSON; absent fields are omitted rather than null."""
    return CertificateReport.from_record(record).model_dump_json(
        indent=2, by_alias=True, exclude_none=True
    )

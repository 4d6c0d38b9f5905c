"""
MDM certificate selection — pick the device certificate among candidates.

A keychain holds many certificates. Intune issues two that carry its
private extensions:
  - the MDM device certificate, whose CN is a bare GUID
  - the agent certificate, whose CN starts with "IntuneMDMAgent-"

The device certificate is preferred; the agent certificate is the fallback.
Candidates that fail to parse are skipped, so one corrupt keychain entry
does not hide the MDM certificate.
"""

from __future__ import annotations

import re
from collections.abc import Sequence

import structlog
from railway import ErrorCode
from railway.result import Result

from mdm_cert_inspector.adapters.extension_decoder import INTUNE_MARKER_OIDS
from mdm_cert_inspector.domain.models import ParsedCertificate
from mdm_cert_inspector.domain.ports import CertificateParser

log = structlog.get_logger()

AGENT_CN_PREFIX = "IntuneMDMAgent-"

_GUID_PATTERN = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
)


def is_guid_only_name(common_name: str | None) -> bool:
    return common_name is not None and _GUID_PATTERN.match(common_name) is not None


def has_intune_extensions(parsed: ParsedCertificate) -> bool:
    return any(ext.oid in INTUNE_MARKER_OIDS for ext in parsed.raw_extensions)


def select_mdm_certificate(
    candidates: Sequence[bytes],
    parser: CertificateParser,
    require_intune: bool = True,
) -> Result[ParsedCertificate]:
    """
    Parse the candidates and return the MDM device certificate.

    Preference: GUID-only CN, then "IntuneMDMAgent-" CN, among certificates
    carrying Intune extensions. With require_intune=False the first parseable
    certificate is returned when no Intune certificate is present (used when
    the user points at a specific file).

    When no candidate parses at all, the first parse failure is returned so
    the caller sees why, rather than a bare NOT_FOUND.
    """
    parsed: list[ParsedCertificate] = []
    first_failure: Result[ParsedCertificate] | None = None

    for index, raw in enumerate(candidates):
        result = parser.parse(raw)
        if result.is_failure():
            log.info("selection.candidate_skipped", index=index, reason=result.error().message)
            if first_failure is None:
                first_failure = result
            continue
        parsed.append(result.value())

    if not parsed:
        if first_failure is not None:
            return first_failure
        return Result.failure(ErrorCode.NOT_FOUND, "No certificates found")

    intune = [cert for cert in parsed if has_intune_extensions(cert)]
    device_cert = next((c for c in intune if is_guid_only_name(c.common_name)), None)
    agent_cert = next(
        (c for c in intune if (c.common_name or "").startswith(AGENT_CN_PREFIX)),
        None,
    )

    chosen = device_cert or agent_cert
    if chosen is None and not require_intune:
        chosen = intune[0] if intune else parsed[0]

    log.info(
        "selection.complete",
        candidates=len(candidates),
        parsed=len(parsed),
        intune=len(intune),
        chosen=chosen.common_name if chosen else None,
    )
    return Result.from_optional(
        chosen,
        "MDM certificate with Microsoft Intune extensions not found",
        ErrorCode.NOT_FOUND,
    )

"""
Ports — Protocol-based interfaces between the pipeline and its adapters.

  Domain ← Ports (protocols) ← Adapters (implementations)

Adapters satisfy a port structurally, without inheriting from it. The
parser and enricher form the pure inspection core; the certificate source
is the only port that touches the outside world (files, keychain).
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from railway.result import Result

from mdm_cert_inspector.domain.models import (
    ExtensionRecord,
    Fingerprints,
    ParsedCertificate,
    RawExtension,
)


@runtime_checkable
class CertificateSource(Protocol):
    """
    Port: produce candidate certificate byte buffers (DER or PEM).

    Returns Result.failure(NOT_FOUND) when nothing could be found and
    Result.failure(EXTERNAL_SERVICE_ERROR) when the lookup itself failed.
    """

    def load_candidates(self) -> Result[list[bytes]]: ...


@runtime_checkable
class CertificateParser(Protocol):
    """
    Port: decode one certificate into standard fields and raw extensions.

    Fails with STRUCTURAL_PARSE_ERROR or UNSUPPORTED_FEATURE; never returns
    a partially filled record.
    """

    def parse(self, raw: bytes) -> Result[ParsedCertificate]: ...


@runtime_checkable
class ExtensionEnricher(Protocol):
    """
    Port: fingerprint the DER bytes and decode the raw extensions.

    Never fails: a bad extension degrades to a hex rendering.
    """

    def enrich(
        self,
        der: bytes,
        raw_extensions: Sequence[RawExtension],
    ) -> tuple[Fingerprints, tuple[ExtensionRecord, ...], tuple[str, ...]]: ...

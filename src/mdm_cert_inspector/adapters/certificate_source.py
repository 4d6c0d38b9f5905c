"""
Certificate source adapters — where candidate certificate bytes come from.

Adapter layer — implements the CertificateSource port:
  - FileCertificateSource: a DER file, a PEM file, or a PEM bundle
  - KeychainCertificateSource: the macOS keychains, queried through
    `security find-certificate -a -p`, which prints every certificate as PEM

Both return raw DER buffers; choosing the MDM certificate among them is the
selection step's job.
"""

from __future__ import annotations

import subprocess
from collections.abc import Sequence
from pathlib import Path

import structlog
from asn1crypto import pem
from railway import ErrorCode
from railway.result import Result

from mdm_cert_inspector.adapters.x509_parser import CERTIFICATE_PEM_TYPES

log = structlog.get_logger()


def split_certificates(data: bytes) -> list[bytes]:
    """
    Split a buffer into certificate buffers.

    PEM input yields the DER payload of every CERTIFICATE block (other block
    types such as private keys are ignored); anything else is treated as a
    single DER certificate.
    """
    if not pem.detect(data):
        return [data] if data else []
    return [
        der_bytes
        for type_name, _headers, der_bytes in pem.unarmor(data, multiple=True)
        if type_name in CERTIFICATE_PEM_TYPES
    ]


def _split_or_fail(data: bytes, origin: str) -> Result[list[bytes]]:
    return Result.from_computation(
        lambda: split_certificates(data),
        ErrorCode.STRUCTURAL_PARSE_ERROR,
        f"Invalid PEM data from {origin}",
    ).flat_map(
        lambda certificates: (
            Result.success(certificates)
            if certificates
            else Result.failure(ErrorCode.NOT_FOUND, f"No certificates found in {origin}")
        )
    )


class FileCertificateSource:
    """Read candidate certificates from a file on disk."""

    def __init__(self, path: Path) -> None:
        self._path = path

    def load_candidates(self) -> Result[list[bytes]]:
        origin = str(self._path)
        return (
            Result.from_computation(
                self._path.read_bytes,
                ErrorCode.NOT_FOUND,
                f"Cannot read certificate file {origin}",
            )
            .peek(lambda data: log.info("source.file_read", path=origin, size=len(data)))
            .flat_map(lambda data: _split_or_fail(data, origin))
        )


class KeychainCertificateSource:
    """
    Read every certificate from the macOS keychains.

    `keychains` restricts the search to specific keychain files; empty means
    the user's default search list (login + System).
    """

    def __init__(
        self,
        command: str = "security",
        keychains: Sequence[str] = (),
        timeout: float | None = None,
    ) -> None:
        self._command = command
        self._keychains = tuple(keychains)
        self._timeout = timeout

    def load_candidates(self) -> Result[list[bytes]]:
        args = [self._command, "find-certificate", "-a", "-p", *self._keychains]
        log.info("source.keychain_query", command=self._command, keychains=list(self._keychains))
        return Result.from_computation(
            lambda: self._run(args),
            ErrorCode.EXTERNAL_SERVICE_ERROR,
            "Keychain access failed",
        ).flat_map(lambda output: _split_or_fail(output, "keychain"))

    def _run(self, args: list[str]) -> bytes:
        completed = subprocess.run(
            args,
            capture_output=True,
            check=True,
            timeout=self._timeout,
        )
        return completed.stdout

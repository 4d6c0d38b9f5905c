"""
Parse errors raised inside the certificate parser adapter.

They never leave the adapter: CertificateParser.parse() converts them into
Result failures carrying the matching ErrorCode, so callers can report a
corrupt certificate differently from one using an unsupported feature.
"""

from __future__ import annotations

from railway import ErrorCode


class CertificateParseError(Exception):
    """Base class for fatal certificate parsing problems."""

    code: ErrorCode = ErrorCode.STRUCTURAL_PARSE_ERROR


class StructuralParseError(CertificateParseError):
    """The bytes are not a well-formed X.509 certificate."""

    code = ErrorCode.STRUCTURAL_PARSE_ERROR


class UnsupportedFeatureError(CertificateParseError):
    """The certificate is well-formed but uses something the parser does not implement."""

    code = ErrorCode.UNSUPPORTED_FEATURE

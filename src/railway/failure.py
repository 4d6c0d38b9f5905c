"""
Failure description — what travels on the failure track of a Result.

An ErrorCode says which kind of failure happened; the FailureDescription adds
the human message, the originating exception (if any) and a UTC timestamp.
Callers branch on the code, never on the message text.
"""

from __future__ import annotations

import traceback
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum, unique


@unique
class ErrorCode(Enum):
    """
    Failure kinds surfaced by the inspector.

    The first two belong to certificate parsing and are the only ones the
    inspection core itself produces; the rest come from the collaborators
    around it (sources, rendering, execution contexts).
    """

    STRUCTURAL_PARSE_ERROR = "STRUCTURAL_PARSE_ERROR"
    """Bytes are not a well-formed certificate (bad tag/length, truncated, missing field)."""

    UNSUPPORTED_FEATURE = "UNSUPPORTED_FEATURE"
    """Well-formed, but uses a structural feature the parser does not implement."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    """Caller asked for something that does not exist (e.g. an unknown field)."""

    NOT_FOUND = "NOT_FOUND"
    """No certificate, or no MDM certificate, could be located."""

    EXTERNAL_SERVICE_ERROR = "EXTERNAL_SERVICE_ERROR"
    """An external tool (keychain query) failed."""

    TIMEOUT_ERROR = "TIMEOUT_ERROR"
    """Operation exceeded its time limit."""

    TECHNICAL_ERROR = "TECHNICAL_ERROR"
    """Unexpected exception escaped a computation."""


@dataclass(frozen=True, slots=True)
class FailureDescription:
    """
    Immutable failure descriptor.

    >>> desc = FailureDescription(ErrorCode.NOT_FOUND, "No MDM certificate")
    >>> desc.code
    <ErrorCode.NOT_FOUND: 'NOT_FOUND'>
    """

    code: ErrorCode
    message: str
    exception: BaseException | None = field(default=None, repr=False)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def full_stack_trace(self) -> str:
        """Message followed by the formatted exception chain, if there is one."""
        if self.exception is None:
            return self.message
        tb = "".join(
            traceback.format_exception(
                type(self.exception), self.exception, self.exception.__traceback__
            )
        )
        return f"{self.message}\n{tb}"

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"

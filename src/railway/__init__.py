"""
Railway-Oriented Programming helpers used by the MDM certificate inspector.

Every stage returns a Result; failures carry an ErrorCode so callers can tell
a corrupt certificate from an unsupported one without parsing messages.

    from railway import ErrorCode, Result

    def require_der(raw: bytes) -> Result[bytes]:
        if not raw:
            return Result.failure(ErrorCode.STRUCTURAL_PARSE_ERROR, "empty input")
        return Result.success(raw)
"""

from railway.assertions import ResultAssertions
from railway.execution import (
    ExecutionContext,
    LoggingExecutionContext,
    NoOpExecutionContext,
    TimeoutExecutionContext,
)
from railway.failure import ErrorCode, FailureDescription
from railway.result import Failure, Result, Success

__all__ = [
    "Result",
    "Success",
    "Failure",
    "ErrorCode",
    "FailureDescription",
    "ExecutionContext",
    "NoOpExecutionContext",
    "LoggingExecutionContext",
    "TimeoutExecutionContext",
    "ResultAssertions",
]

__version__ = "1.1.0"

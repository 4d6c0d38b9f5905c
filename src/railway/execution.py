"""
Execution contexts — separate WHAT runs (a Result-returning computation)
from HOW it runs (logged, time-bounded).

Contexts nest by wrapping: the outer context receives a computation that
already runs inside the inner one.

    ctx = LoggingExecutionContext(
        inner=TimeoutExecutionContext(timeout_seconds=5.0),
        operation="MdmCertificateInspection",
    )
    result = ctx.execute(lambda: run_inspection(source, parser, enricher))
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Protocol, TypeVar, runtime_checkable

from railway.failure import ErrorCode, FailureDescription
from railway.result import Failure, Result

T = TypeVar("T")
logger = logging.getLogger("railway.execution")


@runtime_checkable
class ExecutionContext(Protocol):
    """Anything with execute(computation) -> Result satisfies this protocol."""

    def execute(self, computation: Callable[[], Result[T]]) -> Result[T]: ...


class NoOpExecutionContext:
    """Runs the computation directly. Used as the innermost default and in tests."""

    def execute(self, computation: Callable[[], Result[T]]) -> Result[T]:
        return computation()


class LoggingExecutionContext:
    """
    Logs start, duration and outcome of the wrapped computation.

    An exception escaping the computation becomes a TECHNICAL_ERROR failure.
    """

    def __init__(
        self,
        inner: ExecutionContext | None = None,
        operation: str = "unknown",
        log_level: int = logging.INFO,
    ) -> None:
        self._inner = inner or NoOpExecutionContext()
        self._operation = operation
        self._log_level = log_level

    def execute(self, computation: Callable[[], Result[T]]) -> Result[T]:
        logger.log(self._log_level, "[%s] Starting execution", self._operation)
        start = time.monotonic()

        try:
            result = self._inner.execute(computation)
        except Exception as e:
            elapsed = time.monotonic() - start
            logger.error(
                "[%s] Execution failed after %.3fs: %s",
                self._operation,
                elapsed,
                e,
            )
            return Failure(
                FailureDescription(ErrorCode.TECHNICAL_ERROR, f"Execution failed: {e}", e)
            )

        elapsed = time.monotonic() - start
        state = "SUCCESS" if result.is_success() else "FAILURE"
        logger.log(
            self._log_level,
            "[%s] Completed in %.3fs — %s",
            self._operation,
            elapsed,
            state,
        )
        return result


class TimeoutExecutionContext:
    """
    Bounds the wall-clock time of the wrapped computation.

    The computation runs on a daemon worker thread; if it has not finished
    after `timeout_seconds` the caller gets a TIMEOUT_ERROR failure right
    away. The worker is abandoned, not killed: it keeps running until the
    computation returns or the interpreter exits, whichever comes first, so
    computations run here must not hold resources the caller needs back.
    """

    def __init__(
        self,
        timeout_seconds: float,
        inner: ExecutionContext | None = None,
    ) -> None:
        if timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be positive, got {timeout_seconds}")
        self._timeout = timeout_seconds
        self._inner = inner or NoOpExecutionContext()

    def execute(self, computation: Callable[[], Result[T]]) -> Result[T]:
        future: Future[Result[T]] = Future()

        def run() -> None:
            if not future.set_running_or_notify_cancel():
                return
            try:
                future.set_result(self._inner.execute(computation))
            except Exception as e:
                future.set_exception(e)

        # daemon, so an abandoned worker never blocks interpreter exit
        threading.Thread(target=run, name="railway-timeout", daemon=True).start()
        try:
            return future.result(timeout=self._timeout)
        except FutureTimeoutError:
            logger.warning("Computation timed out after %.1fs", self._timeout)
            return Failure(
                FailureDescription(
                    ErrorCode.TIMEOUT_ERROR,
                    f"Operation timed out after {self._timeout:g}s",
                )
            )

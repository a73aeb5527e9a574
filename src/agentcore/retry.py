"""
Retry machinery for model calls: error classification, jittered backoff, and
the retry loop that ties them together.

Behaviour of ``Retrier.call``:
    - Up to ``max_retries + 1`` attempts; ``max_retries=0`` means one attempt.
    - Fatal errors raise ``NonRetryableError`` immediately.
    - Cancellation/deadline errors propagate as-is and are never retried.
    - Retryable errors wait ``Backoff.delay(attempt)`` and try again.
    - Exhaustion raises the last error as a ``TemporaryError``.

Delay follows ``min(max_delay, base_delay * 2**attempt)`` with ±jitter:

    For base_delay=3.0, max_delay=30.0:
    - Attempt 0: ~3 seconds
    - Attempt 1: ~6 seconds
    - Attempt 2: ~12 seconds
    - Attempt 3: ~24 seconds
    - Attempt 4+: ~30 seconds
"""

from __future__ import annotations

import logging
import random
import socket
from enum import Enum
from typing import Callable, Iterator, Optional, Protocol, TypeVar, runtime_checkable

from .context import Context
from .exceptions import ContextError, NonRetryableError, TemporaryError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Message fragments that mark a failure as a transient network problem.
_TRANSIENT_MARKERS = (
    "connection refused",
    "connection reset",
    "connection error",
    "connection aborted",
    "timeout",
    "timed out",
    "network",
    "name resolution",
    "name or service not known",
    "temporary",
    "temporarily unavailable",
)


class ErrorClass(str, Enum):
    RETRYABLE = "retryable"
    FATAL = "fatal"


@runtime_checkable
class SupportsStatusCode(Protocol):
    """Any error exposing an HTTP-like status code."""

    status_code: int


def _status_code(exc: BaseException) -> Optional[int]:
    code = getattr(exc, "status_code", None)
    if isinstance(code, int) and not isinstance(code, bool):
        return code
    return None


def _error_chain(exc: BaseException) -> Iterator[BaseException]:
    seen = set()
    current: Optional[BaseException] = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        current = current.__cause__ or current.__context__


def classify(exc: BaseException) -> ErrorClass:
    """
    Decide whether a failed attempt is worth retrying.

    Rules, in order:
        1. Cancellation and deadline errors, even wrapped, are FATAL.
        2. A ``status_code`` of 429 or 5xx is RETRYABLE; any other code is FATAL.
        3. ``TemporaryError``, connection, timeout and DNS errors are RETRYABLE,
           as is any error whose message (or whose cause's message) names a
           connection, timeout, network or temporary failure.
        4. Everything else is FATAL.
    """
    chain = list(_error_chain(exc))
    if any(isinstance(err, ContextError) for err in chain):
        return ErrorClass.FATAL

    code = _status_code(exc)
    if code is not None:
        if code == 429 or code >= 500:
            return ErrorClass.RETRYABLE
        return ErrorClass.FATAL

    for err in chain:
        if isinstance(err, (TemporaryError, ConnectionError, TimeoutError, socket.gaierror)):
            return ErrorClass.RETRYABLE
        message = str(err).lower()
        if any(marker in message for marker in _TRANSIENT_MARKERS):
            return ErrorClass.RETRYABLE

    return ErrorClass.FATAL


def as_temporary(exc: BaseException) -> TemporaryError:
    """Return ``exc`` as a TemporaryError, wrapping it when it is not one already."""
    if isinstance(exc, TemporaryError):
        return exc
    wrapped = TemporaryError(f"temporary error - retry recommended: {exc}", error=exc)
    wrapped.__cause__ = exc
    return wrapped


class Backoff:
    """
    Jittered exponential backoff.

    Attributes:
        base_delay: Delay in seconds for attempt 0.
        max_delay: Cap on the un-jittered delay.
        jitter_factor: Relative jitter; 0.1 spreads each delay over ±10%.
    """

    def __init__(
        self,
        base_delay: float = 3.0,
        max_delay: float = 30.0,
        jitter_factor: float = 0.1,
        rng: Optional[random.Random] = None,
    ):
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.jitter_factor = jitter_factor
        self._rng = rng or random.Random()

    def delay(self, attempt: int) -> float:
        """
        Compute the delay in seconds before retry number ``attempt`` (0-indexed).

        Raises:
            ValueError: If attempt is negative.
        """
        if attempt < 0:
            raise ValueError(f"attempt must be >= 0, got {attempt}")
        # 2**attempt overflows float quickly; the cap makes larger exponents moot.
        exponent = min(attempt, 64)
        computed = min(self.max_delay, self.base_delay * (2.0**exponent))
        jitter = self._rng.uniform(-self.jitter_factor, self.jitter_factor)
        return max(0.0, computed * (1.0 + jitter))

    def wait(self, ctx: Context, seconds: float) -> None:
        """
        Block for ``seconds`` or until ``ctx`` is done, whichever comes first.

        Raises:
            ContextError: As soon as the context is cancelled or expires.
        """
        ctx.raise_if_done()
        if seconds <= 0:
            return
        if ctx.wait(seconds):
            ctx.raise_if_done()

    def __repr__(self) -> str:
        return (
            f"Backoff(base_delay={self.base_delay}, max_delay={self.max_delay}, "
            f"jitter_factor={self.jitter_factor})"
        )


class Retrier:
    """
    Retry loop around a single provider primitive.

    Attributes:
        max_retries: Retries after the first attempt.
        backoff: Delay schedule between attempts.
        classifier: Function deciding RETRYABLE vs FATAL for an error.
    """

    def __init__(
        self,
        max_retries: int,
        backoff: Backoff,
        classifier: Callable[[BaseException], ErrorClass] = classify,
        label: str = "model call",
    ):
        if max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {max_retries}")
        self.max_retries = max_retries
        self.backoff = backoff
        self.classifier = classifier
        self.label = label

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def call(self, ctx: Context, fn: Callable[[], T]) -> T:
        """
        Invoke ``fn`` until it succeeds, fails fatally, or retries run out.

        Raises:
            NonRetryableError: On the first fatal error.
            TemporaryError: When every attempt failed with a retryable error.
            ContextError: When the context ends before or between attempts.
        """
        for attempt in range(self.max_attempts):
            ctx.raise_if_done()
            try:
                return fn()
            except Exception as exc:  # noqa: BLE001
                self.handle_failure(ctx, exc, attempt)
        # handle_failure raises on the final attempt
        raise AssertionError("unreachable")  # pragma: no cover

    def handle_failure(self, ctx: Context, exc: Exception, attempt: int) -> None:
        """
        Decide what happens after attempt number ``attempt`` failed with ``exc``.

        Returns normally only when another attempt should be made, after the
        backoff delay has elapsed. Otherwise raises the error to surface.
        """
        if isinstance(exc, ContextError):
            raise exc
        err = ctx.err()
        if err is not None:
            raise type(err)(str(err)) from exc

        if self.classifier(exc) is ErrorClass.FATAL:
            logger.error(
                "%s failed with non-retryable error: %s: %s", self.label, type(exc).__name__, exc
            )
            raise NonRetryableError(exc) from exc

        if attempt >= self.max_retries:
            logger.error(
                "%s failed after %d attempt(s): %s: %s",
                self.label,
                attempt + 1,
                type(exc).__name__,
                exc,
            )
            raise as_temporary(exc)

        delay = self.backoff.delay(attempt)
        logger.warning(
            "%s retryable error (attempt %d/%d): %s: %s. Retrying in %.2f seconds...",
            self.label,
            attempt + 1,
            self.max_attempts,
            type(exc).__name__,
            exc,
            delay,
        )
        self.backoff.wait(ctx, delay)


__all__ = [
    "ErrorClass",
    "SupportsStatusCode",
    "classify",
    "as_temporary",
    "Backoff",
    "Retrier",
]

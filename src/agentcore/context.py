"""
Cancellation contexts for blocking calls.

A ``Context`` is passed into every model call, backoff wait and stream read.
Cancelling it (or letting its deadline pass) wakes any thread blocked in
``Context.wait`` immediately and makes ``raise_if_done`` raise the matching
``ContextError``. Children inherit cancellation and the earlier deadline from
their parent.

Example:
    >>> ctx = background().with_timeout(30)
    >>> agent.run(ctx, [UserMessage("hi")])
    >>>
    >>> # from another thread
    >>> ctx.cancel()
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, List, Optional

from .exceptions import ContextCancelledError, ContextError, DeadlineExceededError

logger = logging.getLogger(__name__)


class Context:
    """
    Thread-safe cancellation token with an optional deadline.

    Attributes:
        deadline: Absolute ``time.monotonic()`` value after which the context
            is done, or None for no deadline.
    """

    def __init__(self, parent: Optional["Context"] = None, deadline: Optional[float] = None):
        self._lock = threading.Lock()
        self._event = threading.Event()
        self._err: Optional[ContextError] = None
        self._callbacks: List[Callable[[], None]] = []
        self._children: List[Context] = []
        self._parent = parent
        self._timer: Optional[threading.Timer] = None

        if parent is not None and parent.deadline is not None:
            if deadline is None or parent.deadline < deadline:
                deadline = parent.deadline
        self.deadline = deadline

        if parent is not None:
            parent._add_child(self)

        if self.deadline is not None and not self._event.is_set():
            remaining = self.deadline - time.monotonic()
            if remaining <= 0:
                self._finish(DeadlineExceededError())
            else:
                self._timer = threading.Timer(remaining, self._expire)
                self._timer.daemon = True
                self._timer.start()

    # ------------------------------------------------------------------
    # Derivation
    # ------------------------------------------------------------------

    def with_cancel(self) -> "Context":
        """Return a child context that can be cancelled independently."""
        return Context(parent=self)

    def with_timeout(self, seconds: float) -> "Context":
        """Return a child context that expires ``seconds`` from now."""
        return Context(parent=self, deadline=time.monotonic() + seconds)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def cancel(self) -> None:
        """Cancel this context and every context derived from it."""
        self._finish(ContextCancelledError())

    def done(self) -> bool:
        self._check_deadline()
        return self._event.is_set()

    def err(self) -> Optional[ContextError]:
        """Return the error that ended this context, or None while it is live."""
        self._check_deadline()
        return self._err

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or None when there is none."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def raise_if_done(self) -> None:
        """
        Raise the context error if the context is done.

        Raises:
            ContextCancelledError: If ``cancel()`` was called.
            DeadlineExceededError: If the deadline has passed.
        """
        err = self.err()
        if err is not None:
            raise type(err)(str(err))

    def wait(self, timeout: Optional[float] = None) -> bool:
        """
        Block until the context is done or ``timeout`` seconds elapse.

        Returns:
            True if the context is done, False if the timeout elapsed first.
        """
        finished = self._event.wait(timeout)
        if not finished:
            self._check_deadline()
        return self._event.is_set()

    def on_cancel(self, callback: Callable[[], None]) -> None:
        """
        Register a callback that runs once when the context ends.

        If the context is already done the callback runs immediately. Providers
        use this to close an in-flight network stream.
        """
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)
                return
        self._run_callback(callback)

    def remove_callback(self, callback: Callable[[], None]) -> None:
        """Unregister a callback added with ``on_cancel``. Unknown callbacks are ignored."""
        with self._lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _add_child(self, child: "Context") -> None:
        with self._lock:
            err = self._err
            if err is None:
                self._children.append(child)
        if err is not None:
            child._finish(err)

    def _remove_child(self, child: "Context") -> None:
        with self._lock:
            if child in self._children:
                self._children.remove(child)

    def _expire(self) -> None:
        self._finish(DeadlineExceededError())

    def _check_deadline(self) -> None:
        if (
            self.deadline is not None
            and not self._event.is_set()
            and time.monotonic() >= self.deadline
        ):
            self._finish(DeadlineExceededError())

    def _finish(self, err: ContextError) -> None:
        with self._lock:
            if self._err is not None:
                return
            self._err = err
            callbacks, self._callbacks = self._callbacks, []
            children, self._children = self._children, []
            self._event.set()
        if self._timer is not None:
            self._timer.cancel()
        if self._parent is not None:
            self._parent._remove_child(self)
        for child in children:
            child._finish(type(err)(str(err)))
        for callback in callbacks:
            self._run_callback(callback)

    def _run_callback(self, callback: Callable[[], None]) -> None:
        try:
            callback()
        except Exception:  # noqa: BLE001
            logger.exception("context cancel callback failed")

    def __enter__(self) -> "Context":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.cancel()

    def __repr__(self) -> str:
        state = "live" if self._err is None else type(self._err).__name__
        return f"Context(state={state}, deadline={self.deadline})"


def background() -> Context:
    """Return a fresh root context with no deadline."""
    return Context()


__all__ = ["Context", "background"]

"""
Tests for context.py: cancellation, deadlines and parent/child propagation.
"""

from __future__ import annotations

import threading
import time

import pytest

from agentcore import (
    Context,
    ContextCancelledError,
    ContextError,
    DeadlineExceededError,
    background,
)


class TestCancellation:
    def test_fresh_context_is_live(self):
        ctx = background()
        assert not ctx.done()
        assert ctx.err() is None
        assert ctx.remaining() is None
        ctx.raise_if_done()

    def test_cancel_marks_done(self):
        ctx = background()
        ctx.cancel()
        assert ctx.done()
        assert isinstance(ctx.err(), ContextCancelledError)
        with pytest.raises(ContextCancelledError):
            ctx.raise_if_done()

    def test_cancel_is_idempotent(self):
        ctx = background()
        ctx.cancel()
        first = ctx.err()
        ctx.cancel()
        assert ctx.err() is first

    def test_cancel_wakes_waiting_thread(self):
        ctx = background()
        threading.Timer(0.05, ctx.cancel).start()
        start = time.monotonic()
        assert ctx.wait(5.0) is True
        assert time.monotonic() - start < 1.0

    def test_wait_times_out_on_live_context(self):
        assert background().wait(0.01) is False

    def test_context_manager_cancels_on_exit(self):
        with background() as ctx:
            assert not ctx.done()
        assert ctx.done()


class TestDeadline:
    def test_timeout_expires(self):
        ctx = background().with_timeout(0.05)
        assert ctx.remaining() is not None
        assert ctx.wait(2.0) is True
        assert isinstance(ctx.err(), DeadlineExceededError)

    def test_past_deadline_is_done_immediately(self):
        ctx = Context(deadline=time.monotonic() - 1)
        assert ctx.done()
        with pytest.raises(DeadlineExceededError):
            ctx.raise_if_done()

    def test_child_inherits_earlier_parent_deadline(self):
        parent = background().with_timeout(0.05)
        child = parent.with_timeout(60)
        assert child.deadline == parent.deadline

    def test_deadline_error_is_a_context_error(self):
        assert issubclass(DeadlineExceededError, ContextError)
        assert issubclass(ContextCancelledError, ContextError)


class TestPropagation:
    def test_parent_cancel_reaches_children(self):
        parent = background()
        child = parent.with_cancel()
        grandchild = child.with_timeout(60)
        parent.cancel()
        assert child.done() and grandchild.done()
        assert isinstance(grandchild.err(), ContextCancelledError)

    def test_child_cancel_does_not_reach_parent(self):
        parent = background()
        child = parent.with_cancel()
        child.cancel()
        assert child.done()
        assert not parent.done()

    def test_child_of_cancelled_parent_starts_done(self):
        parent = background()
        parent.cancel()
        assert parent.with_cancel().done()


class TestOnCancel:
    def test_callback_runs_once_on_cancel(self):
        ctx = background()
        calls = []
        ctx.on_cancel(lambda: calls.append(1))
        ctx.cancel()
        ctx.cancel()
        assert calls == [1]

    def test_callback_runs_immediately_when_already_done(self):
        ctx = background()
        ctx.cancel()
        calls = []
        ctx.on_cancel(lambda: calls.append(1))
        assert calls == [1]

    def test_failing_callback_is_logged_not_raised(self, caplog):
        ctx = background()

        def boom():
            raise RuntimeError("close failed")

        ctx.on_cancel(boom)
        with caplog.at_level("ERROR", logger="agentcore.context"):
            ctx.cancel()
        assert ctx.done()
        assert any("callback failed" in r.getMessage() for r in caplog.records)

    def test_removed_callback_does_not_run(self):
        ctx = background()
        calls = []

        def record():
            calls.append(1)

        ctx.on_cancel(record)
        ctx.remove_callback(record)
        ctx.remove_callback(record)
        ctx.cancel()
        assert calls == []

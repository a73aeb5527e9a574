"""
Tests for model.py — the call dispatcher: retry around calls and streams,
stream fallback, reasoning extraction and response recording.
"""

from __future__ import annotations

from typing import Any, List

import pytest

from agentcore import (
    AIMessage,
    ContextCancelledError,
    DummyProvider,
    LocalProvider,
    Model,
    NonRetryableError,
    ProviderError,
    ReplayProvider,
    StreamingNotSupportedError,
    TemporaryError,
    ToolCall,
    UserMessage,
    background,
    load_records,
)
from agentcore.model import split_reasoning
from agentcore.types import StreamDelta

HELLO = [UserMessage("hello")]


class Script:
    """Response function replaying outcomes in order; the last one repeats."""

    def __init__(self, *outcomes: Any):
        self.outcomes = list(outcomes)
        self.calls = 0

    def __call__(self, ctx, messages, tools):
        self.calls += 1
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


class ScriptedStreamProvider:
    """Streaming provider whose every stream() call plays the next script of deltas/errors."""

    name = "scripted"
    supports_streaming = True

    def __init__(self, *scripts: List[Any]):
        self.scripts = list(scripts)
        self.stream_calls = 0
        self.complete_calls = 0
        self.closed = 0

    def complete(self, *, ctx, model, messages, tools, config):
        self.complete_calls += 1
        return AIMessage("from complete")

    def stream(self, *, ctx, model, messages, tools, config):
        self.stream_calls += 1
        script = self.scripts.pop(0)
        try:
            for item in script:
                if isinstance(item, BaseException):
                    raise item
                yield item
        finally:
            self.closed += 1


class NoStreamProvider:
    name = "nostream"
    supports_streaming = True

    def complete(self, *, ctx, model, messages, tools, config):
        return AIMessage("<think>pondered</think>plain answer")

    def stream(self, *, ctx, model, messages, tools, config):
        raise StreamingNotSupportedError("no streaming endpoint")


# ===========================================================================
# call
# ===========================================================================


class TestModelCall:
    def test_name_combines_provider_and_model(self) -> None:
        assert Model(LocalProvider(), "echo").name == "local/echo"

    def test_local_provider_echo(self, ctx) -> None:
        reply = Model(LocalProvider(), "echo").call(ctx, HELLO)
        assert reply.content == "[local provider: echo] hello"

    def test_retries_transient_errors(self, ctx, no_wait_retry) -> None:
        script = Script(
            ProviderError("overloaded", status_code=503),
            ProviderError("rate limited", status_code=429),
            AIMessage("ok"),
        )
        model = Model(DummyProvider(script), "m", retry=no_wait_retry)
        assert model.call(ctx, HELLO).content == "ok"
        assert script.calls == 3

    def test_fatal_error_is_not_retried(self, ctx, no_wait_retry) -> None:
        script = Script(ProviderError("invalid api key", status_code=401))
        model = Model(DummyProvider(script), "m", retry=no_wait_retry)
        with pytest.raises(NonRetryableError) as excinfo:
            model.call(ctx, HELLO)
        assert script.calls == 1
        assert excinfo.value.status_code == 401

    def test_exhaustion_makes_retries_plus_one_attempts(self, ctx, no_wait_retry) -> None:
        script = Script(ProviderError("unavailable", status_code=503))
        model = Model(DummyProvider(script), "m", retry=no_wait_retry)
        with pytest.raises(TemporaryError):
            model.call(ctx, HELLO)
        assert script.calls == no_wait_retry.max_retries + 1

    def test_config_max_retries_overrides_policy(self, ctx, no_wait_retry) -> None:
        script = Script(ProviderError("unavailable", status_code=503))
        model = Model(DummyProvider(script), "m", retry=no_wait_retry).with_config(max_retries=0)
        assert model.max_retries == 0
        with pytest.raises(TemporaryError):
            model.call(ctx, HELLO)
        assert script.calls == 1

    def test_cancelled_context_skips_provider(self, no_wait_retry) -> None:
        ctx = background()
        ctx.cancel()
        script = Script(AIMessage("never"))
        with pytest.raises(ContextCancelledError):
            Model(DummyProvider(script), "m", retry=no_wait_retry).call(ctx, HELLO)
        assert script.calls == 0

    def test_inline_think_block_moves_to_reasoning(self, ctx) -> None:
        script = Script(AIMessage("<think>check units</think>\n42 metres"))
        reply = Model(DummyProvider(script), "m").call(ctx, HELLO)
        assert reply.content == "42 metres"
        assert reply.reasoning == "check units"


class TestSplitReasoning:
    def test_existing_reasoning_is_kept(self) -> None:
        message = AIMessage("<think>x</think>y", reasoning="native")
        assert split_reasoning(message) is message

    def test_plain_content_is_untouched(self) -> None:
        message = AIMessage("no markers here")
        assert split_reasoning(message) is message

    def test_unterminated_block_is_untouched(self) -> None:
        message = AIMessage("<think>still going")
        assert split_reasoning(message) is message


class TestWithConfig:
    def test_returns_new_model_and_leaves_original(self, tmp_path) -> None:
        model = Model(LocalProvider(), "echo", record_filename=tmp_path / "rec.jsonl")
        warm = model.with_config(temperature=0.7)
        assert warm is not model
        assert warm.config.temperature == 0.7
        assert model.config.temperature is None
        assert warm.record_filename == model.record_filename


# ===========================================================================
# streaming
# ===========================================================================


class TestModelStream:
    def test_chunks_concatenate_to_final_message(self, ctx) -> None:
        script = Script(AIMessage("hello streaming world", reasoning="warm up"))
        seen = []
        reply = Model(DummyProvider(script), "m").stream(ctx, HELLO, on_chunk=seen.append)

        assert reply.content == "".join(c.content for c in seen) == "hello streaming world"
        assert reply.reasoning == "".join(c.reasoning for c in seen) == "warm up"
        assert seen[0].reasoning == "warm up"

    def test_think_markers_split_across_deltas(self, ctx) -> None:
        provider = ScriptedStreamProvider(
            [StreamDelta(text="<thi"), StreamDelta(text="nk>r</th"), StreamDelta(text="ink>a")]
        )
        seen = []
        reply = Model(provider, "m").stream(ctx, HELLO, on_chunk=seen.append)
        assert [(c.content, c.reasoning) for c in seen] == [("", "r"), ("a", "")]
        assert reply.content == "a"

    def test_retry_before_first_chunk(self, ctx, no_wait_retry) -> None:
        provider = ScriptedStreamProvider(
            [ConnectionResetError("connection reset by peer")],
            [StreamDelta(text="second try")],
        )
        seen = []
        reply = Model(provider, "m", retry=no_wait_retry).stream(ctx, HELLO, on_chunk=seen.append)
        assert reply.content == "second try"
        assert provider.stream_calls == 2
        assert [c.content for c in seen] == ["second try"]

    def test_transient_failure_after_chunk_is_not_retried(self, ctx, no_wait_retry) -> None:
        provider = ScriptedStreamProvider(
            [StreamDelta(text="partial"), ConnectionResetError("connection reset")],
            [StreamDelta(text="never used")],
        )
        seen = []
        with pytest.raises(TemporaryError):
            Model(provider, "m", retry=no_wait_retry).stream(ctx, HELLO, on_chunk=seen.append)
        assert provider.stream_calls == 1
        assert [c.content for c in seen] == ["partial"]

    def test_fatal_failure_after_chunk(self, ctx, no_wait_retry) -> None:
        provider = ScriptedStreamProvider([StreamDelta(text="partial"), ValueError("bad frame")])
        with pytest.raises(NonRetryableError):
            Model(provider, "m", retry=no_wait_retry).stream(ctx, HELLO)
        assert provider.stream_calls == 1

    def test_callback_error_closes_provider_stream(self, ctx) -> None:
        provider = ScriptedStreamProvider([StreamDelta(text="a"), StreamDelta(text="b")])

        def on_chunk(chunk):
            raise RuntimeError("display closed")

        with pytest.raises(RuntimeError, match="display closed"):
            Model(provider, "m").stream(ctx, HELLO, on_chunk=on_chunk)
        assert provider.closed == 1
        assert provider.stream_calls == 1

    def test_cancel_mid_stream(self, no_wait_retry) -> None:
        ctx = background()
        provider = ScriptedStreamProvider([StreamDelta(text="a"), StreamDelta(text="b")])

        def on_chunk(chunk):
            ctx.cancel()

        with pytest.raises(ContextCancelledError):
            Model(provider, "m", retry=no_wait_retry).stream(ctx, HELLO, on_chunk=on_chunk)
        assert provider.stream_calls == 1

    def test_non_streaming_provider_falls_back_to_call(self, ctx) -> None:
        script = Script(AIMessage("<think>hmm</think>whole answer"))
        seen = []
        reply = Model(DummyProvider(script, supports_streaming=False), "m").stream(
            ctx, HELLO, on_chunk=seen.append
        )
        assert [(c.content, c.reasoning) for c in seen] == [("", "hmm"), ("whole answer", "")]
        assert reply.content == "whole answer"

    def test_streaming_not_supported_falls_back_to_call(self, ctx) -> None:
        seen = []
        reply = Model(NoStreamProvider(), "m").stream(ctx, HELLO, on_chunk=seen.append)
        assert reply.content == "plain answer"
        assert reply.reasoning == "pondered"
        assert [c.content for c in seen if c.content] == ["plain answer"]

    def test_stream_tool_calls_are_reassembled(self, ctx) -> None:
        script = Script(AIMessage("", tool_calls=(ToolCall("c1", "echo", '{"text": "x"}'),)))
        reply = Model(DummyProvider(script), "m").stream(ctx, HELLO)
        assert [(c.id, c.name, c.arguments) for c in reply.tool_calls] == [
            ("c1", "echo", '{"text": "x"}')
        ]


# ===========================================================================
# recording and replay
# ===========================================================================


class TestRecordReplay:
    def test_round_trip(self, ctx, tmp_path, no_wait_retry) -> None:
        path = tmp_path / "calls.jsonl"
        script = Script(
            AIMessage("first"),
            AIMessage("second"),
            ProviderError("invalid api key", status_code=401),
        )
        recorded = Model(DummyProvider(script), "m", retry=no_wait_retry, record_filename=path)
        first = recorded.call(ctx, HELLO)
        second = recorded.call(ctx, HELLO)
        with pytest.raises(NonRetryableError):
            recorded.call(ctx, HELLO)

        records = load_records(path)
        assert len(records) == 3
        assert records[2].error == "invalid api key"
        assert records[2].message is None

        replay = Model(ReplayProvider.from_file(path), "m", retry=no_wait_retry)
        assert replay.call(ctx, HELLO) == first
        assert replay.call(ctx, HELLO) == second
        with pytest.raises(NonRetryableError, match="invalid api key"):
            replay.call(ctx, HELLO)
        exhausted = replay.call(ctx, HELLO)
        assert exhausted.content == "No more recorded responses available (requested 4, have 3)"

    def test_retried_attempts_are_not_recorded(self, ctx, tmp_path, no_wait_retry) -> None:
        path = tmp_path / "calls.jsonl"
        script = Script(ProviderError("overloaded", status_code=503), AIMessage("ok"))
        Model(DummyProvider(script), "m", retry=no_wait_retry, record_filename=path).call(
            ctx, HELLO
        )
        assert [r.message.content for r in load_records(path)] == ["ok"]

    def test_streamed_response_is_recorded(self, ctx, tmp_path) -> None:
        path = tmp_path / "calls.jsonl"
        script = Script(AIMessage("streamed"))
        Model(DummyProvider(script), "m", record_filename=path).stream(ctx, HELLO)
        (record,) = load_records(path)
        assert record.message.content == "streamed"

    def test_invalid_record_line(self, tmp_path) -> None:
        path = tmp_path / "broken.jsonl"
        path.write_text("{not json}\n")
        with pytest.raises(ValueError, match="invalid record"):
            load_records(path)

"""
Tests for observability hooks.

Tests cover:
- Lifecycle, iteration, model and tool hooks, with their arguments
- Hook call order across a tool round trip
- on_error for failed runs and for the iteration limit
- Hook error handling (hooks should not break execution)
"""

import pytest

from agentcore import (
    Agent,
    AgentConfig,
    AIMessage,
    DummyProvider,
    LocalProvider,
    LoopState,
    Model,
    NonRetryableError,
    ProviderError,
    ToolCall,
    ToolLoopExceededError,
    ToolMessage,
    ToolRegistry,
    UserMessage,
    background,
)

# =============================================================================
# Helper Classes
# =============================================================================


class HookRecorder:
    """Records all hook calls for testing."""

    def __init__(self):
        self.calls = []

    def hooks(self, *names):
        return {name: self._recorder(name) for name in names}

    def _recorder(self, hook_name):
        def record(*args, **kwargs):
            self.calls.append({"hook": hook_name, "args": args, "kwargs": kwargs})

        return record

    def get_calls(self, hook_name):
        return [c for c in self.calls if c["hook"] == hook_name]

    def order(self):
        return [c["hook"] for c in self.calls]


ALL_HOOKS = (
    "on_agent_start",
    "on_agent_end",
    "on_iteration_start",
    "on_iteration_end",
    "on_llm_start",
    "on_llm_end",
    "on_tool_start",
    "on_tool_end",
    "on_error",
)


def echo_round_trip(ctx, messages, tools):
    if isinstance(messages[-1], ToolMessage):
        return AIMessage("done")
    return AIMessage("", tool_calls=(ToolCall("c1", "echo", '{"text": "hi"}'),))


def _agent(response_fn, hooks, max_iterations=32, retry=None):
    registry = ToolRegistry()
    registry.add(
        "echo",
        "Echo",
        {"type": "object", "properties": {"text": {"type": "string"}}},
        lambda args: args.get("text", ""),
    )
    model = Model(DummyProvider(response_fn), "dummy", retry=retry)
    return Agent(model, registry, AgentConfig(max_iterations=max_iterations, hooks=hooks))


# =============================================================================
# Call order and arguments
# =============================================================================


class TestHookOrder:
    def test_round_trip_order(self):
        recorder = HookRecorder()
        _agent(echo_round_trip, recorder.hooks(*ALL_HOOKS)).run(background(), [UserMessage("go")])

        assert recorder.order() == [
            "on_agent_start",
            "on_iteration_start",
            "on_llm_start",
            "on_llm_end",
            "on_tool_start",
            "on_tool_end",
            "on_iteration_end",
            "on_iteration_start",
            "on_llm_start",
            "on_llm_end",
            "on_iteration_end",
            "on_agent_end",
        ]


class TestHookArguments:
    def test_llm_start_gets_messages_and_model_name(self):
        recorder = HookRecorder()
        agent = Agent(
            Model(LocalProvider(), "echo"),
            config=AgentConfig(hooks=recorder.hooks("on_llm_start")),
        )
        agent.run(background(), [UserMessage("hello")])

        (call,) = recorder.get_calls("on_llm_start")
        messages, model_name = call["args"]
        assert messages == [UserMessage("hello")]
        assert model_name == "local/echo"

    def test_tool_hooks_get_name_args_result_and_duration(self):
        recorder = HookRecorder()
        _agent(echo_round_trip, recorder.hooks("on_tool_start", "on_tool_end")).run(
            background(), [UserMessage("go")]
        )

        (start,) = recorder.get_calls("on_tool_start")
        assert start["args"] == ("echo", '{"text": "hi"}')

        (end,) = recorder.get_calls("on_tool_end")
        name, message, duration = end["args"]
        assert name == "echo"
        assert message.content == "hi"
        assert duration >= 0

    def test_agent_end_gets_result(self):
        recorder = HookRecorder()
        _agent(echo_round_trip, recorder.hooks("on_agent_end")).run(
            background(), [UserMessage("go")]
        )
        (call,) = recorder.get_calls("on_agent_end")
        (result,) = call["args"]
        assert result.content == "done"
        assert result.state is LoopState.DONE

    def test_iteration_numbers_start_at_one(self):
        recorder = HookRecorder()
        _agent(echo_round_trip, recorder.hooks("on_iteration_start")).run(
            background(), [UserMessage("go")]
        )
        assert [c["args"][0] for c in recorder.get_calls("on_iteration_start")] == [1, 2]


# =============================================================================
# on_error
# =============================================================================


class TestErrorHook:
    def test_provider_failure(self, no_wait_retry):
        recorder = HookRecorder()

        def fail(ctx, messages, tools):
            raise ProviderError("bad request", status_code=400)

        agent = _agent(fail, recorder.hooks("on_error", "on_agent_end"), retry=no_wait_retry)
        with pytest.raises(NonRetryableError):
            agent.run(background(), [UserMessage("go")])

        (call,) = recorder.get_calls("on_error")
        error, context = call["args"]
        assert isinstance(error, NonRetryableError)
        assert context["state"] is LoopState.FAILED
        assert context["iteration"] == 1
        assert recorder.get_calls("on_agent_end") == []

    def test_loop_limit(self):
        recorder = HookRecorder()

        def always_tool(ctx, messages, tools):
            return AIMessage("", tool_calls=(ToolCall.new("echo", {"text": "x"}),))

        agent = _agent(always_tool, recorder.hooks("on_error"), max_iterations=2)
        with pytest.raises(ToolLoopExceededError):
            agent.run(background(), [UserMessage("go")])

        (call,) = recorder.get_calls("on_error")
        assert call["args"][1]["state"] is LoopState.LOOP_EXCEEDED


# =============================================================================
# Hook failures
# =============================================================================


class TestHookErrorHandling:
    def test_hook_exceptions_are_logged_not_raised(self, caplog):
        def broken(*args):
            raise RuntimeError("hook exploded")

        hooks = {name: broken for name in ALL_HOOKS}
        with caplog.at_level("ERROR", logger="agentcore.agent.core"):
            result = _agent(echo_round_trip, hooks).run(background(), [UserMessage("go")])

        assert result.content == "done"
        assert any("on_tool_start" in r.getMessage() for r in caplog.records)

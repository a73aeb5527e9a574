"""
Provider-agnostic agent loop: model calls alternating with tool execution.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, List, Optional, Union

from ..context import Context, background
from ..exceptions import ToolLoopExceededError
from ..model import Model
from ..streaming import ChunkCallback
from ..tools import Tool, ToolRegistry
from ..types import AIMessage, Message, ToolCall, UserMessage
from ..usage import AgentUsage
from .config import AgentConfig
from .transcript import Transcript

logger = logging.getLogger(__name__)


class LoopState(str, Enum):
    CALLING = "calling"
    DISPATCHING = "dispatching"
    DONE = "done"
    LOOP_EXCEEDED = "loop_exceeded"
    FAILED = "failed"


@dataclass
class AgentResult:
    """
    Outcome of a completed run.

    Attributes:
        message: The final assistant message, exactly as the model returned it.
        transcript: Every message of the run, including the caller's input.
        iterations: Number of model calls made.
        tool_calls: Every tool call the model requested, in order.
        usage: Token usage summed over the run.
        state: Terminal loop state (always DONE for a returned result).
    """

    message: AIMessage
    transcript: Transcript
    iterations: int
    tool_calls: List[ToolCall] = field(default_factory=list)
    usage: AgentUsage = field(default_factory=AgentUsage)
    state: LoopState = LoopState.DONE

    @property
    def content(self) -> str:
        return self.message.content

    @property
    def reasoning(self) -> str:
        return self.message.reasoning


class Agent:
    """
    Runs a model with tools until it answers without requesting a tool.

    Each iteration calls the model with the full transcript, appends the
    assistant message, and if it requested tools, dispatches every call in
    order and appends each result. The loop is bounded by
    ``AgentConfig.max_iterations``.

    An ``Agent`` keeps no per-run state, so one instance can serve concurrent
    runs on separate threads, each with its own transcript.

    Example:
        >>> registry = ToolRegistry()
        >>>
        >>> @registry.tool(description="Echo the text back")
        ... def echo(text: str) -> str:
        ...     return text
        >>>
        >>> agent = Agent(Model(OpenAIProvider(), "gpt-4o"), registry)
        >>> result = agent.run(background(), [UserMessage("say hello via echo")])
        >>> print(result.content)
    """

    def __init__(
        self,
        model: Model,
        tools: Optional[Union[ToolRegistry, Iterable[Tool]]] = None,
        config: Optional[AgentConfig] = None,
    ):
        self.model = model
        if isinstance(tools, ToolRegistry):
            self.tools = tools
        else:
            self.tools = ToolRegistry(tools)
        self.config = config or AgentConfig()

    def _call_hook(self, hook_name: str, *args: Any, **kwargs: Any) -> None:
        """Call a hook if it exists. Hook failures are logged and never end the run."""
        if not self.config.hooks or hook_name not in self.config.hooks:
            return
        try:
            self.config.hooks[hook_name](*args, **kwargs)
        except Exception:  # noqa: BLE001
            logger.exception("hook %r failed", hook_name)

    def _call_model(
        self,
        ctx: Context,
        transcript: Transcript,
        on_chunk: Optional[ChunkCallback],
    ) -> AIMessage:
        messages = transcript.messages()
        tools = self.tools.list_tools()
        self._call_hook("on_llm_start", messages, self.model.name)
        if on_chunk is not None or self.model.config.stream:
            response = self.model.stream(ctx, messages, tools, on_chunk)
        else:
            response = self.model.call(ctx, messages, tools)
        self._call_hook("on_llm_end", response, response.usage)
        return response

    def run(
        self,
        ctx: Context,
        messages: Union[Transcript, Iterable[Message]],
        on_chunk: Optional[ChunkCallback] = None,
    ) -> AgentResult:
        """
        Execute the agent loop over ``messages``.

        A ``Transcript`` passed in is appended to in place; any other iterable
        is copied into a new one.

        Args:
            ctx: Cancellation context for the whole run.
            messages: Conversation so far (typically ending with a user message).
            on_chunk: When given, every model call streams and each fragment
                is delivered here in order.

        Returns:
            AgentResult with the final assistant message and the transcript.

        Raises:
            ToolLoopExceededError: If ``max_iterations`` model calls all requested tools.
            NonRetryableError: On a fatal provider error.
            TemporaryError: When a model call exhausted its retries.
            ContextError: When ``ctx`` is cancelled or its deadline passes.
        """
        transcript = messages if isinstance(messages, Transcript) else Transcript(messages)
        usage = AgentUsage()
        all_tool_calls: List[ToolCall] = []
        state = LoopState.CALLING
        iteration = 0

        self._call_hook("on_agent_start", transcript)

        try:
            while iteration < self.config.max_iterations:
                iteration += 1
                state = LoopState.CALLING
                self._call_hook("on_iteration_start", iteration, transcript)
                logger.debug("%s iteration %d", self.model.name, iteration)

                response = self._call_model(ctx, transcript, on_chunk)
                usage.add_usage(response.usage)
                transcript.append(response)

                if not response.tool_calls:
                    state = LoopState.DONE
                    self._call_hook("on_iteration_end", iteration, response)
                    result = AgentResult(
                        message=response,
                        transcript=transcript,
                        iterations=iteration,
                        tool_calls=all_tool_calls,
                        usage=usage,
                        state=state,
                    )
                    self._call_hook("on_agent_end", result)
                    return result

                state = LoopState.DISPATCHING
                for tool_call in response.tool_calls:
                    ctx.raise_if_done()
                    all_tool_calls.append(tool_call)
                    usage.add_tool_call(tool_call.name)
                    logger.debug(
                        "iteration %d: tool=%s args=%s",
                        iteration,
                        tool_call.name,
                        tool_call.arguments,
                    )

                    start_time = time.time()
                    self._call_hook("on_tool_start", tool_call.name, tool_call.arguments)
                    tool_message = self.tools.execute(
                        tool_call, skip_unknown=self.config.skip_unknown_tools
                    )
                    self._call_hook(
                        "on_tool_end", tool_call.name, tool_message, time.time() - start_time
                    )
                    if tool_message is not None:
                        transcript.append(tool_message)

                self._call_hook("on_iteration_end", iteration, response)

            state = LoopState.LOOP_EXCEEDED
            logger.warning(
                "%s: tool loop limit exceeded after %d iterations",
                self.model.name,
                self.config.max_iterations,
            )
            raise ToolLoopExceededError(self.config.max_iterations, transcript)
        except Exception as exc:
            if state is not LoopState.LOOP_EXCEEDED:
                state = LoopState.FAILED
            self._call_hook(
                "on_error",
                exc,
                {"iteration": iteration, "state": state, "transcript": transcript},
            )
            raise

    def ask(self, prompt: str, ctx: Optional[Context] = None) -> AgentResult:
        """Run the loop for a single user prompt."""
        return self.run(ctx or background(), [UserMessage(prompt)])


__all__ = ["Agent", "AgentResult", "LoopState"]

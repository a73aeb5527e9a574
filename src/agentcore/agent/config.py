"""
Configuration options for the agent.
"""

from dataclasses import dataclass
from typing import Callable, Dict, Optional

# Hook type definitions
HookCallable = Callable[..., None]
Hooks = Dict[str, HookCallable]

DEFAULT_MAX_ITERATIONS = 32


@dataclass
class AgentConfig:
    """
    Configuration options for customizing agent loop behavior.

    Model tunables (temperature, retries, streaming) live on the ``Model``'s
    ``CallConfig``; this covers only the loop itself.

    Attributes:
        max_iterations: Maximum model calls in one run before the loop gives up
            with ToolLoopExceededError. Default: 32.
        skip_unknown_tools: When True, calls to tools that are not registered
            are dropped without a transcript entry. When False (the default),
            an error tool message listing the available tools is appended so
            the model can correct itself.
        hooks: Optional dict of lifecycle hooks for observability. Default: None.
               Available hooks:
               - 'on_agent_start': Called at start of run with (transcript,)
               - 'on_agent_end': Called at end with (result,)
               - 'on_iteration_start': Called at start of each iteration with (iteration_num, transcript)
               - 'on_iteration_end': Called at end of each iteration with (iteration_num, response)
               - 'on_llm_start': Called before the model call with (messages, model_name)
               - 'on_llm_end': Called after the model call with (response, usage)
               - 'on_tool_start': Called before tool execution with (tool_name, tool_args)
               - 'on_tool_end': Called after tool execution with (tool_name, tool_message, duration)
               - 'on_error': Called on any error ending the run with (error, context)
    """

    max_iterations: int = DEFAULT_MAX_ITERATIONS
    skip_unknown_tools: bool = False
    hooks: Optional[Hooks] = None

    def __post_init__(self) -> None:
        if self.max_iterations < 1:
            raise ValueError(f"max_iterations must be >= 1, got {self.max_iterations}")

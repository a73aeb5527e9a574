"""
Observability Hooks — lifecycle callbacks and tool validation at registration time.

Uses OpenAI when OPENAI_API_KEY is set, otherwise a scripted DummyProvider
that calls both tools once and then answers.

Prerequisites: None (OPENAI_API_KEY optional)
Run: python examples/12_observability_hooks.py
"""

import time
from typing import Any, Dict

from agentcore import (
    Agent,
    AgentConfig,
    AIMessage,
    Model,
    ProviderConfigurationError,
    Tool,
    ToolCall,
    ToolMessage,
    ToolParameter,
    ToolValidationError,
    UserMessage,
    background,
    tool,
)
from agentcore.providers.openai_provider import OpenAIProvider
from agentcore.providers.stubs import DummyProvider


def scripted(ctx, messages, tools) -> AIMessage:
    if isinstance(messages[-1], ToolMessage):
        return AIMessage("2+2 is 4, and there are plenty of Python tutorials online.")
    return AIMessage(
        "",
        tool_calls=(
            ToolCall.new("calculate", {"a": 2, "b": 2}),
            ToolCall.new("search", {"query": "Python tutorials"}),
        ),
    )


try:
    model = Model(OpenAIProvider(default_model="gpt-4o-mini"), "gpt-4o-mini")
    print("Using OpenAI provider (gpt-4o-mini)")
except ProviderConfigurationError:
    model = Model(DummyProvider(scripted), "scripted")
    print("Using DummyProvider (no API calls)")


# =============================================================================
# Feature 1: Tool Validation at Registration
# =============================================================================


def demo_tool_validation() -> None:
    """Demonstrate tool validation catching errors at registration time."""
    print("\n" + "=" * 70)
    print("FEATURE 1: TOOL VALIDATION AT REGISTRATION")
    print("=" * 70)

    print("\n✅ Example 1: Valid tool definition")

    @tool(description="Calculate the sum of two numbers")
    def add(a: int, b: int) -> str:
        return str(a + b)

    print(f"   Tool '{add.name}' registered successfully!")
    print(f"   Parameters: {[p.name for p in add.parameters]}")

    print("\n❌ Example 2: Empty tool name")
    try:
        Tool(name="", description="A tool", parameters=[], function=lambda: "result")
    except ToolValidationError as e:
        print(f"   ✓ Validation caught the error: {e.issue}")

    print("\n❌ Example 3: Duplicate parameter names")
    try:
        Tool(
            name="bad_tool",
            description="A tool with duplicate params",
            parameters=[
                ToolParameter(name="value", param_type=int, description="First value"),
                ToolParameter(name="value", param_type=int, description="Second value"),
            ],
            function=lambda value: str(value),
        )
    except ToolValidationError as e:
        print(f"   ✓ Validation caught the error: {e.issue}")

    print("\n❌ Example 4: Parameter not in function signature")
    try:
        Tool(
            name="mismatched_tool",
            description="A tool with mismatched params",
            parameters=[
                ToolParameter(name="nonexistent_param", param_type=str, description="Missing"),
            ],
            function=lambda: "result",
        )
    except ToolValidationError as e:
        print(f"   ✓ Validation caught the error: {e.issue}")


# =============================================================================
# Feature 2: Observability Hooks
# =============================================================================


def demo_observability_hooks() -> None:
    """Demonstrate observability hooks for monitoring and debugging."""
    print("\n" + "=" * 70)
    print("FEATURE 2: OBSERVABILITY HOOKS")
    print("=" * 70)

    @tool(description="Search for information")
    def search(query: str) -> str:
        time.sleep(0.1)
        return f"Found results for: {query}"

    @tool(description="Add two numbers")
    def calculate(a: float, b: float) -> str:
        time.sleep(0.05)
        return f"Result: {a + b}"

    metrics: Dict[str, Any] = {"iterations": 0, "llm_calls": 0, "tool_calls": []}

    def on_agent_start(transcript: Any) -> None:
        print(f"\n🚀 Agent started with {len(transcript)} message(s)")

    def on_iteration_start(iteration: int, transcript: Any) -> None:
        metrics["iterations"] = iteration
        print(f"\n🔄 Iteration {iteration} starting...")

    def on_llm_start(messages: Any, model_name: str) -> None:
        metrics["llm_calls"] += 1
        print(f"   🤖 LLM call #{metrics['llm_calls']} to {model_name}")

    def on_llm_end(response: AIMessage, usage: Any) -> None:
        print(f"   📊 Tokens: {usage.total_tokens}, tool calls: {len(response.tool_calls)}")

    def on_tool_start(tool_name: str, tool_args: str) -> None:
        print(f"   🔧 Calling tool: {tool_name} {tool_args}")

    def on_tool_end(tool_name: str, message: Any, duration: float) -> None:
        metrics["tool_calls"].append({"name": tool_name, "duration": duration})
        preview = message.content[:50] if message is not None else "<skipped>"
        print(f"   ✅ {tool_name} finished in {duration:.3f}s: {preview}")

    def on_agent_end(result: Any) -> None:
        print("\n✨ Agent finished!")
        print(f"   - Iterations: {result.iterations}")
        print(f"   - LLM calls: {metrics['llm_calls']}")
        print(f"   - Tokens: {result.usage.total_tokens}")
        for call in metrics["tool_calls"]:
            print(f"     - {call['name']}: {call['duration']:.3f}s")

    def on_error(error: Exception, context: Dict[str, Any]) -> None:
        print(f"\n💥 {type(error).__name__} in iteration {context['iteration']}: {error}")

    agent = Agent(
        model,
        [search, calculate],
        AgentConfig(
            max_iterations=5,
            hooks={
                "on_agent_start": on_agent_start,
                "on_agent_end": on_agent_end,
                "on_iteration_start": on_iteration_start,
                "on_llm_start": on_llm_start,
                "on_llm_end": on_llm_end,
                "on_tool_start": on_tool_start,
                "on_tool_end": on_tool_end,
                "on_error": on_error,
            },
        ),
    )

    print("\n📝 User query: 'What is 2+2 and search for Python tutorials'")
    result = agent.run(
        background().with_timeout(120),
        [UserMessage("What is 2+2? Also search for Python tutorials.")],
    )
    print(f"\nResponse: {result.content}")


if __name__ == "__main__":
    print("=" * 70)
    print(" agentcore - Tool Validation & Observability Hooks Demo")
    print("=" * 70)

    demo_tool_validation()
    demo_observability_hooks()

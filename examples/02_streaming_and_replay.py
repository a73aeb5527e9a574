"""
Streaming, think tags and record/replay — all offline.

A DummyProvider plays a model that first asks for a tool and then answers
with its reasoning wrapped in <think> tags. The agent streams every
fragment to the terminal, reasoning dimmed, and records each model response
to a JSONL file. A second agent then replays that file without a provider.

Prerequisites: None
Run: python examples/02_streaming_and_replay.py
"""

import tempfile
from pathlib import Path
from typing import Sequence

from agentcore import (
    Agent,
    AIMessage,
    CallConfig,
    Message,
    Model,
    StreamChunk,
    ToolCall,
    ToolMessage,
    ToolRegistry,
    UserMessage,
    background,
)
from agentcore.providers.stubs import DummyProvider, ReplayProvider

registry = ToolRegistry()


@registry.tool(description="Current temperature in a city, in Celsius")
def temperature(city: str) -> str:
    return {"paris": "18", "oslo": "7"}.get(city.lower(), "unknown")


def scripted_model(ctx, messages: Sequence[Message], tools) -> AIMessage:
    if not isinstance(messages[-1], ToolMessage):
        call = ToolCall.new("temperature", {"city": "Oslo"})
        return AIMessage("Let me check.", tool_calls=(call,))
    reading = messages[-1].content
    return AIMessage(
        f"<think>The tool said {reading} degrees, that is chilly.</think>"
        f"It is {reading} degrees in Oslo, bring a jacket."
    )


def print_chunk(chunk: StreamChunk) -> None:
    if chunk.reasoning:
        print(f"\033[2m{chunk.reasoning}\033[0m", end="", flush=True)
    else:
        print(chunk.content, end="", flush=True)


def main() -> None:
    record_file = Path(tempfile.mkdtemp()) / "responses.jsonl"
    model = Model(
        DummyProvider(scripted_model),
        "scripted",
        config=CallConfig().with_stream(True),
        record_filename=record_file,
    )

    print("=== Live run (streaming) ===")
    result = Agent(model, registry).run(
        background(), [UserMessage("What's the weather in Oslo?")], on_chunk=print_chunk
    )
    print(f"\n\nAnswer: {result.content}")
    print(f"Reasoning: {result.reasoning}")
    print(f"Tool calls: {[call.name for call in result.tool_calls]}")
    print(f"Recorded to: {record_file}")

    print("\n=== Replay ===")
    replay = Model(ReplayProvider.from_file(record_file), "scripted")
    replayed = Agent(replay, registry).ask("What's the weather in Oslo?")
    print(f"Answer: {replayed.content}")
    print(f"Iterations: {replayed.iterations}")


if __name__ == "__main__":
    main()

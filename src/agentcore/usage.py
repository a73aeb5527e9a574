"""
Token usage tracking for model calls.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class UsageStats:
    """
    Token usage reported for a single model call.

    Attributes:
        prompt_tokens: Number of tokens in the prompt/input.
        completion_tokens: Number of tokens in the completion/output.
        total_tokens: Total tokens used (prompt + completion).
        reasoning_tokens: Completion tokens spent on reasoning, when reported.
        cached_tokens: Prompt tokens served from the provider cache, when reported.
        model: Model name used for this call.
        provider: Provider name (openai, local, dummy, ...).
    """

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    reasoning_tokens: int = 0
    cached_tokens: int = 0
    model: str = ""
    provider: str = ""

    def __post_init__(self) -> None:
        """Ensure total_tokens is consistent."""
        if self.total_tokens == 0 and (self.prompt_tokens or self.completion_tokens):
            self.total_tokens = self.prompt_tokens + self.completion_tokens

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "UsageStats":
        if not data:
            return cls()
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**known)


@dataclass
class AgentUsage:
    """
    Aggregates usage stats across the model calls of one agent run.

    Attributes:
        total_prompt_tokens: Cumulative prompt tokens across all calls.
        total_completion_tokens: Cumulative completion tokens across all calls.
        total_tokens: Cumulative total tokens across all calls.
        tool_usage: Dictionary mapping tool names to call counts.
        iterations: List of UsageStats for each model call.
    """

    total_prompt_tokens: int = 0
    total_completion_tokens: int = 0
    total_tokens: int = 0
    tool_usage: Dict[str, int] = field(default_factory=dict)
    iterations: List[UsageStats] = field(default_factory=list)

    def add_usage(self, stats: UsageStats) -> None:
        """Add usage stats from a single model call."""
        self.total_prompt_tokens += stats.prompt_tokens
        self.total_completion_tokens += stats.completion_tokens
        self.total_tokens += stats.total_tokens
        self.iterations.append(stats)

    def add_tool_call(self, tool_name: str) -> None:
        self.tool_usage[tool_name] = self.tool_usage.get(tool_name, 0) + 1

    def to_dict(self) -> Dict[str, Any]:
        """
        Serialize to dictionary for logging/display.

        Returns:
            Dictionary containing all usage statistics.
        """
        return {
            "total_tokens": self.total_tokens,
            "total_prompt_tokens": self.total_prompt_tokens,
            "total_completion_tokens": self.total_completion_tokens,
            "tool_usage": self.tool_usage,
            "iterations": len(self.iterations),
        }

    def __str__(self) -> str:
        lines = [
            "\n" + "=" * 60,
            "📊 Usage Summary",
            "=" * 60,
            f"Total Tokens: {self.total_tokens:,}",
            f"  - Prompt: {self.total_prompt_tokens:,}",
            f"  - Completion: {self.total_completion_tokens:,}",
            f"Model Calls: {len(self.iterations)}",
        ]

        if self.tool_usage:
            lines.append("\nTool Usage:")
            for tool_name, count in sorted(self.tool_usage.items(), key=lambda x: -x[1]):
                lines.append(f"  - {tool_name}: {count} calls")

        lines.append("=" * 60 + "\n")
        return "\n".join(lines)


__all__ = ["UsageStats", "AgentUsage"]

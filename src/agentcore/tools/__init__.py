"""
Tools package exports.
"""

from .base import ParamMetadata, Tool, ToolContent, ToolParameter, ToolResult
from .decorators import tool
from .registry import RegistrationResult, ToolRegistry, format_tool_result

__all__ = [
    "Tool",
    "ToolContent",
    "ToolParameter",
    "ToolResult",
    "ToolRegistry",
    "RegistrationResult",
    "format_tool_result",
    "tool",
    "ParamMetadata",
]

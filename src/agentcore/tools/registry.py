"""
Registry for managing and dispatching tools.

``ToolRegistry.execute`` is the dispatch table used by the agent loop: it maps
a model-issued ``ToolCall`` to a ``ToolMessage`` and never raises for
tool-level failures. Unknown tools, malformed arguments, validation errors
and exceptions inside the tool all come back as error messages the model can
read and react to.
"""

from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional

from ..exceptions import ToolExecutionError, ToolValidationError
from ..types import ToolCall, ToolMessage
from .base import JsonSchema, ParamMetadata, Tool, ToolResult
from .decorators import tool

logger = logging.getLogger(__name__)


class RegistrationResult(str, Enum):
    OK = "ok"
    ALREADY_EXISTS = "already_exists"
    REPLACED = "replaced"


def format_tool_result(result: ToolResult) -> str:
    """
    Render a tool result as transcript text.

    Text segments are kept as-is, image segments become ``[image]`` and any
    other type is prefixed with ``[type]``. Segments are joined with newlines.
    """
    lines: List[str] = []
    for part in result.content:
        if part.type == "text":
            lines.append(str(part.content))
        elif part.type == "image":
            lines.append("[image]")
        else:
            lines.append(f"[{part.type}] {part.content}")
    return "\n".join(lines)


class ToolRegistry:
    """
    Named collection of tools, owned by one agent or shared between several.

    Mutation and lookup are guarded by a re-entrant lock, so tools can be
    registered from another thread while a run is dispatching.
    """

    def __init__(self, tools: Optional[Iterable[Tool]] = None) -> None:
        self._tools: Dict[str, Tool] = {}
        self._lock = threading.RLock()
        for tool_instance in tools or ():
            self.register(tool_instance)

    def register(self, tool_instance: Tool, replace: bool = False) -> RegistrationResult:
        """
        Register a Tool instance.

        A duplicate name keeps the existing tool unless ``replace`` is set.

        Returns:
            OK for a new name, ALREADY_EXISTS when the name was taken and
            ``replace`` is False, REPLACED when an existing tool was swapped out.
        """
        with self._lock:
            if tool_instance.name in self._tools:
                if not replace:
                    logger.warning(
                        "tool %r already registered; keeping the existing one",
                        tool_instance.name,
                    )
                    return RegistrationResult.ALREADY_EXISTS
                self._tools[tool_instance.name] = tool_instance
                logger.info("tool %r replaced", tool_instance.name)
                return RegistrationResult.REPLACED
            self._tools[tool_instance.name] = tool_instance
            return RegistrationResult.OK

    def add(
        self,
        name: str,
        description: str,
        input_schema: JsonSchema,
        execute: Callable[[Dict[str, Any]], Any],
        replace: bool = False,
    ) -> RegistrationResult:
        """Register a raw capability: a JSON schema plus a function taking the argument dict."""
        return self.register(
            Tool.from_function(name, description, input_schema, execute), replace=replace
        )

    def get(self, name: str) -> Optional[Tool]:
        """Get a tool by name."""
        with self._lock:
            return self._tools.get(name)

    def list_tools(self) -> List[Tool]:
        """Return all registered tools, in registration order."""
        with self._lock:
            return list(self._tools.values())

    def names(self) -> List[str]:
        with self._lock:
            return list(self._tools.keys())

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._tools

    def __len__(self) -> int:
        with self._lock:
            return len(self._tools)

    def tool(
        self,
        *,
        name: Optional[str] = None,
        description: Optional[str] = None,
        param_metadata: Optional[Dict[str, ParamMetadata]] = None,
        injected_kwargs: Optional[Dict[str, Any]] = None,
        replace: bool = False,
    ) -> Callable[[Callable[..., Any]], Tool]:
        """
        Decorator to register a function as a tool in this registry.

        Returns:
            Decorator that returns the Tool instance.
        """

        def decorator(func: Callable[..., Any]) -> Tool:
            tool_instance = tool(
                name=name,
                description=description,
                param_metadata=param_metadata,
                injected_kwargs=injected_kwargs,
            )(func)
            self.register(tool_instance, replace=replace)
            return tool_instance

        return decorator

    def execute(self, tool_call: ToolCall, skip_unknown: bool = False) -> Optional[ToolMessage]:
        """
        Dispatch one tool call and return its transcript message.

        Returns:
            The ToolMessage to append, or None when the tool is unknown and
            ``skip_unknown`` is set.
        """
        tool_instance = self.get(tool_call.name)
        if tool_instance is None:
            if skip_unknown:
                logger.warning("skipping call to unknown tool %r", tool_call.name)
                return None
            available = ", ".join(self.names()) or "none"
            logger.warning("model called unknown tool %r", tool_call.name)
            return self._error(
                tool_call, f"Unknown tool '{tool_call.name}'. Available tools: {available}"
            )

        try:
            params = tool_call.parse_arguments()
        except ValueError as exc:
            # JSONDecodeError is a ValueError
            logger.warning("invalid arguments for tool %r: %s", tool_call.name, exc)
            return self._error(
                tool_call,
                f"Invalid arguments for tool '{tool_call.name}': {exc}. "
                f"Arguments must be a JSON object, got: {tool_call.arguments!r}",
            )

        try:
            result = tool_instance.execute(params)
        except (ToolValidationError, ToolExecutionError) as exc:
            logger.warning("tool %r failed: %s", tool_call.name, type(exc).__name__)
            return self._error(tool_call, str(exc).strip())

        return ToolMessage(
            content=format_tool_result(result),
            tool_call_id=tool_call.id,
            tool_name=tool_call.name,
            is_error=result.is_error,
        )

    @staticmethod
    def _error(tool_call: ToolCall, text: str) -> ToolMessage:
        return ToolMessage(
            content=text,
            tool_call_id=tool_call.id,
            tool_name=tool_call.name,
            is_error=True,
        )


__all__ = ["RegistrationResult", "ToolRegistry", "format_tool_result"]

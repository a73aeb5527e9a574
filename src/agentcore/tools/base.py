"""
Tool metadata, schemas, results and runtime validation.
"""

from __future__ import annotations

import difflib
import inspect
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from ..exceptions import ToolExecutionError, ToolValidationError

JsonSchema = Dict[str, Any]
ParameterValue = Union[str, int, float, bool, dict, list]
ParamMetadata = Dict[str, Any]


def _python_type_to_json(param_type: type) -> str:
    """Map a Python type to a JSON schema type string."""
    type_map = {
        str: "string",
        int: "integer",
        float: "number",
        bool: "boolean",
        list: "array",
        dict: "object",
    }
    return type_map.get(param_type, "string")


@dataclass(frozen=True)
class ToolContent:
    """
    One typed segment of a tool result.

    ``type`` is ``"text"`` or ``"image"`` for the common cases; any other label
    is carried through and rendered with a ``[type]`` prefix.
    """

    type: str = "text"
    content: Any = ""


@dataclass(frozen=True)
class ToolResult:
    """Ordered content segments returned by a tool, plus an error flag."""

    content: Tuple[ToolContent, ...] = ()
    is_error: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.content, tuple):
            object.__setattr__(self, "content", tuple(self.content))

    @classmethod
    def text(cls, text: str) -> "ToolResult":
        return cls(content=(ToolContent("text", text),))

    @classmethod
    def error(cls, text: str) -> "ToolResult":
        return cls(content=(ToolContent("text", text),), is_error=True)


@dataclass
class ToolParameter:
    """
    Schema definition for a single tool parameter.

    Attributes:
        name: Parameter name (should match the function parameter name).
        param_type: Python type (str, int, float, bool, list, dict).
        description: Human-readable description explaining what the parameter does.
        required: Whether this parameter must be provided (default: True).
        enum: Optional list of allowed string values for enumerated parameters.

    Example:
        >>> param = ToolParameter(
        ...     name="units",
        ...     param_type=str,
        ...     description="Temperature units",
        ...     required=False,
        ...     enum=["celsius", "fahrenheit"]
        ... )
    """

    name: str
    param_type: type
    description: str
    required: bool = True
    enum: Optional[List[str]] = None

    def to_schema(self) -> JsonSchema:
        """Convert parameter definition to JSON Schema format."""
        schema: JsonSchema = {
            "type": _python_type_to_json(self.param_type),
            "description": self.description,
        }
        if self.enum:
            schema["enum"] = self.enum
        return schema


def _coerce_result(value: Any) -> ToolResult:
    if isinstance(value, ToolResult):
        return value
    if isinstance(value, ToolContent):
        return ToolResult(content=(value,))
    if value is None:
        return ToolResult.text("")
    if inspect.isgenerator(value):
        return ToolResult.text("".join(str(chunk) for chunk in value))
    return ToolResult.text(value if isinstance(value, str) else str(value))


class Tool:
    """
    A named capability the model may invoke.

    A Tool wraps a Python function and adds metadata, parameter validation
    and schema generation. Parameters come either from ``ToolParameter``
    definitions (typed, validated) or from a raw JSON ``input_schema``, for
    capabilities whose schema is produced elsewhere.

    Attributes:
        name: Unique identifier for the tool.
        description: Human-readable description of what the tool does (used by LLM).
        parameters: List of ToolParameter objects defining expected inputs.
        function: The underlying Python function to execute.
        injected_kwargs: Additional kwargs to pass to the function (not visible to LLM).
    """

    def __init__(
        self,
        name: str,
        description: str,
        parameters: Optional[List[ToolParameter]],
        function: Callable[..., Any],
        *,
        input_schema: Optional[JsonSchema] = None,
        injected_kwargs: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize a new Tool.

        Raises:
            ToolValidationError: If the tool definition is invalid.
        """
        self.name = name
        self.description = description
        self.parameters = list(parameters or [])
        self.function = function
        self.injected_kwargs = injected_kwargs or {}
        self._input_schema = dict(input_schema) if input_schema is not None else None
        self._raw = input_schema is not None

        self._validate_tool_definition()

    @classmethod
    def from_function(
        cls,
        name: str,
        description: str,
        input_schema: JsonSchema,
        execute: Callable[[Dict[str, Any]], Any],
    ) -> "Tool":
        """
        Build a tool from a raw JSON schema and a function taking the argument dict.

        ``execute`` receives the decoded arguments as a single dict and may
        return a ``ToolResult``, a string, or any value convertible with ``str``.
        """
        return cls(name, description, None, execute, input_schema=input_schema)

    def _validate_tool_definition(self) -> None:
        if not self.name or not self.name.strip():
            raise ToolValidationError(
                tool_name="<unnamed>",
                param_name="name",
                issue="Tool name cannot be empty",
                suggestion="Provide a descriptive name for the tool",
            )

        if not self.description or not self.description.strip():
            raise ToolValidationError(
                tool_name=self.name,
                param_name="description",
                issue="Tool description cannot be empty",
                suggestion="Provide a clear description explaining what the tool does",
            )

        if not callable(self.function):
            raise ToolValidationError(
                tool_name=self.name,
                param_name="function",
                issue="Tool function is not callable",
            )

        if self._raw:
            if self._input_schema.get("type", "object") != "object":
                raise ToolValidationError(
                    tool_name=self.name,
                    param_name="input_schema",
                    issue="Input schema must describe a JSON object",
                    suggestion='Use {"type": "object", "properties": {...}}',
                )
            return

        param_names = [p.name for p in self.parameters]
        duplicates = [name for name in param_names if param_names.count(name) > 1]
        if duplicates:
            raise ToolValidationError(
                tool_name=self.name,
                param_name=", ".join(sorted(set(duplicates))),
                issue="Duplicate parameter name(s)",
                suggestion="Each parameter must have a unique name",
            )

        supported_types = {str, int, float, bool, list, dict}
        for param in self.parameters:
            if param.param_type not in supported_types:
                type_list = ", ".join(t.__name__ for t in supported_types)
                raise ToolValidationError(
                    tool_name=self.name,
                    param_name=param.name,
                    issue=f"Unsupported parameter type: {param.param_type}",
                    suggestion=f"Use one of: {type_list}",
                )

        try:
            sig = inspect.signature(self.function)
        except (ValueError, TypeError):
            # Built-ins and some C callables have no inspectable signature
            return

        func_params = sig.parameters
        injected_names = set(self.injected_kwargs.keys())
        for param in self.parameters:
            if param.name not in func_params and param.name not in injected_names:
                func_param_names = [p for p in func_params.keys() if p not in injected_names]
                suggestion = f"Available function parameters: {', '.join(func_param_names)}"
                if not func_param_names:
                    suggestion = "Function has no parameters"
                raise ToolValidationError(
                    tool_name=self.name,
                    param_name=param.name,
                    issue=f"Parameter '{param.name}' not found in function signature",
                    suggestion=suggestion,
                )

    @property
    def input_schema(self) -> JsonSchema:
        """JSON schema of the argument object."""
        if self._input_schema is not None:
            return self._input_schema
        return {
            "type": "object",
            "properties": {param.name: param.to_schema() for param in self.parameters},
            "required": [param.name for param in self.parameters if param.required],
        }

    def schema(self) -> JsonSchema:
        """Return a JSON-schema style dict describing this tool."""
        return {
            "name": self.name,
            "description": self.description,
            "parameters": self.input_schema,
        }

    def _validate_single(self, param: ToolParameter, value: ParameterValue) -> Optional[str]:
        """Validate a single parameter, returning an error message if invalid."""
        if value is None:
            return f"Parameter '{param.name}' is None"

        if param.param_type is float:
            if not isinstance(value, (float, int)) or isinstance(value, bool):
                return f"Parameter '{param.name}' must be a number"
            return None

        if param.param_type is int and isinstance(value, bool):
            return f"Parameter '{param.name}' must be of type int, got bool"

        if not isinstance(value, param.param_type):
            return (
                f"Parameter '{param.name}' must be of type {param.param_type.__name__}, "
                f"got {type(value).__name__}"
            )
        if param.enum and value not in param.enum:
            return f"Parameter '{param.name}' must be one of {param.enum}, got {value!r}"
        return None

    def _validate_raw(self, params: Dict[str, Any]) -> None:
        for name in self._input_schema.get("required") or ():
            if name not in params:
                raise ToolValidationError(
                    tool_name=self.name,
                    param_name=name,
                    issue="Missing required parameter",
                    suggestion=f"Required parameters: {', '.join(self._input_schema['required'])}",
                )

    def validate(self, params: Dict[str, ParameterValue]) -> None:
        """
        Validate a parameter dictionary against this tool's schema.

        Raises ToolValidationError if validation fails with helpful suggestions.
        """
        if self._raw:
            self._validate_raw(params)
            return

        expected_params = {p.name for p in self.parameters}
        extra_params = set(params.keys()) - expected_params

        # Unexpected parameters are usually typos
        if extra_params:
            suggestions = []
            for extra in sorted(extra_params):
                matches = difflib.get_close_matches(extra, expected_params, n=1, cutoff=0.6)
                if matches:
                    suggestions.append(f"'{extra}' -> Did you mean '{matches[0]}'?")
                else:
                    suggestions.append(f"'{extra}' is not a valid parameter")

            expected_list = ", ".join(f"'{p}'" for p in sorted(expected_params))
            raise ToolValidationError(
                tool_name=self.name,
                param_name=", ".join(sorted(extra_params)),
                issue="Unexpected parameter(s)",
                suggestion=f"{'; '.join(suggestions)}\nExpected parameters: {expected_list}",
            )

        for param in self.parameters:
            if param.required and param.name not in params:
                expected_list = ", ".join(f"'{p.name}'" for p in self.parameters if p.required)
                raise ToolValidationError(
                    tool_name=self.name,
                    param_name=param.name,
                    issue="Missing required parameter",
                    suggestion=f"Required parameters: {expected_list}",
                )

            if param.name not in params:
                continue

            error = self._validate_single(param, params[param.name])
            if error:
                value = params[param.name]
                type_hint = ""
                if param.param_type is str and not isinstance(value, str):
                    type_hint = f"Try: {param.name}=str({repr(value)})"
                elif param.param_type is int and isinstance(value, str):
                    type_hint = f"Try: {param.name}=int('{value}')"
                elif param.param_type is float and isinstance(value, (str, int)):
                    type_hint = f"Try: {param.name}=float({repr(value)})"

                raise ToolValidationError(
                    tool_name=self.name,
                    param_name=param.name,
                    issue=error,
                    suggestion=(
                        type_hint if type_hint else f"Expected type: {param.param_type.__name__}"
                    ),
                )

    def execute(self, params: Dict[str, ParameterValue]) -> ToolResult:
        """
        Validate parameters then execute the underlying callable.

        Generator results are drained and joined into a single text segment.

        Raises:
            ToolValidationError: If the parameters do not match the schema.
            ToolExecutionError: If the function raised.
        """
        self.validate(params)

        try:
            if self._raw:
                result = self.function(dict(params))
            else:
                call_args: Dict[str, Any] = dict(params)
                call_args.update(self.injected_kwargs)
                result = self.function(**call_args)
            return _coerce_result(result)
        except Exception as exc:
            raise ToolExecutionError(tool_name=self.name, error=exc, params=params) from exc

    def __repr__(self) -> str:
        return f"Tool(name={self.name!r})"


__all__ = [
    "JsonSchema",
    "ParamMetadata",
    "Tool",
    "ToolContent",
    "ToolParameter",
    "ToolResult",
]

"""
Core message and role types for the execution core.

These primitives are provider-agnostic and are reused across adapters,
the agent loop, the stream accumulator, and tests.

Messages form a closed union (``Message``) of frozen dataclasses. The role of
each variant is fixed by its class and cannot be changed after construction;
``content`` is always a string, never None.
"""

from __future__ import annotations

import base64
import json
import mimetypes
import uuid
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from .usage import UsageStats


class Role(str, Enum):
    """Conversation role."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"
    TOOL = "tool"


class ContentPartType(str, Enum):
    TEXT = "text"
    IMAGE = "image"
    IMAGE_URL = "image_url"
    AUDIO = "audio"
    VIDEO = "video"
    FILE = "file"
    INPUT_FILE = "input_file"


@dataclass(frozen=True)
class ContentPart:
    """One typed segment of a multi-part message (text, image, file, ...)."""

    type: ContentPartType
    text: str = ""
    mime_type: str = ""
    data: bytes = b""
    uri: str = ""
    file_id: str = ""
    name: str = ""
    detail: str = ""

    @classmethod
    def from_text(cls, text: str) -> "ContentPart":
        return cls(type=ContentPartType.TEXT, text=text)

    @classmethod
    def from_image_file(cls, image_path: str) -> "ContentPart":
        """Load an image from disk into an inline image part."""
        path = Path(image_path).expanduser().resolve()
        if not path.exists():
            raise FileNotFoundError(f"Image file not found: {path}")

        mime_type = mimetypes.guess_type(path.name)[0] or "image/jpeg"
        return cls(
            type=ContentPartType.IMAGE,
            mime_type=mime_type,
            data=path.read_bytes(),
            name=path.name,
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"type": self.type.value}
        for key in ("text", "mime_type", "uri", "file_id", "name", "detail"):
            value = getattr(self, key)
            if value:
                data[key] = value
        if self.data:
            data["data"] = base64.b64encode(self.data).decode("utf-8")
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ContentPart":
        raw = data.get("data")
        return cls(
            type=ContentPartType(data["type"]),
            text=data.get("text", ""),
            mime_type=data.get("mime_type", ""),
            data=base64.b64decode(raw) if raw else b"",
            uri=data.get("uri", ""),
            file_id=data.get("file_id", ""),
            name=data.get("name", ""),
            detail=data.get("detail", ""),
        )


@dataclass(frozen=True)
class ToolCall:
    """
    A tool invocation requested by the model.

    ``id`` is opaque (provider-issued or generated locally) and unique within
    one assistant message; the matching ``ToolMessage`` refers back to it via
    ``tool_call_id``. ``arguments`` holds the raw JSON text the model produced.
    """

    id: str
    name: str
    arguments: str = ""
    type: str = "function"
    result: Any = None

    @classmethod
    def new(
        cls, name: str, args: Optional[Dict[str, Any]] = None, id: Optional[str] = None
    ) -> "ToolCall":
        """Build a tool call from a parameter dict, generating an id if needed."""
        return cls(
            id=id or f"call_{uuid.uuid4().hex[:24]}",
            name=name,
            arguments=json.dumps(args or {}),
        )

    def parse_arguments(self) -> Dict[str, Any]:
        """
        Decode ``arguments`` as a JSON object.

        Empty arguments decode to an empty dict.

        Raises:
            ValueError: If the text is not valid JSON, nests too deeply to decode,
                or is not a JSON object.
        """
        raw = (self.arguments or "").strip()
        if not raw:
            return {}
        try:
            value = json.loads(raw)
        except RecursionError as exc:
            raise ValueError("arguments are nested too deeply") from exc
        if not isinstance(value, dict):
            raise ValueError(f"arguments must be a JSON object, got {type(value).__name__}")
        return value

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "type": self.type,
            "name": self.name,
            "args": self.arguments,
        }
        if self.result is not None:
            data["result"] = self.result
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ToolCall":
        return cls(
            id=data.get("id", ""),
            name=data.get("name", ""),
            arguments=data.get("args", data.get("arguments", "")) or "",
            type=data.get("type", "function") or "function",
            result=data.get("result"),
        )


def _fix_content(message: Any) -> None:
    if message.content is None:
        object.__setattr__(message, "content", "")


def _fix_tuple(message: Any, name: str) -> None:
    value = getattr(message, name)
    if not isinstance(value, tuple):
        object.__setattr__(message, name, tuple(value or ()))


def _first_text(content: str, parts: Tuple[ContentPart, ...]) -> str:
    if content:
        return content
    for part in parts:
        if part.type == ContentPartType.TEXT and part.text:
            return part.text
    return ""


@dataclass(frozen=True)
class UserMessage:
    content: str = ""
    parts: Tuple[ContentPart, ...] = ()
    role: Role = field(default=Role.USER, init=False)

    def __post_init__(self) -> None:
        _fix_content(self)
        _fix_tuple(self, "parts")

    @property
    def text(self) -> str:
        return _first_text(self.content, self.parts)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "user",
            "role": self.role.value,
            "content": self.content,
            "parts": [p.to_dict() for p in self.parts],
        }


@dataclass(frozen=True)
class SystemMessage:
    content: str = ""
    parts: Tuple[ContentPart, ...] = ()
    role: Role = field(default=Role.SYSTEM, init=False)

    def __post_init__(self) -> None:
        _fix_content(self)
        _fix_tuple(self, "parts")

    @property
    def text(self) -> str:
        return _first_text(self.content, self.parts)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "system",
            "role": self.role.value,
            "content": self.content,
            "parts": [p.to_dict() for p in self.parts],
        }


@dataclass(frozen=True)
class AIMessage:
    """
    Assistant response, either complete or a streamed aggregate.

    Attributes:
        content: Visible response text.
        tool_calls: Tool invocations requested by the model, in order.
        reasoning: Text the model emitted inside reasoning ("think") markers.
        parts: Non-text output parts (images, files).
        usage: Token usage reported for the call.
        response_id: Provider response id, when reported.
        model: Model name reported by the provider.
        extra: Provider-specific metadata.
    """

    content: str = ""
    tool_calls: Tuple[ToolCall, ...] = ()
    reasoning: str = ""
    parts: Tuple[ContentPart, ...] = ()
    usage: UsageStats = field(default_factory=UsageStats)
    response_id: str = ""
    model: str = ""
    extra: Dict[str, Any] = field(default_factory=dict)
    role: Role = field(default=Role.ASSISTANT, init=False)

    def __post_init__(self) -> None:
        _fix_content(self)
        _fix_tuple(self, "tool_calls")
        _fix_tuple(self, "parts")
        if self.reasoning is None:
            object.__setattr__(self, "reasoning", "")

    @property
    def text(self) -> str:
        return _first_text(self.content, self.parts)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "ai",
            "role": self.role.value,
            "content": self.content,
            "think": self.reasoning,
            "tool_calls": [tc.to_dict() for tc in self.tool_calls],
            "parts": [p.to_dict() for p in self.parts],
            "usage": self.usage.to_dict(),
            "response_id": self.response_id,
            "model": self.model,
            "extra": self.extra,
        }


@dataclass(frozen=True)
class ToolMessage:
    """Result of one tool call, correlated to the request by ``tool_call_id``."""

    content: str = ""
    tool_call_id: str = ""
    tool_name: str = ""
    is_error: bool = False
    role: Role = field(default=Role.TOOL, init=False)

    def __post_init__(self) -> None:
        _fix_content(self)

    @property
    def text(self) -> str:
        return self.content

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": "tool",
            "role": self.role.value,
            "content": self.content,
            "tool_call_id": self.tool_call_id,
            "tool_name": self.tool_name,
            "is_error": self.is_error,
        }


@dataclass(frozen=True)
class ResourceMessage:
    """
    A document or file handed to the model on the user's behalf.

    ``body`` holds inline bytes or text; ``uri`` points at content stored
    elsewhere (for example an uploaded file id).
    """

    name: str = ""
    uri: str = ""
    mime_type: str = ""
    body: Union[bytes, str, None] = None
    description: str = ""
    content: str = ""
    role: Role = field(default=Role.USER, init=False)

    def __post_init__(self) -> None:
        _fix_content(self)
        if not self.content:
            object.__setattr__(self, "content", f"resource: {self.name or self.uri}")

    @property
    def text(self) -> str:
        return self.content

    def to_dict(self) -> Dict[str, Any]:
        body: Any = self.body
        if isinstance(body, bytes):
            body = {"base64": base64.b64encode(body).decode("utf-8")}
        return {
            "type": "resource",
            "role": self.role.value,
            "content": self.content,
            "name": self.name,
            "uri": self.uri,
            "mime_type": self.mime_type,
            "body": body,
            "description": self.description,
        }


Message = Union[UserMessage, SystemMessage, AIMessage, ToolMessage, ResourceMessage]


def _parts(data: Dict[str, Any]) -> Tuple[ContentPart, ...]:
    return tuple(ContentPart.from_dict(p) for p in data.get("parts") or ())


def message_from_dict(data: Dict[str, Any]) -> Message:
    """
    Rebuild a message from its ``to_dict`` form.

    Raises:
        ValueError: If the message type is unknown.
    """
    kind = data.get("type") or {
        "user": "user",
        "system": "system",
        "assistant": "ai",
        "tool": "tool",
    }.get(data.get("role", ""), "")
    content = data.get("content") or ""

    if kind == "user":
        return UserMessage(content=content, parts=_parts(data))
    if kind == "system":
        return SystemMessage(content=content, parts=_parts(data))
    if kind == "ai":
        return ai_message_from_dict(data)
    if kind == "tool":
        return ToolMessage(
            content=content,
            tool_call_id=data.get("tool_call_id", ""),
            tool_name=data.get("tool_name", ""),
            is_error=bool(data.get("is_error", False)),
        )
    if kind == "resource":
        body = data.get("body")
        if isinstance(body, dict) and "base64" in body:
            body = base64.b64decode(body["base64"])
        return ResourceMessage(
            name=data.get("name", ""),
            uri=data.get("uri", ""),
            mime_type=data.get("mime_type", ""),
            body=body,
            description=data.get("description", ""),
            content=content,
        )
    raise ValueError(f"Unknown message type: {kind!r}")


def ai_message_from_dict(data: Dict[str, Any]) -> AIMessage:
    return AIMessage(
        content=data.get("content") or "",
        tool_calls=tuple(ToolCall.from_dict(tc) for tc in data.get("tool_calls") or ()),
        reasoning=data.get("think") or data.get("reasoning") or "",
        parts=_parts(data),
        usage=UsageStats.from_dict(data.get("usage")),
        response_id=data.get("response_id", "") or "",
        model=data.get("model", "") or "",
        extra=dict(data.get("extra") or {}),
    )


@dataclass(frozen=True)
class StreamChunk:
    """
    One fragment delivered to the caller while a response streams.

    Exactly one of ``content`` or ``reasoning`` is non-empty.
    """

    content: str = ""
    reasoning: str = ""


@dataclass(frozen=True)
class ToolCallDelta:
    """
    A fragment of a streamed tool call.

    Fragments sharing a key are merged across the whole stream; the key is
    ``index`` when the provider sends one, otherwise ``id``.
    """

    index: Optional[int] = None
    id: str = ""
    name: str = ""
    arguments: str = ""

    @property
    def key(self) -> Union[int, str]:
        return self.index if self.index is not None else self.id


@dataclass(frozen=True)
class StreamDelta:
    """
    One raw event from a provider stream.

    ``text`` may contain reasoning markers that straddle delta boundaries;
    ``reasoning`` carries reasoning the provider already separated out.
    """

    text: str = ""
    reasoning: str = ""
    tool_calls: Tuple[ToolCallDelta, ...] = ()
    response_id: str = ""
    model: str = ""
    usage: Optional[UsageStats] = None

    def __post_init__(self) -> None:
        _fix_tuple(self, "tool_calls")


def messages_to_dicts(messages: List[Message]) -> List[Dict[str, Any]]:
    return [m.to_dict() for m in messages]


__all__ = [
    "Role",
    "ContentPartType",
    "ContentPart",
    "ToolCall",
    "UserMessage",
    "SystemMessage",
    "AIMessage",
    "ToolMessage",
    "ResourceMessage",
    "Message",
    "message_from_dict",
    "ai_message_from_dict",
    "messages_to_dicts",
    "StreamChunk",
    "ToolCallDelta",
    "StreamDelta",
]

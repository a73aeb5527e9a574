"""
Provider abstraction for model-agnostic tool calling.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable, Protocol, Sequence, runtime_checkable

from ..context import Context
from ..types import AIMessage, Message, StreamDelta

if TYPE_CHECKING:
    from ..config import CallConfig
    from ..tools.base import Tool


@runtime_checkable
class Provider(Protocol):
    """
    Interface every provider adapter must satisfy.

    Adapters perform exactly one request per call and never retry; retries,
    backoff and stream accumulation belong to ``Model``. Errors that carry an
    HTTP-like status should expose it as an integer ``status_code`` attribute
    (``ProviderError`` does) so the retry classifier can see it.
    """

    name: str
    supports_streaming: bool

    def complete(
        self,
        *,
        ctx: Context,
        model: str,
        messages: Sequence[Message],
        tools: Sequence["Tool"],
        config: "CallConfig",
    ) -> AIMessage:
        """Return the complete assistant message for the conversation."""
        ...

    def stream(
        self,
        *,
        ctx: Context,
        model: str,
        messages: Sequence[Message],
        tools: Sequence["Tool"],
        config: "CallConfig",
    ) -> Iterable[StreamDelta]:
        """
        Yield raw stream deltas for providers that support streaming.

        Implementations should raise StreamingNotSupportedError if streaming is
        not available. Reasoning may be embedded in ``text`` inside think
        markers; the accumulator separates it.
        """
        ...


__all__ = ["Provider"]

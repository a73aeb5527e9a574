"""
Offline providers for testing and development.

None of these call an external API:

- ``LocalProvider`` echoes the latest user message.
- ``DummyProvider`` returns whatever a scripted response function returns,
  and can simulate streaming it.
- ``ReplayProvider`` plays back responses captured with ``Model(record_filename=...)``.
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Callable, Iterator, List, Sequence, Union

from ..config import CallConfig
from ..context import Context
from ..exceptions import ProviderError, StreamingNotSupportedError
from ..recording import RecordedResponse, load_records
from ..types import AIMessage, Message, StreamDelta, ToolCallDelta, UserMessage
from ..usage import UsageStats
from .base import Provider

ResponseFunction = Callable[[Context, Sequence[Message], Sequence], AIMessage]


class LocalProvider(Provider):
    """
    Local fallback provider.

    This does not call a model. It echoes the latest user content and is useful
    for offline/manual testing or as a safe default.
    """

    name = "local"
    supports_streaming = True

    def complete(
        self,
        *,
        ctx: Context,
        model: str,
        messages: Sequence[Message],
        tools: Sequence = (),
        config: CallConfig = CallConfig(),
    ) -> AIMessage:
        ctx.raise_if_done()
        last_user = next((m for m in reversed(messages) if isinstance(m, UserMessage)), None)
        user_text = last_user.text if last_user else ""
        return AIMessage(
            content=f"[local provider: {model}] {user_text or 'No user message provided.'}",
            model=model,
            usage=UsageStats(model=model, provider=self.name),
        )

    def stream(
        self,
        *,
        ctx: Context,
        model: str,
        messages: Sequence[Message],
        tools: Sequence = (),
        config: CallConfig = CallConfig(),
    ) -> Iterator[StreamDelta]:
        message = self.complete(ctx=ctx, model=model, messages=messages, tools=tools, config=config)
        words = message.content.split(" ")
        for i, word in enumerate(words):
            yield StreamDelta(text=word if i == len(words) - 1 else word + " ", model=model)


def _split_evenly(text: str, parts: int = 3) -> List[str]:
    size = max(1, len(text) // parts)
    return [text[i : i + size] for i in range(0, len(text), size)]


class DummyProvider(Provider):
    """
    Provider backed by a scripted response function.

    ``response_fn(ctx, messages, tools)`` returns the assistant message for
    each call, or raises to simulate a provider failure. Streaming replays the
    same message as roughly three text deltas, one reasoning delta (if any) and
    one delta per tool call.

    Example:
        >>> provider = DummyProvider(lambda ctx, messages, tools: AIMessage("hi"))
        >>> Model(provider, "dummy").call(background(), []).content
        'hi'
    """

    name = "dummy"
    supports_streaming = True

    def __init__(self, response_fn: ResponseFunction, supports_streaming: bool = True):
        self.response_fn = response_fn
        self.supports_streaming = supports_streaming

    def complete(
        self,
        *,
        ctx: Context,
        model: str,
        messages: Sequence[Message],
        tools: Sequence = (),
        config: CallConfig = CallConfig(),
    ) -> AIMessage:
        return self.response_fn(ctx, messages, tools)

    def stream(
        self,
        *,
        ctx: Context,
        model: str,
        messages: Sequence[Message],
        tools: Sequence = (),
        config: CallConfig = CallConfig(),
    ) -> Iterator[StreamDelta]:
        message = self.response_fn(ctx, messages, tools)
        if message.reasoning:
            yield StreamDelta(reasoning=message.reasoning)
        for piece in _split_evenly(message.content):
            yield StreamDelta(text=piece)
        for index, call in enumerate(message.tool_calls):
            fragment = ToolCallDelta(
                index=index, id=call.id, name=call.name, arguments=call.arguments
            )
            yield StreamDelta(tool_calls=(fragment,))
        yield StreamDelta(
            response_id=message.response_id,
            model=message.model or model,
            usage=message.usage,
        )


class ReplayProvider(Provider):
    """
    Plays recorded call outcomes back in order.

    A recorded error is raised as ``ProviderError``. Once the records run out,
    every further call returns a "No more recorded responses" message instead
    of failing.
    """

    name = "replay"
    supports_streaming = False

    def __init__(self, records: Sequence[RecordedResponse]):
        self._records = list(records)
        self._index = 0
        self._lock = threading.Lock()

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "ReplayProvider":
        return cls(load_records(path))

    @property
    def remaining(self) -> int:
        with self._lock:
            return len(self._records) - self._index

    def complete(
        self,
        *,
        ctx: Context,
        model: str,
        messages: Sequence[Message],
        tools: Sequence = (),
        config: CallConfig = CallConfig(),
    ) -> AIMessage:
        ctx.raise_if_done()
        with self._lock:
            if self._index >= len(self._records):
                return AIMessage(
                    content=(
                        f"No more recorded responses available "
                        f"(requested {self._index + 1}, have {len(self._records)})"
                    )
                )
            record = self._records[self._index]
            self._index += 1

        if record.error:
            raise ProviderError(f"recorded error: {record.error}")
        return record.message or AIMessage()

    def stream(
        self,
        *,
        ctx: Context,
        model: str,
        messages: Sequence[Message],
        tools: Sequence = (),
        config: CallConfig = CallConfig(),
    ) -> Iterator[StreamDelta]:
        raise StreamingNotSupportedError("replay provider does not stream recorded responses")


__all__ = ["LocalProvider", "DummyProvider", "ReplayProvider"]

"""
Streaming delta accumulation.

Providers push raw deltas one at a time. Reasoning text arrives embedded in
the same text stream, wrapped in ``<think>...</think>`` markers that may be
split across two deltas. ``ThinkTagSplitter`` separates the two sub-streams
without ever emitting half a marker, and ``StreamAccumulator`` turns the deltas
into ordered ``StreamChunk`` fragments plus one aggregate ``AIMessage``.

Invariant: the aggregate's ``content`` and ``reasoning`` are exactly the
in-order concatenation of the fragments handed out.
"""

from __future__ import annotations

import uuid
from contextlib import closing
from enum import Enum
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Tuple, Union

from .context import Context
from .types import AIMessage, StreamChunk, StreamDelta, ToolCall, ToolCallDelta
from .usage import UsageStats

THINK_START = "<think>"
THINK_END = "</think>"

CONTENT = "content"
REASONING = "reasoning"

Segment = Tuple[str, str]
ChunkCallback = Callable[[StreamChunk], None]


class SplitState(str, Enum):
    SCANNING = "scanning"
    IN_REASONING = "in_reasoning"


def _held_prefix(buffer: str, marker: str) -> int:
    """Length of the longest suffix of ``buffer`` that is a proper prefix of ``marker``."""
    for size in range(min(len(buffer), len(marker) - 1), 0, -1):
        if buffer.endswith(marker[:size]):
            return size
    return 0


class ThinkTagSplitter:
    """
    Two-state parser splitting raw text into content and reasoning segments.

    While SCANNING, text before a start marker is content; while
    IN_REASONING, text before an end marker is reasoning. A buffer tail that
    could still grow into the pending marker is withheld until the next feed
    (or ``flush``) disambiguates it.

    Example:
        >>> splitter = ThinkTagSplitter()
        >>> splitter.feed("Hi <th")
        [('content', 'Hi ')]
        >>> splitter.feed("ink>plan</think>done")
        [('reasoning', 'plan'), ('content', 'done')]
    """

    def __init__(self, start_tag: str = THINK_START, end_tag: str = THINK_END):
        if not start_tag or not end_tag:
            raise ValueError("reasoning markers cannot be empty")
        self.start_tag = start_tag
        self.end_tag = end_tag
        self.state = SplitState.SCANNING
        self._buffer = ""

    @property
    def pending(self) -> str:
        """Text withheld because it may be the beginning of a marker."""
        return self._buffer

    def _kind(self) -> str:
        return REASONING if self.state is SplitState.IN_REASONING else CONTENT

    def feed(self, text: str) -> List[Segment]:
        """Consume ``text`` and return every segment that can now be emitted, in order."""
        segments: List[Segment] = []
        self._buffer += text

        while self._buffer:
            if self.state is SplitState.SCANNING:
                marker, next_state = self.start_tag, SplitState.IN_REASONING
            else:
                marker, next_state = self.end_tag, SplitState.SCANNING

            idx = self._buffer.find(marker)
            if idx >= 0:
                if idx > 0:
                    segments.append((self._kind(), self._buffer[:idx]))
                self._buffer = self._buffer[idx + len(marker) :]
                self.state = next_state
                continue

            held = _held_prefix(self._buffer, marker)
            ready = self._buffer[: len(self._buffer) - held]
            if ready:
                segments.append((self._kind(), ready))
            self._buffer = self._buffer[len(self._buffer) - held :]
            break

        return segments

    def flush(self) -> List[Segment]:
        """Emit whatever is still buffered to the active sub-stream."""
        if not self._buffer:
            return []
        segment = (self._kind(), self._buffer)
        self._buffer = ""
        return [segment]


class StreamAccumulator:
    """
    Aggregates provider deltas into chunks and a final assistant message.

    Tool-call fragments are merged by key (index, or id when there is no
    index) across the whole stream, in order of first appearance.
    """

    def __init__(self, splitter: Optional[ThinkTagSplitter] = None):
        self._splitter = splitter or ThinkTagSplitter()
        self._content: List[str] = []
        self._reasoning: List[str] = []
        self._tool_calls: Dict[Union[int, str], Dict[str, str]] = {}
        self.response_id = ""
        self.model = ""
        self.usage: Optional[UsageStats] = None
        self.chunk_count = 0

    def _emit(self, kind: str, text: str) -> StreamChunk:
        self.chunk_count += 1
        if kind == REASONING:
            self._reasoning.append(text)
            return StreamChunk(reasoning=text)
        self._content.append(text)
        return StreamChunk(content=text)

    def _merge_tool_call(self, fragment: ToolCallDelta) -> None:
        entry = self._tool_calls.get(fragment.key)
        if entry is None:
            self._tool_calls[fragment.key] = {
                "id": fragment.id,
                "name": fragment.name,
                "arguments": fragment.arguments,
            }
            return
        if fragment.id and not entry["id"]:
            entry["id"] = fragment.id
        if fragment.name and not entry["name"]:
            entry["name"] = fragment.name
        entry["arguments"] += fragment.arguments

    def add(self, delta: StreamDelta) -> List[StreamChunk]:
        """Fold one delta in and return the chunks it produced."""
        chunks: List[StreamChunk] = []
        if delta.reasoning:
            chunks.append(self._emit(REASONING, delta.reasoning))
        if delta.text:
            for kind, text in self._splitter.feed(delta.text):
                chunks.append(self._emit(kind, text))
        for fragment in delta.tool_calls:
            self._merge_tool_call(fragment)

        if delta.response_id and not self.response_id:
            self.response_id = delta.response_id
        if delta.model and not self.model:
            self.model = delta.model
        if delta.usage is not None:
            self.usage = delta.usage
        return chunks

    def finish(self) -> List[StreamChunk]:
        """Flush buffered text at end of stream. Unterminated markers are not an error."""
        return [self._emit(kind, text) for kind, text in self._splitter.flush()]

    def tool_calls(self) -> Tuple[ToolCall, ...]:
        return tuple(
            ToolCall(
                id=entry["id"] or f"call_{uuid.uuid4().hex[:24]}",
                name=entry["name"],
                arguments=entry["arguments"],
            )
            for entry in self._tool_calls.values()
        )

    def message(self) -> AIMessage:
        """Build the aggregate message from everything emitted so far."""
        return AIMessage(
            content="".join(self._content),
            reasoning="".join(self._reasoning),
            tool_calls=self.tool_calls(),
            usage=self.usage or UsageStats(model=self.model),
            response_id=self.response_id,
            model=self.model,
        )


def iter_accumulate(
    ctx: Context,
    deltas: Iterable[StreamDelta],
    accumulator: StreamAccumulator,
) -> Iterator[StreamChunk]:
    """
    Drive ``accumulator`` over ``deltas``, yielding chunks as they resolve.

    The context is checked before every read. The delta iterator is closed
    when consumption ends early (cancellation, consumer error, or close()).

    Raises:
        ContextError: If the context ends mid-stream.
    """
    iterator = iter(deltas)
    try:
        while True:
            ctx.raise_if_done()
            try:
                delta = next(iterator)
            except StopIteration:
                break
            yield from accumulator.add(delta)
        yield from accumulator.finish()
    finally:
        close = getattr(iterator, "close", None)
        if callable(close):
            close()


def accumulate(
    ctx: Context,
    deltas: Iterable[StreamDelta],
    on_chunk: Optional[ChunkCallback] = None,
    splitter: Optional[ThinkTagSplitter] = None,
) -> AIMessage:
    """
    Consume a delta stream and return the aggregate message.

    ``on_chunk`` is called synchronously, in stream order, for every non-empty
    fragment before the next delta is read. If it raises, consumption stops
    and the error propagates.
    """
    accumulator = StreamAccumulator(splitter)
    with closing(iter_accumulate(ctx, deltas, accumulator)) as chunks:
        for chunk in chunks:
            if on_chunk is not None:
                on_chunk(chunk)
    return accumulator.message()


def extract_think_tags(
    content: str, start_tag: str = THINK_START, end_tag: str = THINK_END
) -> Tuple[str, str]:
    """
    Split a complete response into (cleaned content, reasoning).

    Only the first marker pair is extracted; both parts are whitespace-trimmed.
    Content without a complete marker pair is returned unchanged.
    """
    start = content.find(start_tag)
    if start == -1:
        return content, ""
    end = content.find(end_tag, start + len(start_tag))
    if end == -1:
        return content, ""

    reasoning = content[start + len(start_tag) : end]
    cleaned = content[:start] + content[end + len(end_tag) :]
    return cleaned.strip(), reasoning.strip()


__all__ = [
    "THINK_START",
    "THINK_END",
    "SplitState",
    "ThinkTagSplitter",
    "StreamAccumulator",
    "iter_accumulate",
    "accumulate",
    "extract_think_tags",
]

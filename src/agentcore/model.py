"""
Model handle: a provider plus call tunables, with retry around every request.

``Model`` is the call dispatcher. Both ``call`` and the stream path run the
provider primitive under a ``Retrier``; the stream path only retries while no
chunk has reached the caller, since delivered chunks cannot be taken back.

Example:
    >>> from agentcore import Model, background
    >>> from agentcore.providers import LocalProvider
    >>> model = Model(LocalProvider(), "echo")
    >>> model.call(background(), [UserMessage("hi")]).content
    '[local provider: echo] hi'
"""

from __future__ import annotations

import logging
import random
from contextlib import closing
from dataclasses import replace
from pathlib import Path
from typing import Any, Iterator, List, Optional, Sequence, Union

from .config import CallConfig, RetryPolicy
from .context import Context
from .exceptions import ContextError, NonRetryableError, StreamingNotSupportedError
from .recording import ResponseRecorder
from .retry import ErrorClass, Retrier, as_temporary
from .streaming import (
    THINK_START,
    ChunkCallback,
    StreamAccumulator,
    extract_think_tags,
    iter_accumulate,
)
from .types import AIMessage, Message, StreamChunk

logger = logging.getLogger(__name__)

StreamEvent = Union[StreamChunk, AIMessage]


def split_reasoning(message: AIMessage) -> AIMessage:
    """Move an inline ``<think>`` block into ``reasoning`` unless reasoning is already set."""
    if message.reasoning or THINK_START not in message.content:
        return message
    cleaned, reasoning = extract_think_tags(message.content)
    if not reasoning and cleaned == message.content:
        return message
    return replace(message, content=cleaned, reasoning=reasoning)


class Model:
    """
    A provider bound to a model name and an immutable call configuration.

    Instances are safe to share across threads: nothing on them changes after
    construction. Use ``with_config`` to derive a model with other tunables.

    Attributes:
        provider: Backend adapter performing single requests.
        model_name: Model identifier passed to the provider.
        config: Per-call tunables.
        retry: Retry budget and backoff shape. ``config.max_retries`` overrides
            ``retry.max_retries`` when set.
        record_filename: When set, every call outcome is appended there as JSONL.
    """

    def __init__(
        self,
        provider: Any,
        model_name: str = "",
        config: Optional[CallConfig] = None,
        retry: Optional[RetryPolicy] = None,
        record_filename: Optional[Union[str, Path]] = None,
        rng: Optional[random.Random] = None,
    ):
        self.provider = provider
        self.model_name = model_name
        self.config = config or CallConfig()
        self.retry = retry or RetryPolicy()
        self.record_filename = record_filename
        self._recorder = ResponseRecorder(record_filename) if record_filename else None
        self._rng = rng

    @property
    def name(self) -> str:
        provider_name = getattr(self.provider, "name", type(self.provider).__name__)
        return f"{provider_name}/{self.model_name}" if self.model_name else provider_name

    @property
    def max_retries(self) -> int:
        if self.config.max_retries is not None:
            return self.config.max_retries
        return self.retry.max_retries

    @property
    def can_stream(self) -> bool:
        return bool(getattr(self.provider, "supports_streaming", False)) and callable(
            getattr(self.provider, "stream", None)
        )

    def with_config(self, config: Optional[CallConfig] = None, **changes: Any) -> "Model":
        """
        Return a copy of this model with a different call configuration.

        Either pass a whole ``CallConfig`` or keyword changes to apply to the
        current one (``model.with_config(temperature=0.2)``).
        """
        new_config = config or self.config
        if changes:
            new_config = replace(new_config, **changes)
        clone = Model(
            self.provider,
            self.model_name,
            config=new_config,
            retry=self.retry,
            rng=self._rng,
        )
        clone.record_filename = self.record_filename
        clone._recorder = self._recorder
        return clone

    def _retrier(self, label: str) -> Retrier:
        return Retrier(
            self.max_retries,
            self.retry.backoff(self._rng),
            label=f"{self.name} {label}",
        )

    def _record(
        self, message: Optional[AIMessage] = None, error: Optional[BaseException] = None
    ) -> None:
        if self._recorder is not None:
            self._recorder.record(message, error)

    def call(
        self, ctx: Context, messages: Sequence[Message], tools: Sequence[Any] = ()
    ) -> AIMessage:
        """
        Run one non-streamed completion with retry.

        Raises:
            NonRetryableError: On a fatal provider error.
            TemporaryError: When every attempt failed with a retryable error.
            ContextError: When ``ctx`` is cancelled or its deadline passes.
        """
        history: List[Message] = list(messages)
        tool_list = list(tools)

        def attempt() -> AIMessage:
            return self.provider.complete(
                ctx=ctx,
                model=self.model_name,
                messages=history,
                tools=tool_list,
                config=self.config,
            )

        logger.debug("%s call with %d message(s)", self.name, len(history))
        try:
            message = self._retrier("call").call(ctx, attempt)
        except NonRetryableError as exc:
            self._record(error=exc.error)
            raise

        message = split_reasoning(message)
        self._record(message)
        return message

    def iter_stream(
        self, ctx: Context, messages: Sequence[Message], tools: Sequence[Any] = ()
    ) -> Iterator[StreamEvent]:
        """
        Stream a completion, yielding ``StreamChunk``s then the final ``AIMessage``.

        Providers without a streaming primitive fall back to ``call``: one
        chunk for reasoning (if any) and one for content, then the message.
        A failed stream is retried only if no chunk was yielded yet.
        """
        if not self.can_stream:
            yield from self._iter_call(ctx, messages, tools)
            return

        history: List[Message] = list(messages)
        tool_list = list(tools)
        retrier = self._retrier("stream")
        attempt = 0

        while True:
            ctx.raise_if_done()
            accumulator = StreamAccumulator()
            delivered = False
            try:
                deltas = self.provider.stream(
                    ctx=ctx,
                    model=self.model_name,
                    messages=history,
                    tools=tool_list,
                    config=self.config,
                )
                with closing(iter_accumulate(ctx, deltas, accumulator)) as chunks:
                    for chunk in chunks:
                        delivered = True
                        yield chunk
            except StreamingNotSupportedError:
                if delivered:
                    raise
                logger.info("%s cannot stream; falling back to a single call", self.name)
                yield from self._iter_call(ctx, history, tool_list)
                return
            except Exception as exc:  # noqa: BLE001
                try:
                    if delivered:
                        self._fail_mid_stream(ctx, retrier, exc)
                    retrier.handle_failure(ctx, exc, attempt)
                except NonRetryableError as fatal:
                    self._record(error=fatal.error)
                    raise
                attempt += 1
                continue

            message = accumulator.message()
            self._record(message)
            yield message
            return

    def _iter_call(
        self, ctx: Context, messages: Sequence[Message], tools: Sequence[Any]
    ) -> Iterator[StreamEvent]:
        message = self.call(ctx, messages, tools)
        if message.reasoning:
            yield StreamChunk(reasoning=message.reasoning)
        if message.content:
            yield StreamChunk(content=message.content)
        yield message

    def _fail_mid_stream(self, ctx: Context, retrier: Retrier, exc: Exception) -> None:
        if isinstance(exc, ContextError):
            raise exc
        err = ctx.err()
        if err is not None:
            raise type(err)(str(err)) from exc
        if retrier.classifier(exc) is ErrorClass.FATAL:
            logger.error("%s stream failed: %s: %s", self.name, type(exc).__name__, exc)
            raise NonRetryableError(exc) from exc
        logger.error(
            "%s stream interrupted after output was delivered: %s: %s",
            self.name,
            type(exc).__name__,
            exc,
        )
        raise as_temporary(exc)

    def stream(
        self,
        ctx: Context,
        messages: Sequence[Message],
        tools: Sequence[Any] = (),
        on_chunk: Optional[ChunkCallback] = None,
    ) -> AIMessage:
        """
        Stream a completion, calling ``on_chunk`` for every fragment in order.

        If ``on_chunk`` raises, the provider stream is closed and the error
        propagates to the caller.
        """
        final: Optional[AIMessage] = None
        with closing(self.iter_stream(ctx, messages, tools)) as events:
            for event in events:
                if isinstance(event, AIMessage):
                    final = event
                elif on_chunk is not None:
                    on_chunk(event)
        assert final is not None
        return final

    def __repr__(self) -> str:
        return f"Model(name={self.name!r}, config={self.config!r})"


__all__ = ["Model", "split_reasoning"]

"""
OpenAI provider adapter (Chat Completions API).
"""

from __future__ import annotations

import base64
import os
from typing import Any, Dict, Iterator, List, Optional, Sequence

from ..config import CallConfig
from ..context import Context
from ..env import load_default_env
from ..exceptions import ProviderConfigurationError, ProviderError, TemporaryError
from ..types import (
    AIMessage,
    ContentPart,
    ContentPartType,
    Message,
    ResourceMessage,
    StreamDelta,
    SystemMessage,
    ToolCall,
    ToolCallDelta,
    ToolMessage,
    UserMessage,
)
from ..usage import UsageStats
from .base import Provider


class OpenAIProvider(Provider):
    """
    Adapter that speaks to OpenAI's Chat Completions API.

    One request per call; retries are left to ``Model``. SDK errors are
    wrapped so the retry classifier can read them: HTTP errors become
    ``ProviderError`` with ``status_code``, connection and timeout errors
    become ``TemporaryError``.
    """

    name = "openai"
    supports_streaming = True

    def __init__(
        self,
        api_key: Optional[str] = None,
        default_model: str = "gpt-4o",
        base_url: Optional[str] = None,
        client: Any = None,
    ):
        try:
            import openai
        except ImportError as exc:
            raise ProviderError(
                "openai package not installed. Install with `pip install openai`."
            ) from exc

        self._connection_errors = (openai.APIConnectionError,)
        self.default_model = default_model

        # Retries belong to the caller's Retrier; the SDK must make a single request.
        if client is not None:
            with_options = getattr(client, "with_options", None)
            self._client = with_options(max_retries=0) if callable(with_options) else client
            self.api_key = api_key
            return

        load_default_env()
        self.api_key = api_key or os.getenv("OPENAI_API_KEY")
        if not self.api_key:
            raise ProviderConfigurationError("OpenAI", "API key", "OPENAI_API_KEY")
        self._client = openai.OpenAI(api_key=self.api_key, base_url=base_url, max_retries=0)

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    def _request_kwargs(
        self,
        ctx: Context,
        model: str,
        messages: Sequence[Message],
        tools: Sequence,
        config: CallConfig,
    ) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {
            "model": model or self.default_model,
            "messages": self._format_messages(messages),
        }
        if tools:
            kwargs["tools"] = [{"type": "function", "function": t.schema()} for t in tools]
        remaining = ctx.remaining()
        if remaining is not None:
            kwargs["timeout"] = remaining
        kwargs.update(config.to_request_kwargs())
        return kwargs

    def _wrap_error(self, exc: Exception, action: str) -> Exception:
        if isinstance(exc, self._connection_errors):
            return TemporaryError(f"OpenAI {action} failed: {exc}", error=exc)
        status = getattr(exc, "status_code", None)
        return ProviderError(
            f"OpenAI {action} failed: {exc}",
            status_code=status if isinstance(status, int) else None,
        )

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
        kwargs = self._request_kwargs(ctx, model, messages, tools, config)
        try:
            response = self._client.chat.completions.create(**kwargs)
        except Exception as exc:  # noqa: BLE001
            ctx.raise_if_done()
            raise self._wrap_error(exc, "completion") from exc

        choice = response.choices[0].message
        tool_calls = tuple(
            ToolCall(id=tc.id, name=tc.function.name, arguments=tc.function.arguments or "")
            for tc in (choice.tool_calls or ())
        )
        return AIMessage(
            content=choice.content or "",
            reasoning=getattr(choice, "reasoning_content", None) or "",
            tool_calls=tool_calls,
            usage=self._usage(response, kwargs["model"]),
            response_id=getattr(response, "id", "") or "",
            model=getattr(response, "model", "") or kwargs["model"],
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
        ctx.raise_if_done()
        kwargs = self._request_kwargs(ctx, model, messages, tools, config)
        try:
            response = self._client.chat.completions.create(
                stream=True, stream_options={"include_usage": True}, **kwargs
            )
        except Exception as exc:  # noqa: BLE001
            ctx.raise_if_done()
            raise self._wrap_error(exc, "streaming") from exc

        # Closing the HTTP stream unblocks a read waiting on the network.
        close = getattr(response, "close", None)
        if callable(close):
            ctx.on_cancel(close)

        try:
            chunks = iter(response)
            while True:
                try:
                    chunk = next(chunks)
                except StopIteration:
                    return
                except Exception as exc:  # noqa: BLE001
                    ctx.raise_if_done()
                    raise self._wrap_error(exc, "stream read") from exc
                yield self._delta(chunk, kwargs["model"])
        finally:
            if callable(close):
                ctx.remove_callback(close)

    # ------------------------------------------------------------------
    # Response mapping
    # ------------------------------------------------------------------

    def _delta(self, chunk: Any, model: str) -> StreamDelta:
        usage = None
        if getattr(chunk, "usage", None) is not None:
            usage = self._usage(chunk, model)

        if not chunk.choices:
            return StreamDelta(
                response_id=getattr(chunk, "id", "") or "",
                model=getattr(chunk, "model", "") or "",
                usage=usage,
            )

        delta = chunk.choices[0].delta
        content = getattr(delta, "content", None) or ""
        if isinstance(content, list):
            content = "".join(part.text for part in content if getattr(part, "text", None))

        fragments = tuple(
            ToolCallDelta(
                index=tc.index,
                id=tc.id or "",
                name=(tc.function.name if tc.function else None) or "",
                arguments=(tc.function.arguments if tc.function else None) or "",
            )
            for tc in (getattr(delta, "tool_calls", None) or ())
        )
        return StreamDelta(
            text=content,
            reasoning=getattr(delta, "reasoning_content", None) or "",
            tool_calls=fragments,
            response_id=getattr(chunk, "id", "") or "",
            model=getattr(chunk, "model", "") or "",
            usage=usage,
        )

    def _usage(self, response: Any, model: str) -> UsageStats:
        usage = getattr(response, "usage", None)
        if usage is None:
            return UsageStats(model=model, provider=self.name)
        completion_details = getattr(usage, "completion_tokens_details", None)
        prompt_details = getattr(usage, "prompt_tokens_details", None)
        return UsageStats(
            prompt_tokens=usage.prompt_tokens or 0,
            completion_tokens=usage.completion_tokens or 0,
            total_tokens=usage.total_tokens or 0,
            reasoning_tokens=getattr(completion_details, "reasoning_tokens", 0) or 0,
            cached_tokens=getattr(prompt_details, "cached_tokens", 0) or 0,
            model=model,
            provider=self.name,
        )

    # ------------------------------------------------------------------
    # Request mapping
    # ------------------------------------------------------------------

    def _format_messages(self, messages: Sequence[Message]) -> List[Dict[str, Any]]:
        payload: List[Dict[str, Any]] = []
        for message in messages:
            if isinstance(message, SystemMessage):
                payload.append({"role": "system", "content": message.text})
            elif isinstance(message, UserMessage):
                payload.append({"role": "user", "content": self._format_content(message)})
            elif isinstance(message, AIMessage):
                entry: Dict[str, Any] = {"role": "assistant", "content": message.content or None}
                if message.tool_calls:
                    entry["tool_calls"] = [
                        {
                            "id": tc.id,
                            "type": "function",
                            "function": {"name": tc.name, "arguments": tc.arguments or "{}"},
                        }
                        for tc in message.tool_calls
                    ]
                payload.append(entry)
            elif isinstance(message, ToolMessage):
                payload.append(
                    {
                        "role": "tool",
                        "tool_call_id": message.tool_call_id,
                        "content": message.content,
                    }
                )
            elif isinstance(message, ResourceMessage):
                payload.append({"role": "user", "content": self._format_resource(message)})
        return payload

    def _format_content(self, message: UserMessage) -> Any:
        if not message.parts:
            return message.content
        content: List[Dict[str, Any]] = []
        if message.content:
            content.append({"type": "text", "text": message.content})
        for part in message.parts:
            formatted = self._format_part(part)
            if formatted is not None:
                content.append(formatted)
        return content

    def _format_part(self, part: ContentPart) -> Optional[Dict[str, Any]]:
        if part.type == ContentPartType.TEXT:
            return {"type": "text", "text": part.text}
        if part.type in (ContentPartType.IMAGE, ContentPartType.IMAGE_URL):
            url = part.uri
            if part.data:
                encoded = base64.b64encode(part.data).decode("utf-8")
                url = f"data:{part.mime_type or 'image/jpeg'};base64,{encoded}"
            image: Dict[str, Any] = {"url": url}
            if part.detail:
                image["detail"] = part.detail
            return {"type": "image_url", "image_url": image}
        if part.file_id:
            return {"type": "file", "file": {"file_id": part.file_id}}
        return None

    def _format_resource(self, message: ResourceMessage) -> Any:
        if isinstance(message.body, bytes) and message.mime_type.startswith("image/"):
            encoded = base64.b64encode(message.body).decode("utf-8")
            return [
                {"type": "text", "text": message.content},
                {
                    "type": "image_url",
                    "image_url": {"url": f"data:{message.mime_type};base64,{encoded}"},
                },
            ]
        text = message.content
        if isinstance(message.body, str) and message.body:
            text = f"{text}\n\n{message.body}"
        elif message.uri:
            text = f"{text} ({message.uri})"
        return text


__all__ = ["OpenAIProvider"]

"""
Per-call tunables and retry policy.

``CallConfig`` is an immutable snapshot: every tunable is optional so that
"unset" stays distinguishable from zero, and the ``with_*`` builders return a
new instance instead of mutating the one an in-flight call may be reading.

Example:
    >>> config = CallConfig().with_temperature(0.0).with_max_tokens(512)
    >>> config.to_request_kwargs()
    {'temperature': 0.0, 'max_tokens': 512}
"""

from __future__ import annotations

import random
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

from .env import env_float, env_int, load_default_env
from .retry import Backoff

DEFAULT_MAX_RETRIES = 10
DEFAULT_BASE_DELAY = 3.0
DEFAULT_MAX_DELAY = 30.0
DEFAULT_JITTER_FACTOR = 0.1


@dataclass(frozen=True)
class CallConfig:
    """
    Optional sampling and transport tunables for one model call.

    Attributes:
        temperature: Sampling temperature.
        max_tokens: Maximum tokens in the response.
        top_p: Nucleus sampling cutoff.
        frequency_penalty: Penalty for repeated tokens.
        presence_penalty: Penalty for tokens already present.
        stop_sequences: Sequences that end generation.
        context_size: Context window to request, for providers that accept one.
        max_retries: Retries after the first attempt. Overrides the RetryPolicy.
        stream: Whether the agent loop should stream responses.
        parameters: Additional provider-specific request parameters.
    """

    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    top_p: Optional[float] = None
    frequency_penalty: Optional[float] = None
    presence_penalty: Optional[float] = None
    stop_sequences: Optional[Tuple[str, ...]] = None
    context_size: Optional[int] = None
    max_retries: Optional[int] = None
    stream: Optional[bool] = None
    parameters: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.max_retries is not None and self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {self.max_retries}")
        if self.stop_sequences is not None and not isinstance(self.stop_sequences, tuple):
            object.__setattr__(self, "stop_sequences", tuple(self.stop_sequences))
        object.__setattr__(self, "parameters", dict(self.parameters))

    def with_temperature(self, temperature: float) -> "CallConfig":
        return replace(self, temperature=temperature)

    def with_max_tokens(self, max_tokens: int) -> "CallConfig":
        return replace(self, max_tokens=max_tokens)

    def with_top_p(self, top_p: float) -> "CallConfig":
        return replace(self, top_p=top_p)

    def with_frequency_penalty(self, penalty: float) -> "CallConfig":
        return replace(self, frequency_penalty=penalty)

    def with_presence_penalty(self, penalty: float) -> "CallConfig":
        return replace(self, presence_penalty=penalty)

    def with_stop_sequences(self, sequences: Sequence[str]) -> "CallConfig":
        return replace(self, stop_sequences=tuple(sequences))

    def with_context_size(self, context_size: int) -> "CallConfig":
        return replace(self, context_size=context_size)

    def with_max_retries(self, max_retries: int) -> "CallConfig":
        return replace(self, max_retries=max_retries)

    def with_stream(self, stream: bool = True) -> "CallConfig":
        return replace(self, stream=stream)

    def with_parameter(self, name: str, value: Any) -> "CallConfig":
        parameters = dict(self.parameters)
        parameters[name] = value
        return replace(self, parameters=parameters)

    def to_request_kwargs(self) -> Dict[str, Any]:
        """Return only the sampling tunables that are set, in request-argument form."""
        kwargs: Dict[str, Any] = {}
        for name in (
            "temperature",
            "max_tokens",
            "top_p",
            "frequency_penalty",
            "presence_penalty",
        ):
            value = getattr(self, name)
            if value is not None:
                kwargs[name] = value
        if self.stop_sequences:
            kwargs["stop"] = list(self.stop_sequences)
        kwargs.update(self.parameters)
        return kwargs


@dataclass(frozen=True)
class RetryPolicy:
    """
    Retry budget and backoff shape for the call dispatcher.

    Attributes:
        max_retries: Retries after the first attempt (0 = a single attempt).
        base_delay: Delay in seconds before the second attempt.
        max_delay: Cap on any single delay, before jitter.
        jitter_factor: Multiplicative jitter applied to each delay (0.1 = ±10%).
    """

    max_retries: int = DEFAULT_MAX_RETRIES
    base_delay: float = DEFAULT_BASE_DELAY
    max_delay: float = DEFAULT_MAX_DELAY
    jitter_factor: float = DEFAULT_JITTER_FACTOR

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {self.max_retries}")
        if self.base_delay < 0 or self.max_delay < 0:
            raise ValueError("retry delays must be >= 0")
        if not 0 <= self.jitter_factor < 1:
            raise ValueError(f"jitter_factor must be in [0, 1), got {self.jitter_factor}")

    @classmethod
    def from_env(cls) -> "RetryPolicy":
        """
        Build a policy from ``AGENTCORE_*`` environment variables.

        Reads AGENTCORE_MAX_RETRIES, AGENTCORE_RETRY_BASE_DELAY,
        AGENTCORE_RETRY_MAX_DELAY and AGENTCORE_RETRY_JITTER; unset variables
        keep their defaults. A .env file in the working directory is honoured.
        """
        load_default_env()
        return cls(
            max_retries=env_int("AGENTCORE_MAX_RETRIES", DEFAULT_MAX_RETRIES),
            base_delay=env_float("AGENTCORE_RETRY_BASE_DELAY", DEFAULT_BASE_DELAY),
            max_delay=env_float("AGENTCORE_RETRY_MAX_DELAY", DEFAULT_MAX_DELAY),
            jitter_factor=env_float("AGENTCORE_RETRY_JITTER", DEFAULT_JITTER_FACTOR),
        )

    def backoff(self, rng: Optional[random.Random] = None) -> Backoff:
        return Backoff(
            base_delay=self.base_delay,
            max_delay=self.max_delay,
            jitter_factor=self.jitter_factor,
            rng=rng,
        )


__all__ = ["CallConfig", "RetryPolicy"]

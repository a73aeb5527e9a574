"""Provider implementations for LLM backends."""

from .base import Provider
from .openai_provider import OpenAIProvider
from .registry import ModelInfo, ModelRegistry
from .stubs import DummyProvider, LocalProvider, ReplayProvider

__all__ = [
    "Provider",
    "OpenAIProvider",
    "LocalProvider",
    "DummyProvider",
    "ReplayProvider",
    "ModelInfo",
    "ModelRegistry",
]

"""
Registry mapping ``provider/model`` identifiers to model factories.

Example:
    >>> registry = ModelRegistry.with_defaults()
    >>> model = registry.new("local/echo")
    >>> model.name
    'local/echo'
"""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Dict, List, Optional

from ..exceptions import InvalidModelInfoError, ModelNotFoundError

if TYPE_CHECKING:
    from ..model import Model

logger = logging.getLogger(__name__)

# factory(model_name, api_key, base_url) -> Model
ModelFactory = Callable[[str, str, str], "Model"]

OPENAI_CHAT_MODELS = ("gpt-4o", "gpt-4o-mini", "gpt-4.1", "gpt-4.1-mini", "o3-mini")


@dataclass(frozen=True)
class ModelInfo:
    """
    Registration entry for one model.

    Attributes:
        identifier: Lookup key, ``provider/model``.
        provider: Provider name.
        model: Model name passed to the provider.
        factory: Builds a ``Model`` from (model_name, api_key, base_url).
        api_key_name: Environment variable holding the API key.
        base_url: Optional endpoint override.
        family: Optional model family label.
        requires_api_key: False for offline providers.
    """

    identifier: str
    provider: str
    model: str
    factory: Optional[ModelFactory]
    api_key_name: str = ""
    base_url: str = ""
    family: str = ""
    requires_api_key: bool = True

    def validate(self) -> None:
        """
        Raises:
            InvalidModelInfoError: If a required field is missing.
        """
        if not self.identifier:
            raise InvalidModelInfoError("identifier", "identifier cannot be empty")
        if "/" not in self.identifier:
            raise InvalidModelInfoError("identifier", "expected 'provider/modelName' format")
        if not self.provider:
            raise InvalidModelInfoError("provider", "provider cannot be empty")
        if not self.model:
            raise InvalidModelInfoError("model", "model name cannot be empty")
        if self.factory is None:
            raise InvalidModelInfoError("factory", "factory cannot be None")
        if self.requires_api_key and not self.api_key_name:
            raise InvalidModelInfoError("api_key_name", "API key name cannot be empty")


class ModelRegistry:
    """Thread-safe registry of model factories, owned by the caller."""

    def __init__(self) -> None:
        self._models: Dict[str, ModelInfo] = {}
        self._lock = threading.RLock()

    def register(self, info: ModelInfo) -> None:
        """Register a model. Re-registering an identifier overwrites it with a warning."""
        info.validate()
        with self._lock:
            if info.identifier in self._models:
                logger.warning("overwriting model registration %r", info.identifier)
            self._models[info.identifier] = info

    def get(self, identifier: str) -> ModelInfo:
        """
        Raises:
            ModelNotFoundError: If the identifier is not registered.
        """
        with self._lock:
            info = self._models.get(identifier)
        if info is None:
            raise ModelNotFoundError(identifier)
        return info

    def models(self) -> List[ModelInfo]:
        """Return all registrations, sorted by identifier."""
        with self._lock:
            return sorted(self._models.values(), key=lambda info: info.identifier)

    def __contains__(self, identifier: object) -> bool:
        with self._lock:
            return identifier in self._models

    def new(self, identifier: str, api_key: str = "") -> "Model":
        """
        Build a model from its identifier.

        When ``api_key`` is empty the key is read from the entry's
        ``api_key_name`` environment variable.

        Raises:
            ModelNotFoundError: If the identifier is not registered.
        """
        info = self.get(identifier)
        if not api_key and info.api_key_name:
            api_key = os.getenv(info.api_key_name, "")
        assert info.factory is not None
        return info.factory(info.model, api_key, info.base_url)

    @classmethod
    def with_defaults(cls) -> "ModelRegistry":
        """Return a registry with ``local/echo`` and the OpenAI chat models registered."""
        from ..model import Model
        from .openai_provider import OpenAIProvider
        from .stubs import LocalProvider

        def local_factory(model_name: str, api_key: str, base_url: str) -> Model:
            return Model(LocalProvider(), model_name)

        def openai_factory(model_name: str, api_key: str, base_url: str) -> Model:
            provider = OpenAIProvider(
                api_key=api_key or None,
                default_model=model_name,
                base_url=base_url or None,
            )
            return Model(provider, model_name)

        registry = cls()
        registry.register(
            ModelInfo(
                identifier="local/echo",
                provider="local",
                model="echo",
                factory=local_factory,
                requires_api_key=False,
            )
        )
        for model_name in OPENAI_CHAT_MODELS:
            registry.register(
                ModelInfo(
                    identifier=f"openai/{model_name}",
                    provider="openai",
                    model=model_name,
                    factory=openai_factory,
                    api_key_name="OPENAI_API_KEY",
                    family="gpt",
                )
            )
        return registry


__all__ = ["ModelInfo", "ModelRegistry", "OPENAI_CHAT_MODELS"]

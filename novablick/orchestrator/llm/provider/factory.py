"""
Provider registry. Concrete providers register themselves on import; the
engine asks for one by the name stored in its connection settings.
"""

import logging
from typing import Any, Dict, Optional, Tuple, Type, TypeVar

from .base import LLMConnectionConfig, LLMProvider, LLMProviderName, ProviderNotRegisteredError, coerce_provider_name

ProviderType = TypeVar("ProviderType", bound=LLMProvider)

_PROVIDERS: Dict[LLMProviderName, Type[LLMProvider]] = {}


def register_provider(cls: Type[ProviderType]) -> Type[ProviderType]:
    if not issubclass(cls, LLMProvider):
        raise TypeError(f"{cls.__name__} is not an LLMProvider.")
    existing = _PROVIDERS.get(cls.name)
    if existing is not None and existing is not cls:
        raise ValueError(f"Provider '{cls.name.value}' is already registered by {existing.__name__}.")
    _PROVIDERS[cls.name] = cls
    return cls


def get_provider_class(name: LLMProviderName | str) -> Type[LLMProvider]:
    provider_name = coerce_provider_name(name)
    if provider_name not in _PROVIDERS:
        raise ProviderNotRegisteredError(f"No provider registered for '{provider_name.value}'.")
    return _PROVIDERS[provider_name]


def registered_providers() -> Tuple[LLMProviderName, ...]:
    return tuple(_PROVIDERS)


def create_provider(connection: Any, *, logger: Optional[logging.Logger] = None) -> LLMProvider:
    """Build the provider for ``connection`` (a config, a mapping or a settings-like object)."""
    config = LLMConnectionConfig.from_connection(connection)
    return get_provider_class(config.provider)(config, logger=logger)


__all__ = ["create_provider", "get_provider_class", "register_provider", "registered_providers"]

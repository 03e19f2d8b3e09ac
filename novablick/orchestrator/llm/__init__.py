from .json_stream import JsonArrayStreamParser
from .provider import (
    LLMConnectionConfig,
    LLMProvider,
    LLMProviderName,
    ProviderConfigurationError,
    ProviderNotRegisteredError,
    create_provider,
    message_text,
)

__all__ = [
    "JsonArrayStreamParser",
    "LLMConnectionConfig",
    "LLMProvider",
    "LLMProviderName",
    "ProviderConfigurationError",
    "ProviderNotRegisteredError",
    "create_provider",
    "message_text",
]

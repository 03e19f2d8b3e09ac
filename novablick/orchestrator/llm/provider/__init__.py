from .base import (
    LLMConnectionConfig,
    LLMProvider,
    LLMProviderName,
    ProviderConfigurationError,
    ProviderNotRegisteredError,
    coerce_provider_name,
    message_text,
)
from .factory import (
    create_provider,
    get_provider_class,
    register_provider,
    registered_providers,
)

# Import concrete providers to register them with the factory.
from .anthropic import AnthropicProvider
from .azure import AzureOpenAIProvider
from .openai import OpenAIProvider

__all__ = [
    "AnthropicProvider",
    "AzureOpenAIProvider",
    "LLMConnectionConfig",
    "LLMProvider",
    "LLMProviderName",
    "OpenAIProvider",
    "ProviderConfigurationError",
    "ProviderNotRegisteredError",
    "coerce_provider_name",
    "create_provider",
    "get_provider_class",
    "message_text",
    "register_provider",
    "registered_providers",
]

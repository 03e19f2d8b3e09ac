import pytest

from novablick.orchestrator.llm.provider import (
    LLMConnectionConfig,
    LLMProviderName,
    ProviderConfigurationError,
    ProviderNotRegisteredError,
    create_provider,
    registered_providers,
)
from novablick.orchestrator.llm.provider.anthropic import AnthropicProvider
from novablick.orchestrator.llm.provider.azure import AzureOpenAIProvider
from novablick.orchestrator.llm.provider.openai import OpenAIProvider
from novablick.orchestrator.llm.provider.base import message_text


def test_every_provider_is_registered() -> None:
    assert set(registered_providers()) == set(LLMProviderName)


def test_create_provider_from_mapping() -> None:
    provider = create_provider({"provider": "openai", "model_name": "gpt-4.1", "api_key": "sk-test"})

    assert isinstance(provider, OpenAIProvider)
    assert provider.model_name == "gpt-4.1"


def test_openai_model_override_wins() -> None:
    provider = create_provider(
        {"provider": "openai", "model_name": "gpt-4.1", "api_key": "sk-test", "configuration": {"max_retries": 1}}
    )

    chat_model = provider.create_chat_model(model="gpt-5-nano")

    assert chat_model.model_name == "gpt-5-nano"


def test_create_provider_from_object_with_model_attribute() -> None:
    class Connection:
        provider = "anthropic"
        model = "claude-sonnet"
        api_key = "key"
        configuration = None

    provider = create_provider(Connection())

    assert isinstance(provider, AnthropicProvider)
    assert provider.config.configuration == {}


def test_unknown_provider_is_rejected() -> None:
    with pytest.raises(ProviderNotRegisteredError):
        create_provider({"provider": "mystery", "model_name": "m"})


def test_connection_requires_model_name() -> None:
    with pytest.raises(ProviderConfigurationError):
        LLMConnectionConfig.from_connection({"provider": "openai"})


def test_azure_requires_deployment_and_endpoint() -> None:
    provider = create_provider({"provider": "azure", "model_name": "gpt-4.1", "api_key": "key"})
    assert isinstance(provider, AzureOpenAIProvider)

    with pytest.raises(ProviderConfigurationError, match="deployment_name"):
        provider.create_chat_model()

    with_deployment = create_provider(
        {"provider": "azure", "model_name": "gpt-4.1", "configuration": {"deployment_name": "prod"}}
    )
    with pytest.raises(ProviderConfigurationError, match="azure_endpoint"):
        with_deployment.create_chat_model()


def test_message_text_flattens_content_blocks() -> None:
    blocks = [{"type": "text", "text": "North "}, {"type": "tool_use", "id": "x"}, "leads"]

    assert message_text(blocks) == "North leads"
    assert message_text(None) == ""

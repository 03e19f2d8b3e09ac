from typing import Any

from langchain_openai import AzureChatOpenAI

from ..base import LLMProvider, LLMProviderName, ProviderConfigurationError
from ..factory import register_provider

DEFAULT_API_VERSION = "2024-10-21"


@register_provider
class AzureOpenAIProvider(LLMProvider):
    """
    Azure OpenAI deployments. ``configuration`` must name the deployment
    (``deployment_name``) and the resource endpoint (``azure_endpoint``); a
    per-call model override selects a different deployment.
    """

    name = LLMProviderName.AZURE
    config_keys = frozenset({"temperature", "timeout", "max_retries", "max_tokens", "default_headers"})

    def _first_configured(self, *keys: str) -> Any:
        return next((self.configuration[key] for key in keys if self.configuration.get(key)), None)

    def create_chat_model(self, **overrides: Any) -> AzureChatOpenAI:
        deployment = overrides.pop("model", None) or self._first_configured(
            "deployment_name", "deployment", "azure_deployment"
        )
        if not deployment:
            raise ProviderConfigurationError(
                "Azure OpenAI configuration requires 'deployment_name' (or 'deployment'/'azure_deployment')."
            )
        endpoint = self._first_configured("azure_endpoint", "endpoint")
        if not endpoint:
            raise ProviderConfigurationError("Azure OpenAI configuration requires 'azure_endpoint' (or 'endpoint').")

        params = self._chat_params(overrides)
        params.update(
            azure_deployment=deployment,
            azure_endpoint=endpoint,
            api_version=self.configuration.get("api_version") or DEFAULT_API_VERSION,
        )
        return AzureChatOpenAI(**params)


__all__ = ["AzureOpenAIProvider"]

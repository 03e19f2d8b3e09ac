from typing import Any

from langchain_anthropic import ChatAnthropic

from ..base import LLMProvider, LLMProviderName
from ..factory import register_provider

DEFAULT_MAX_TOKENS = 4096


@register_provider
class AnthropicProvider(LLMProvider):
    name = LLMProviderName.ANTHROPIC
    config_keys = frozenset(
        {
            "temperature",
            "top_p",
            "top_k",
            "timeout",
            "max_retries",
            "max_tokens",
            "default_headers",
            "stop_sequences",
        }
    )

    def create_chat_model(self, **overrides: Any) -> ChatAnthropic:
        params = self._chat_params(overrides)
        # The Messages API requires an explicit output budget.
        params.setdefault("max_tokens", self.configuration.get("max_output_tokens") or DEFAULT_MAX_TOKENS)
        return ChatAnthropic(**params)


__all__ = ["AnthropicProvider"]

from typing import Any

from langchain_openai import ChatOpenAI

from ..base import LLMProvider, LLMProviderName
from ..factory import register_provider


@register_provider
class OpenAIProvider(LLMProvider):
    name = LLMProviderName.OPENAI
    config_keys = frozenset(
        {
            "temperature",
            "timeout",
            "max_retries",
            "max_tokens",
            "base_url",
            "organization",
            "default_headers",
            "reasoning_effort",
        }
    )

    def create_chat_model(self, **overrides: Any) -> ChatOpenAI:
        params = self._chat_params(overrides)
        # Streamed chunks only carry token usage when requested.
        params.setdefault("stream_usage", True)
        return ChatOpenAI(**params)


__all__ = ["OpenAIProvider"]

"""
Provider abstraction for the chat models the agents call.

Agents depend on three async operations only: a structured single object, a
streamed array of structured elements and a streamed (optionally tool-calling)
chat turn. ``LLMProvider`` implements them on top of a langchain
``BaseChatModel`` built by the concrete provider.
"""

import json
import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, AsyncIterator, Dict, List, Mapping, Optional, Sequence, Type, TypeVar, Union

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessageChunk, BaseMessage, SystemMessage
from pydantic import BaseModel, Field, ValidationError

from ..json_stream import JsonArrayStreamParser

ModelT = TypeVar("ModelT", bound=BaseModel)


class LLMProviderName(str, Enum):
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    AZURE = "azure"


class ProviderConfigurationError(RuntimeError):
    """Raised when a provider cannot be constructed from its configuration."""


class ProviderNotRegisteredError(LookupError):
    """Raised when no provider class is registered for a provider name."""


def coerce_provider_name(value: Union[str, LLMProviderName]) -> LLMProviderName:
    if isinstance(value, LLMProviderName):
        return value
    try:
        return LLMProviderName(str(value).strip().lower())
    except ValueError as exc:
        raise ProviderNotRegisteredError(f"Unknown LLM provider '{value}'.") from exc


class LLMConnectionConfig(BaseModel):
    provider: LLMProviderName
    model_name: str
    api_key: Optional[str] = None
    configuration: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_connection(cls, connection: Any) -> "LLMConnectionConfig":
        """Accept a config, a mapping or any object exposing the same attributes."""
        if isinstance(connection, cls):
            return connection
        if isinstance(connection, Mapping):
            data = dict(connection)
        else:
            data = {
                "provider": getattr(connection, "provider", None),
                "model_name": getattr(connection, "model_name", None) or getattr(connection, "model", None),
                "api_key": getattr(connection, "api_key", None),
                "configuration": getattr(connection, "configuration", None) or {},
            }
        if data.get("provider") is None or not data.get("model_name"):
            raise ProviderConfigurationError("LLM connection requires 'provider' and 'model_name'.")
        data["provider"] = coerce_provider_name(data["provider"])
        return cls.model_validate(data)


def message_text(message: Union[BaseMessage, str, List[Any], None]) -> str:
    """Flatten langchain message content (plain text or content blocks) to text."""
    content: Any = message.content if isinstance(message, BaseMessage) else message
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    parts: List[str] = []
    for block in content:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(str(block.get("text") or ""))
    return "".join(parts)


def _with_system(messages: Sequence[BaseMessage], system: Optional[str]) -> List[BaseMessage]:
    prompt = list(messages)
    if system:
        prompt.insert(0, SystemMessage(content=system))
    return prompt


class LLMProvider(ABC):
    """Base class for LLM providers."""

    name: LLMProviderName
    # Configuration keys forwarded to the chat model constructor.
    config_keys: frozenset[str] = frozenset()

    def __init__(self, config: LLMConnectionConfig, *, logger: Optional[logging.Logger] = None) -> None:
        self.config = config
        self.logger = logger or logging.getLogger(__name__)

    @property
    def model_name(self) -> str:
        return self.config.model_name

    @property
    def api_key(self) -> Optional[str]:
        return self.config.api_key

    @property
    def configuration(self) -> Dict[str, Any]:
        return self.config.configuration

    @abstractmethod
    def create_chat_model(self, **overrides: Any) -> BaseChatModel:
        """Build the langchain chat model; ``overrides`` win over stored configuration."""

    @staticmethod
    def _clean_kwargs(params: Dict[str, Any]) -> Dict[str, Any]:
        return {key: value for key, value in params.items() if value is not None}

    def _chat_params(self, overrides: Dict[str, Any]) -> Dict[str, Any]:
        params = {key: value for key, value in self.configuration.items() if key in self.config_keys}
        params.update(overrides)
        params = self._clean_kwargs(params)
        params.setdefault("model", self.model_name)
        if self.api_key:
            params.setdefault("api_key", self.api_key)
        return params

    def _chat_model(self, model: Optional[str]) -> BaseChatModel:
        overrides: Dict[str, Any] = {}
        if model:
            overrides["model"] = model
        return self.create_chat_model(**overrides)

    async def agenerate_object(
        self,
        messages: Sequence[BaseMessage],
        *,
        schema: Type[ModelT],
        system: Optional[str] = None,
        model: Optional[str] = None,
    ) -> ModelT:
        structured = self._chat_model(model).with_structured_output(schema)
        result = await structured.ainvoke(_with_system(messages, system))
        if isinstance(result, schema):
            return result
        return schema.model_validate(result)

    async def astream_array(
        self,
        messages: Sequence[BaseMessage],
        *,
        item_schema: Type[ModelT],
        system: Optional[str] = None,
        model: Optional[str] = None,
    ) -> AsyncIterator[ModelT]:
        """Stream a JSON array, yielding each element once it validates against ``item_schema``."""

        schema_hint = json.dumps(item_schema.model_json_schema(by_alias=True))
        instructions = (
            "Respond with a JSON array only, no prose. "
            f"Every element must match this JSON schema: {schema_hint}"
        )
        prompt = f"{system}\n\n{instructions}" if system else instructions
        parser = JsonArrayStreamParser(logger=self.logger)

        async for chunk in self._chat_model(model).astream(_with_system(messages, prompt)):
            for element in parser.feed(message_text(chunk)):
                try:
                    yield item_schema.model_validate(element)
                except ValidationError as exc:
                    self.logger.warning("Skipping invalid %s element: %s", item_schema.__name__, exc)
            if parser.finished:
                break

    async def astream_chat(
        self,
        messages: Sequence[BaseMessage],
        *,
        system: Optional[str] = None,
        tools: Optional[Sequence[Dict[str, Any]]] = None,
        tool_choice: Optional[str] = None,
        model: Optional[str] = None,
    ) -> AsyncIterator[AIMessageChunk]:
        chat_model: Any = self._chat_model(model)
        if tools:
            chat_model = chat_model.bind_tools(list(tools), tool_choice=tool_choice)
        async for chunk in chat_model.astream(_with_system(messages, system)):
            yield chunk


__all__ = [
    "LLMConnectionConfig",
    "LLMProvider",
    "LLMProviderName",
    "ProviderConfigurationError",
    "ProviderNotRegisteredError",
    "coerce_provider_name",
    "message_text",
]

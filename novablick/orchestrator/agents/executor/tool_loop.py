"""
Bounded LLM/tool round loop shared by plan steps and direct responses.
"""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from langchain_core.messages import AIMessage, AIMessageChunk, BaseMessage, ToolMessage, message_chunk_to_message

from novablick.orchestrator.contracts import (
    TextDeltaEvent,
    TextEndEvent,
    TextStartEvent,
    ToolInputEvent,
    ToolOutputEvent,
)
from novablick.orchestrator.errors import AgentInvocationError, EventStreamClosedError, LLMInvocationError
from novablick.orchestrator.events import IEventEmitter
from novablick.orchestrator.llm.provider import LLMProvider, message_text
from novablick.orchestrator.tools.registry import ToolDescriptor, ToolRegistry, ToolResult

DEFAULT_MAX_TOOL_ROUNDS = 5


@dataclass(slots=True)
class ToolLoopResult:
    messages: List[BaseMessage] = field(default_factory=list)
    rounds: int = 0
    tool_calls: int = 0

    @property
    def text(self) -> str:
        parts = [message_text(message) for message in self.messages if isinstance(message, AIMessage)]
        return "\n".join(part for part in parts if part.strip())


class ToolCallingLoop:
    """
    Runs up to ``max_tool_rounds`` LLM rounds. A round that requests tools has
    every call executed through the registry and answered with a tool message;
    a round without tool calls ends the loop.
    """

    def __init__(
        self,
        *,
        llm: LLMProvider,
        registry: ToolRegistry,
        emitter: IEventEmitter,
        model: Optional[str] = None,
        max_tool_rounds: int = DEFAULT_MAX_TOOL_ROUNDS,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        if max_tool_rounds < 1:
            raise ValueError("max_tool_rounds must be at least 1.")
        self._llm = llm
        self._registry = registry
        self._emitter = emitter
        self._model = model
        self.max_tool_rounds = max_tool_rounds
        self.logger = logger or logging.getLogger(__name__)

    async def run(
        self,
        conversation: Sequence[BaseMessage],
        *,
        system: str,
        tools: Sequence[ToolDescriptor],
        stage: str,
        forced_tool: Optional[ToolDescriptor] = None,
        stream_text: bool = False,
    ) -> ToolLoopResult:
        result = ToolLoopResult()
        schemas = [tool.to_tool_schema() for tool in tools]

        for round_index in range(self.max_tool_rounds):
            # Only the opening round is forced; later rounds may close with text.
            tool_choice: Optional[str] = None
            if forced_tool is not None and round_index == 0:
                tool_choice = forced_tool.name.value

            response = await self._call_llm(
                [*conversation, *result.messages],
                system=system,
                tools=schemas,
                tool_choice=tool_choice,
                stage=stage,
                stream_text=stream_text,
            )
            result.messages.append(response)
            result.rounds += 1

            if not response.tool_calls and not response.invalid_tool_calls:
                break

            for call in response.tool_calls:
                call_id = call.get("id") or str(uuid.uuid4())
                tool_result = await self._invoke(call_id, call["name"], call.get("args") or {}, tools)
                result.messages.append(
                    ToolMessage(content=tool_result.as_message_content(), tool_call_id=call_id, name=call["name"])
                )
                result.tool_calls += 1

            for invalid in response.invalid_tool_calls:
                call_id = invalid.get("id") or str(uuid.uuid4())
                error = f"Invalid arguments for {invalid.get('name')}: {invalid.get('error') or 'unparseable JSON'}"
                await self._emitter.emit(
                    ToolInputEvent(
                        tool_call_id=call_id,
                        tool_name=invalid.get("name") or "",
                        input={"arguments": invalid.get("args")},
                    )
                )
                await self._emitter.emit(ToolOutputEvent(tool_call_id=call_id, output={"success": False, "error": error}))
                result.messages.append(ToolMessage(content=error, tool_call_id=call_id, name=invalid.get("name") or ""))

        return result

    async def _invoke(
        self,
        call_id: str,
        name: str,
        arguments: Dict[str, Any],
        tools: Sequence[ToolDescriptor],
    ) -> ToolResult:
        await self._emitter.emit(ToolInputEvent(tool_call_id=call_id, tool_name=name, input=arguments))
        tool_result = await self._registry.invoke(name, arguments, allowed=tools)
        if not tool_result.success:
            self.logger.info("Tool %s returned a failure: %s", name, tool_result.as_message_content()[:500])
        await self._emitter.emit(ToolOutputEvent(tool_call_id=call_id, output=tool_result.output))
        return tool_result

    async def _call_llm(
        self,
        messages: List[BaseMessage],
        *,
        system: str,
        tools: List[Dict[str, Any]],
        tool_choice: Optional[str],
        stage: str,
        stream_text: bool,
    ) -> AIMessage:
        aggregate: Optional[AIMessageChunk] = None
        text_id: Optional[str] = None
        try:
            async for chunk in self._llm.astream_chat(
                messages,
                system=system,
                tools=tools or None,
                tool_choice=tool_choice,
                model=self._model,
            ):
                aggregate = chunk if aggregate is None else aggregate + chunk
                delta = message_text(chunk)
                if stream_text and delta:
                    if text_id is None:
                        text_id = str(uuid.uuid4())
                        await self._emitter.emit(TextStartEvent(id=text_id))
                    await self._emitter.emit(TextDeltaEvent(id=text_id, delta=delta))
        except (AgentInvocationError, EventStreamClosedError):
            raise
        except Exception as exc:
            raise LLMInvocationError(stage, str(exc) or type(exc).__name__) from exc

        if text_id is not None:
            await self._emitter.emit(TextEndEvent(id=text_id))

        if aggregate is None:
            return AIMessage(content="")
        message = message_chunk_to_message(aggregate)
        assert isinstance(message, AIMessage)
        return message


__all__ = ["DEFAULT_MAX_TOOL_ROUNDS", "ToolCallingLoop", "ToolLoopResult"]

"""
Conversion of inbound chat messages into the langchain messages the providers consume.
"""

from typing import List, Sequence

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from novablick.orchestrator.contracts import ChatMessage


def to_langchain_messages(messages: Sequence[ChatMessage]) -> List[BaseMessage]:
    converted: List[BaseMessage] = []
    for message in messages:
        if message.role == "system":
            converted.append(SystemMessage(content=message.content))
        elif message.role == "user":
            converted.append(HumanMessage(content=message.content))
        elif message.role == "assistant":
            # Earlier reasoning is replayed as plain text so later turns can build on it.
            if message.reasoning:
                content = f"{message.reasoning}\n\n{message.content}" if message.content else message.reasoning
            else:
                content = message.content
            converted.append(AIMessage(content=content))
        else:
            # Inbound tool results carry no originating tool call, so they are replayed as text.
            converted.append(AIMessage(content=f"[tool result {message.tool_call_id}]\n{message.content}"))
    return converted


__all__ = ["to_langchain_messages"]

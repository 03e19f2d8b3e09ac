import asyncio

import pytest

from novablick.orchestrator.agents.conversation import to_langchain_messages
from novablick.orchestrator.contracts import ChatMessage, ErrorEvent, TextStartEvent, dump_event
from novablick.orchestrator.errors import EventStreamClosedError
from novablick.orchestrator.events import EventStream


def test_events_are_delivered_in_order_and_backlog_drains_after_close() -> None:
    async def scenario():
        stream = EventStream(maxsize=8)
        for index in range(3):
            await stream.emit(TextStartEvent(id=str(index)))
        stream.close()
        stream.close()
        return [event.id async for event in stream]

    assert asyncio.run(scenario()) == ["0", "1", "2"]


def test_emit_after_close_raises() -> None:
    async def scenario():
        stream = EventStream()
        stream.close()
        await stream.emit(TextStartEvent(id="late"))

    with pytest.raises(EventStreamClosedError):
        asyncio.run(scenario())


def test_full_queue_applies_backpressure_to_the_producer() -> None:
    async def scenario():
        stream = EventStream(maxsize=1)
        await stream.emit(TextStartEvent(id="a"))
        blocked = asyncio.create_task(stream.emit(TextStartEvent(id="b")))
        await asyncio.sleep(0.01)
        was_blocked = not blocked.done()
        received = []
        async for event in stream:
            received.append(event.id)
            if len(received) == 2:
                break
        await blocked
        return was_blocked, received

    was_blocked, received = asyncio.run(scenario())

    assert was_blocked
    assert received == ["a", "b"]


def test_events_serialize_to_camel_case() -> None:
    assert dump_event(ErrorEvent(error_text="boom")) == {"type": "error", "errorText": "boom"}


def test_conversation_replays_reasoning_and_tool_results_as_text() -> None:
    messages = to_langchain_messages(
        [
            ChatMessage(role="system", content="Be brief."),
            ChatMessage(role="user", content="Total sales?"),
            ChatMessage(role="assistant", content="120 units.", reasoning="Summed the column."),
            ChatMessage.model_validate({"role": "tool", "content": "{\"rows\": []}", "toolCallId": "call-1"}),
        ]
    )

    assert [message.type for message in messages] == ["system", "human", "ai", "ai"]
    assert messages[2].content == "Summed the column.\n\n120 units."
    assert messages[3].content == "[tool result call-1]\n{\"rows\": []}"


def test_tool_message_without_call_id_is_rejected() -> None:
    with pytest.raises(ValueError):
        ChatMessage(role="tool", content="orphan")

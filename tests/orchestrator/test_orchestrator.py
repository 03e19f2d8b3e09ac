import asyncio

import pytest

from fakes import RecordingEmitter, ScriptedLLM, StubExecutor, make_step, text_chunks, tool_call
from novablick.orchestrator.agents import DataAnalystOrchestrator, EngineConfig
from novablick.orchestrator.agents.supervisor.orchestrator import UNEXPECTED_ERROR_TEXT
from novablick.orchestrator.contracts import ChatRequest, PlanningDecision
from novablick.orchestrator.errors import EventStreamClosedError, LLMInvocationError

CONFIG = EngineConfig(reasoning_model="gpt-5-nano", non_reasoning_model="gpt-4.1")
PLAN = PlanningDecision(requires_planning=True, reasoning="Needs data and a chart.")
CHART_ARGS = {
    "data": [{"region": "north", "total": 10}],
    "config": {"metadata": {"title": "Totals", "description": "By region"}, "total": {"label": "Total"}},
}


def _request(text: str = "Show sales by region") -> ChatRequest:
    return ChatRequest.model_validate(
        {
            "messages": [{"role": "user", "content": text}],
            "datasets": [{"id": "A", "name": "Sales"}],
        }
    )


async def _collect(orchestrator: DataAnalystOrchestrator, request: ChatRequest):
    return [event async for event in orchestrator.stream(request)]


class FailingCatalog:
    async def describe(self, dataset_ids):
        raise ConnectionError("catalog offline")

    async def fetch_rows(self, dataset_id, *, limit=5, offset=0):
        return []


class HangingLLM(ScriptedLLM):
    def __init__(self) -> None:
        super().__init__()
        self.started = asyncio.Event()
        self.cancelled = False

    async def astream_chat(self, messages, *, system=None, tools=None, tool_choice=None, model=None):
        self.started.set()
        try:
            await asyncio.sleep(3600)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        yield text_chunks("never")[0]


class ClosedStreamLLM(ScriptedLLM):
    async def astream_chat(self, messages, *, system=None, tools=None, tool_choice=None, model=None):
        raise EventStreamClosedError("consumer went away")
        yield


def test_simple_question_is_answered_directly_with_all_tools() -> None:
    llm = ScriptedLLM(chat_turns=[text_chunks("Hello", " there!")])
    orchestrator = DataAnalystOrchestrator(llm=llm, executor=StubExecutor(), config=CONFIG)

    events = asyncio.run(_collect(orchestrator, _request("hi")))

    assert [event.type for event in events] == [
        "reasoning-start",
        "reasoning-delta",
        "reasoning-end",
        "text-start",
        "text-delta",
        "text-delta",
        "text-end",
    ]
    assert "".join(event.delta for event in events if event.type == "text-delta") == "Hello there!"
    assert sorted(llm.chat_calls[0]["tools"]) == sorted(
        ["query_dataset", "run_code", "display_bar_chart", "display_line_chart", "display_pie_chart"]
    )
    assert llm.chat_calls[0]["model"] == "gpt-4.1"
    assert llm.object_calls[0]["model"] == "gpt-4.1"


def test_empty_plan_falls_back_to_direct_response() -> None:
    llm = ScriptedLLM(decision=PLAN, steps=[], chat_turns=[text_chunks("Here you go.")])
    orchestrator = DataAnalystOrchestrator(llm=llm, executor=StubExecutor(), config=CONFIG)

    events = asyncio.run(_collect(orchestrator, _request()))

    types = [event.type for event in events]
    assert types[:4] == ["reasoning-start", "reasoning-delta", "reasoning-end", "data-plan"]
    assert events[3].data.steps == []
    assert types[4:] == ["text-start", "text-delta", "text-end"]
    assert "data-step-status" not in types


def test_planned_request_runs_steps_then_synthesis() -> None:
    executor = StubExecutor(rows=[{"region": "north", "total": 10}])
    llm = ScriptedLLM(
        decision=PLAN,
        steps=[make_step("step-1", ["query_dataset"]), make_step("step-2", ["display_bar_chart"])],
        chat_turns=[
            tool_call("query_dataset", {"sqlQuery": "SELECT data FROM dataset_rows WHERE dataset_id = 'A'"}),
            text_chunks("North leads with 10."),
            tool_call("display_bar_chart", CHART_ARGS, "call-2"),
            text_chunks("Chart displayed."),
            text_chunks("North is ahead."),
        ],
    )
    orchestrator = DataAnalystOrchestrator(llm=llm, executor=executor, config=CONFIG)

    events = asyncio.run(_collect(orchestrator, _request()))

    assert [event.type for event in events] == [
        "reasoning-start",
        "reasoning-delta",
        "reasoning-end",
        "data-plan",
        "data-plan",
        "data-plan",
        "data-step-status",
        "tool-input-available",
        "tool-output-available",
        "data-step-status",
        "data-step-status",
        "tool-input-available",
        "data-chart",
        "tool-output-available",
        "data-step-status",
        "text-start",
        "text-delta",
        "text-end",
    ]
    assert executor.executed == ["SELECT data FROM dataset_rows WHERE dataset_id = 'A' LIMIT 1000"]
    assert [call["model"] for call in llm.chat_calls] == ["gpt-5-nano"] * 4 + ["gpt-4.1"]
    assert llm.chat_calls[-1]["tools"] == []
    plan_id = events[3].id
    assert all(event.data.plan_id == plan_id for event in events if event.type == "data-step-status")
    # Synthesis sees every step's messages.
    assert len(llm.chat_calls[-1]["messages"]) == 1 + 3 + 3


def test_run_raises_on_llm_failure() -> None:
    orchestrator = DataAnalystOrchestrator(llm=ScriptedLLM(fail_on="decision"), executor=StubExecutor())

    with pytest.raises(LLMInvocationError):
        asyncio.run(orchestrator.run(_request(), RecordingEmitter()))


def test_llm_failure_ends_stream_with_error_event() -> None:
    llm = ScriptedLLM(decision=PLAN, steps=[make_step("step-1")], fail_on="chat")
    orchestrator = DataAnalystOrchestrator(llm=llm, executor=StubExecutor())

    events = asyncio.run(_collect(orchestrator, _request()))

    assert events[-1].type == "error"
    assert events[-1].error_text == "step step-1: rate limited"
    assert [event.type for event in events].count("error") == 1


def test_unexpected_failure_is_reported_with_generic_text() -> None:
    orchestrator = DataAnalystOrchestrator(llm=ClosedStreamLLM(), executor=StubExecutor())

    events = asyncio.run(_collect(orchestrator, _request()))

    assert events[-1].type == "error"
    assert events[-1].error_text == UNEXPECTED_ERROR_TEXT


def test_catalog_failure_does_not_stop_the_run() -> None:
    llm = ScriptedLLM(chat_turns=[text_chunks("Answer.")])
    orchestrator = DataAnalystOrchestrator(llm=llm, executor=StubExecutor(), catalog=FailingCatalog())

    events = asyncio.run(_collect(orchestrator, _request()))

    assert events[-1].type == "text-end"


def test_closing_the_stream_cancels_the_run() -> None:
    llm = HangingLLM()
    orchestrator = DataAnalystOrchestrator(llm=llm, executor=StubExecutor())

    async def consume_then_close() -> None:
        stream = orchestrator.stream(_request())
        for _ in range(3):
            await stream.__anext__()
        await asyncio.wait_for(llm.started.wait(), timeout=5)
        await stream.aclose()

    asyncio.run(consume_then_close())

    assert llm.cancelled is True

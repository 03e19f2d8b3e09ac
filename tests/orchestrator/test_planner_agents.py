import asyncio

import pytest
from langchain_core.language_models.fake_chat_models import GenericFakeChatModel
from langchain_core.messages import AIMessage, HumanMessage

from fakes import RecordingEmitter, ScriptedLLM, StubExecutor, make_step, text_chunks
from novablick.orchestrator.agents.planner import PlanGenerator, PlanningDecisionAgent
from novablick.orchestrator.agents.synthesis import FinalSynthesizer, describe_filters
from novablick.orchestrator.contracts import ColumnFilter, DatasetRef, DatasetScope, DateRange, PlanningDecision, Step
from novablick.orchestrator.errors import LLMInvocationError
from novablick.orchestrator.llm.provider import LLMConnectionConfig, LLMProvider, LLMProviderName
from novablick.orchestrator.tools import build_tool_registry
from novablick.orchestrator.tools.code_runner import PythonSandbox

MESSAGES = [HumanMessage(content="Compare sales by region")]
SALES = DatasetRef(id="A", name="Sales")


class FakeModelProvider(LLMProvider):
    name = LLMProviderName.OPENAI

    def __init__(self, response: str) -> None:
        super().__init__(LLMConnectionConfig(provider=LLMProviderName.OPENAI, model_name="fake"))
        self._response = response

    def create_chat_model(self, **overrides):
        return GenericFakeChatModel(messages=iter([AIMessage(content=self._response)]))


def _registry(emitter: RecordingEmitter):
    return build_tool_registry(
        scope=DatasetScope(dataset_ids=("A",)),
        executor=StubExecutor(),
        emitter=emitter,
        sandbox=PythonSandbox(timeout_seconds=5),
    )


def test_decision_emits_reasoning_events_and_returns_decision() -> None:
    emitter = RecordingEmitter()
    llm = ScriptedLLM(decision=PlanningDecision(requires_planning=True, reasoning="Needs a query and a chart."))
    agent = PlanningDecisionAgent(llm=llm, model="gpt-4.1")

    decision = asyncio.run(agent.decide(MESSAGES, datasets=[SALES], emitter=emitter))

    assert decision.requires_planning is True
    assert emitter.types == ["reasoning-start", "reasoning-delta", "reasoning-end"]
    assert emitter.events[1].delta == "Needs a query and a chart."
    assert len({event.id for event in emitter.events}) == 1
    assert "Sales" in llm.object_calls[0]["system"]
    assert llm.object_calls[0]["model"] == "gpt-4.1"


def test_decision_failure_closes_reasoning_and_raises_llm_invocation_error() -> None:
    emitter = RecordingEmitter()
    agent = PlanningDecisionAgent(llm=ScriptedLLM(fail_on="decision"))

    with pytest.raises(LLMInvocationError) as exc_info:
        asyncio.run(agent.decide(MESSAGES, datasets=[], emitter=emitter))

    assert exc_info.value.stage == "planning decision"
    assert emitter.types == ["reasoning-start", "reasoning-end"]
    assert emitter.events[0].id == emitter.events[1].id


def test_plan_updates_are_cumulative_and_share_the_plan_id() -> None:
    emitter = RecordingEmitter()
    steps = [make_step("step-1", ["query_dataset"]), make_step("step-2", ["display_bar_chart"])]
    generator = PlanGenerator(llm=ScriptedLLM(steps=steps))

    plan = asyncio.run(generator.generate(MESSAGES, registry=_registry(emitter), datasets=[SALES], emitter=emitter))

    updates = emitter.of_type("data-plan")
    assert [len(update.data.steps) for update in updates] == [0, 1, 2]
    assert {update.id for update in updates} == {plan.id}
    assert [step.id for step in plan.steps] == ["step-1", "step-2"]


def test_duplicate_step_ids_are_made_unique() -> None:
    emitter = RecordingEmitter()
    generator = PlanGenerator(llm=ScriptedLLM(steps=[make_step("step-1"), make_step("step-1")]))

    plan = asyncio.run(generator.generate(MESSAGES, registry=_registry(emitter), datasets=[], emitter=emitter))

    assert [step.id for step in plan.steps] == ["step-1", "step-1-2"]


def test_plan_prompt_lists_every_tool() -> None:
    registry = _registry(RecordingEmitter())

    prompt = PlanGenerator.build_system_prompt(registry, [SALES])

    for name in registry.names:
        assert f"Tool name: {name}" in prompt
    assert "Sales (id: A)" in prompt


def test_plan_stream_failure_is_raised_with_stage() -> None:
    emitter = RecordingEmitter()
    generator = PlanGenerator(llm=ScriptedLLM(fail_on="plan"))

    with pytest.raises(LLMInvocationError, match="plan generation"):
        asyncio.run(generator.generate(MESSAGES, registry=_registry(emitter), datasets=[], emitter=emitter))


def test_streamed_array_skips_elements_that_fail_validation() -> None:
    provider = FakeModelProvider(
        '[{"id": "step-1", "task": "Query", "instructions": "Run SQL", "tools": ["query_dataset"]}, '
        '{"id": "step-2"}, '
        '{"id": "step-3", "task": "Chart", "instructions": "Plot it"}]'
    )

    async def collect():
        return [step async for step in provider.astream_array(MESSAGES, item_schema=Step)]

    steps = asyncio.run(collect())

    assert [step.id for step in steps] == ["step-1", "step-3"]
    assert steps[0].tools == ["query_dataset"]


def test_synthesis_streams_text_between_start_and_end() -> None:
    emitter = RecordingEmitter()
    llm = ScriptedLLM(chat_turns=[text_chunks("North ", "leads.")])

    text = asyncio.run(FinalSynthesizer(llm=llm).synthesize(MESSAGES, emitter=emitter))

    assert text == "North leads."
    assert emitter.types == ["text-start", "text-delta", "text-delta", "text-end"]
    assert llm.chat_calls[0]["tools"] == []


def test_synthesis_prompt_describes_active_filters() -> None:
    filters = {
        "order_date": ColumnFilter(type="date", date_range=DateRange(from_="2024-01-01", to="2024-03-31")),
        "region": ColumnFilter(type="categorical", values=["north", "south"]),
    }

    assert describe_filters(filters) == [
        "- order_date: from 2024-01-01 to 2024-03-31",
        "- region: one of north, south",
    ]
    assert "order_date" in FinalSynthesizer.build_system_prompt(filters)

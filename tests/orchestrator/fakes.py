import json
from typing import Any, Dict, List, Optional, Sequence

from langchain_core.messages import AIMessageChunk, BaseMessage

from novablick.orchestrator.contracts import PlanningDecision, Step
from novablick.orchestrator.llm.provider import LLMConnectionConfig, LLMProvider, LLMProviderName


def text_chunks(*parts: str) -> List[AIMessageChunk]:
    return [AIMessageChunk(content=part) for part in parts]


def tool_call(name: str, args: Dict[str, Any], call_id: str = "call-1") -> List[AIMessageChunk]:
    return [
        AIMessageChunk(
            content="",
            tool_call_chunks=[{"name": name, "args": json.dumps(args), "id": call_id, "index": 0}],
        )
    ]


class ScriptedLLM(LLMProvider):
    """Provider replaying canned decisions, plan steps and chat turns."""

    name = LLMProviderName.OPENAI

    def __init__(
        self,
        *,
        decision: Optional[PlanningDecision] = None,
        steps: Sequence[Step] = (),
        chat_turns: Sequence[List[AIMessageChunk]] = (),
        fail_on: Optional[str] = None,
    ) -> None:
        super().__init__(LLMConnectionConfig(provider=LLMProviderName.OPENAI, model_name="stub"))
        self.decision = decision or PlanningDecision(requires_planning=False, reasoning="Simple greeting.")
        self.steps = list(steps)
        self.chat_turns = list(chat_turns)
        self.fail_on = fail_on
        self.object_calls: List[Dict[str, Any]] = []
        self.chat_calls: List[Dict[str, Any]] = []

    def create_chat_model(self, **overrides: Any):
        raise NotImplementedError("ScriptedLLM does not build chat models")

    async def agenerate_object(self, messages, *, schema, system=None, model=None):
        self.object_calls.append({"system": system, "model": model, "messages": list(messages)})
        if self.fail_on == "decision":
            raise RuntimeError("provider unavailable")
        return self.decision

    async def astream_array(self, messages, *, item_schema, system=None, model=None):
        if self.fail_on == "plan":
            raise RuntimeError("stream interrupted")
        for step in self.steps:
            yield step

    async def astream_chat(self, messages: Sequence[BaseMessage], *, system=None, tools=None, tool_choice=None, model=None):
        self.chat_calls.append(
            {
                "system": system,
                "tools": [tool["function"]["name"] for tool in tools or []],
                "tool_choice": tool_choice,
                "model": model,
                "messages": list(messages),
            }
        )
        if self.fail_on == "chat":
            raise RuntimeError("rate limited")
        chunks = self.chat_turns.pop(0) if self.chat_turns else text_chunks("Done.")
        for chunk in chunks:
            yield chunk


class RecordingEmitter:
    def __init__(self) -> None:
        self.events: List[Any] = []

    async def emit(self, event: Any) -> None:
        self.events.append(event)

    @property
    def types(self) -> List[str]:
        return [event.type for event in self.events]

    def of_type(self, event_type: str) -> List[Any]:
        return [event for event in self.events if event.type == event_type]


class StubExecutor:
    def __init__(self, rows: Optional[List[Dict[str, Any]]] = None, error: Optional[Exception] = None) -> None:
        self.rows = rows if rows is not None else [{"region": "north", "total": 10}]
        self.error = error
        self.executed: List[str] = []

    async def execute(self, sql: str) -> List[Dict[str, Any]]:
        self.executed.append(sql)
        if self.error is not None:
            raise self.error
        return self.rows


def make_step(step_id: str, tools: Sequence[str] = (), task: str = "Summarize sales") -> Step:
    return Step(id=step_id, task=task, instructions=f"Do {task.lower()}.", tools=list(tools))

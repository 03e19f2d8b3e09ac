"""
Sequential execution of plan steps.
"""

import logging
import uuid
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from langchain_core.messages import BaseMessage

from novablick.orchestrator.contracts import Plan, Step, StepStatusData, StepStatusEvent
from novablick.orchestrator.events import IEventEmitter
from novablick.orchestrator.llm.provider import LLMProvider
from novablick.orchestrator.tools.registry import ToolDescriptor, ToolRegistry
from .tool_loop import DEFAULT_MAX_TOOL_ROUNDS, ToolCallingLoop


@dataclass(slots=True)
class StepOutcome:
    step: Step
    tools: List[str] = field(default_factory=list)
    messages: List[BaseMessage] = field(default_factory=list)
    text: str = ""
    tool_calls: int = 0


class StepExecutor:
    """Runs each step with its own tool subset and appends the step's messages to the conversation."""

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
        self.logger = logger or logging.getLogger(__name__)
        self._registry = registry
        self._emitter = emitter
        self._loop = ToolCallingLoop(
            llm=llm,
            registry=registry,
            emitter=emitter,
            model=model,
            max_tool_rounds=max_tool_rounds,
            logger=self.logger,
        )

    async def execute_plan(self, plan: Plan, conversation: List[BaseMessage]) -> List[StepOutcome]:
        outcomes: List[StepOutcome] = []
        for step in plan.steps:
            outcome = await self.execute_step(
                step,
                plan_id=plan.id,
                conversation=conversation,
                prior_outputs=[previous.text for previous in outcomes if previous.text],
            )
            conversation.extend(outcome.messages)
            outcomes.append(outcome)
        return outcomes

    async def execute_step(
        self,
        step: Step,
        *,
        plan_id: str,
        conversation: Sequence[BaseMessage],
        prior_outputs: Sequence[str] = (),
    ) -> StepOutcome:
        status_id = str(uuid.uuid4())
        await self._emit_status(status_id, step, plan_id, completed=False)
        self.logger.info("Executing step %s: %s", step.id, step.task)

        tools = self._registry.resolve(step.tools)
        forced = tools[0] if len(tools) == 1 and tools[0].is_visualization else None

        loop_result = await self._loop.run(
            conversation,
            system=self.build_system_prompt(step, tools, prior_outputs),
            tools=tools,
            stage=f"step {step.id}",
            forced_tool=forced,
        )

        await self._emit_status(status_id, step, plan_id, completed=True)
        return StepOutcome(
            step=step,
            tools=[tool.name.value for tool in tools],
            messages=loop_result.messages,
            text=loop_result.text,
            tool_calls=loop_result.tool_calls,
        )

    @staticmethod
    def build_system_prompt(step: Step, tools: Sequence[ToolDescriptor], prior_outputs: Sequence[str]) -> str:
        sections = [f"Execute this step: {step.task}.", f"Instructions: {step.instructions}"]
        if step.context:
            sections.append(f"Context: {step.context}")
        if tools:
            sections.append("Use all provided tools intelligently to complete the task.")
        if prior_outputs:
            previous = "\n\n".join(f"[{index}] {output}" for index, output in enumerate(prior_outputs, start=1))
            sections.append(f"Results of previous steps:\n{previous}")
        return "\n".join(sections)

    async def _emit_status(self, status_id: str, step: Step, plan_id: str, *, completed: bool) -> None:
        await self._emitter.emit(
            StepStatusEvent(
                id=status_id,
                data=StepStatusData(id=step.id, plan_id=plan_id, completed=completed),
            )
        )


__all__ = ["StepExecutor", "StepOutcome"]

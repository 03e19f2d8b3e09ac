"""
Streams plan steps from the model and publishes the cumulative plan after each one.
"""

import logging
from typing import List, Optional, Sequence

from langchain_core.messages import BaseMessage

from novablick.orchestrator.contracts import DatasetRef, Plan, PlanData, PlanUpdateEvent, Step
from novablick.orchestrator.errors import EventStreamClosedError, LLMInvocationError
from novablick.orchestrator.events import IEventEmitter
from novablick.orchestrator.llm.provider import LLMProvider
from novablick.orchestrator.tools.dataset_query import DatasetDescription
from novablick.orchestrator.tools.registry import ToolName, ToolRegistry


class PlanGenerator:
    def __init__(
        self,
        *,
        llm: LLMProvider,
        model: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._llm = llm
        self._model = model
        self.logger = logger or logging.getLogger(__name__)

    @staticmethod
    def build_system_prompt(
        registry: ToolRegistry,
        datasets: Sequence[DatasetRef],
        descriptions: Sequence[DatasetDescription] = (),
    ) -> str:
        lines: List[str] = [
            "Create an execution plan to solve the user's query. Break down the execution into multiple steps. "
            "Keep the details and descriptions concise and to the point. "
            "Give every step a short unique id such as 'step-1'.",
        ]
        if datasets:
            selected = ", ".join(f"{dataset.name} (id: {dataset.id})" for dataset in datasets)
            lines.append(
                f"The following datasets are selected and can be queried with the tool "
                f"'{ToolName.QUERY_DATASET.value}': {selected}."
            )
        if descriptions:
            lines.append("Dataset columns:\n" + "\n".join(description.render() for description in descriptions))

        tool_lines = [f"Tool name: {name}\nTool description: {summary}" for name, summary in registry.describe()]
        lines.append("Assign the following tools to each step if necessary:\n" + "\n\n".join(tool_lines))
        return "\n".join(lines)

    async def generate(
        self,
        messages: Sequence[BaseMessage],
        *,
        registry: ToolRegistry,
        datasets: Sequence[DatasetRef],
        emitter: IEventEmitter,
        descriptions: Sequence[DatasetDescription] = (),
    ) -> Plan:
        plan = Plan()
        await emitter.emit(PlanUpdateEvent(id=plan.id, data=PlanData(steps=[])))

        seen_ids = set()
        stream = self._llm.astream_array(
            messages,
            item_schema=Step,
            system=self.build_system_prompt(registry, datasets, descriptions),
            model=self._model,
        )
        try:
            async for step in stream:
                if step.id in seen_ids:
                    step = step.model_copy(update={"id": f"{step.id}-{len(plan.steps) + 1}"})
                seen_ids.add(step.id)
                plan.steps.append(step)
                await emitter.emit(PlanUpdateEvent(id=plan.id, data=PlanData(steps=list(plan.steps))))
        except EventStreamClosedError:
            raise
        except Exception as exc:
            raise LLMInvocationError("plan generation", str(exc) or type(exc).__name__) from exc

        self.logger.info("Generated plan %s with %d steps", plan.id, len(plan.steps))
        return plan


__all__ = ["PlanGenerator"]

import logging
import uuid
from typing import Optional, Sequence

from langchain_core.messages import BaseMessage

from novablick.orchestrator.contracts import (
    DatasetRef,
    PlanningDecision,
    ReasoningDeltaEvent,
    ReasoningEndEvent,
    ReasoningStartEvent,
)
from novablick.orchestrator.errors import LLMInvocationError
from novablick.orchestrator.events import IEventEmitter
from novablick.orchestrator.llm.provider import LLMProvider

DECISION_PROMPT = (
    "Determine if this query requires multi-step planning or can be answered directly. "
    "Simple queries (greetings, clarifications, calculations) don't need planning. "
    "Complex queries (data analysis, multi-step reasoning) do."
)


class PlanningDecisionAgent:
    """Single structured call deciding between a direct answer and a plan."""

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
    def build_system_prompt(datasets: Sequence[DatasetRef]) -> str:
        if not datasets:
            return DECISION_PROMPT
        names = ", ".join(dataset.name for dataset in datasets)
        return (
            f"{DECISION_PROMPT} The following datasets are selected by the user: {names}. "
            "Unless explicitly mentioned, assume the user's query is about the selected datasets."
        )

    async def decide(
        self,
        messages: Sequence[BaseMessage],
        *,
        datasets: Sequence[DatasetRef],
        emitter: IEventEmitter,
    ) -> PlanningDecision:
        reasoning_id = str(uuid.uuid4())
        await emitter.emit(ReasoningStartEvent(id=reasoning_id))

        try:
            decision = await self._llm.agenerate_object(
                messages,
                schema=PlanningDecision,
                system=self.build_system_prompt(datasets),
                model=self._model,
            )
        except Exception as exc:
            await emitter.emit(ReasoningEndEvent(id=reasoning_id))
            raise LLMInvocationError("planning decision", str(exc) or type(exc).__name__) from exc

        self.logger.info("Planning decision: requires_planning=%s", decision.requires_planning)
        await emitter.emit(ReasoningDeltaEvent(id=reasoning_id, delta=decision.reasoning))
        await emitter.emit(ReasoningEndEvent(id=reasoning_id))
        return decision


__all__ = ["DECISION_PROMPT", "PlanningDecisionAgent"]

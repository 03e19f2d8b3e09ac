"""
Supervisor orchestrator: planning decision, plan generation, step execution
and final synthesis for one chat turn.
"""

import asyncio
import contextlib
import logging
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, List, Optional

from langchain_core.messages import BaseMessage
from opentelemetry import trace
from pydantic import BaseModel

from novablick.orchestrator.agents.conversation import to_langchain_messages
from novablick.orchestrator.agents.executor import DEFAULT_MAX_TOOL_ROUNDS, StepExecutor
from novablick.orchestrator.agents.planner import PlanGenerator, PlanningDecisionAgent
from novablick.orchestrator.agents.responder import DirectResponder
from novablick.orchestrator.agents.synthesis import FinalSynthesizer
from novablick.orchestrator.contracts import ChatRequest, DatasetRef, DatasetScope, ErrorEvent
from novablick.orchestrator.errors import AgentInvocationError
from novablick.orchestrator.events import DEFAULT_QUEUE_SIZE, EventStream, IEventEmitter
from novablick.orchestrator.llm.provider import LLMProvider
from novablick.orchestrator.tools import ToolRegistry, build_tool_registry
from novablick.orchestrator.tools.code_runner import PythonSandbox
from novablick.orchestrator.tools.code_runner.sandbox import DEFAULT_TIMEOUT_SECONDS
from novablick.orchestrator.tools.dataset_query import (
    DatasetCatalog,
    DatasetDescription,
    QueryExecutor,
    QueryPolicy,
)

UNEXPECTED_ERROR_TEXT = "An unexpected error occurred while processing the request."


@dataclass(slots=True)
class EngineConfig:
    """Model and limit selection for one orchestrator instance."""

    reasoning_model: Optional[str] = None
    non_reasoning_model: Optional[str] = None
    max_tool_rounds: int = DEFAULT_MAX_TOOL_ROUNDS
    event_queue_size: int = DEFAULT_QUEUE_SIZE
    code_timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    query_policy: QueryPolicy = field(default_factory=QueryPolicy)

    @classmethod
    def from_settings(cls, settings: Any) -> "EngineConfig":
        return cls(
            reasoning_model=settings.REASONING_MODEL,
            non_reasoning_model=settings.NON_REASONING_MODEL,
            max_tool_rounds=settings.AGENT_MAX_TOOL_ROUNDS,
            event_queue_size=settings.EVENT_QUEUE_SIZE,
            code_timeout_seconds=settings.CODE_EXECUTION_TIMEOUT_SECONDS,
            query_policy=QueryPolicy(
                rows_table=settings.QUERY_ROWS_TABLE,
                scope_column=settings.QUERY_SCOPE_COLUMN,
                row_cap=settings.QUERY_ROW_CAP,
                dialect=settings.DATABASE_BACKEND,
            ),
        )


class DataAnalystOrchestrator:
    """
    Coordinates the agents for one chat turn.

    The orchestrator holds no per-request state: every call to ``run`` builds
    its own scope, tool registry and conversation, so concurrent requests can
    share one instance.
    """

    def __init__(
        self,
        *,
        llm: LLMProvider,
        executor: QueryExecutor,
        catalog: Optional[DatasetCatalog] = None,
        config: Optional[EngineConfig] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._llm = llm
        self._executor = executor
        self._catalog = catalog
        self.config = config or EngineConfig()
        self.logger = logger or logging.getLogger(__name__)
        self._tracer = trace.get_tracer(__name__)

    async def run(self, request: ChatRequest, emitter: IEventEmitter) -> None:
        """Run one turn, emitting events on ``emitter``. LLM failures raise ``LLMInvocationError``."""

        scope = DatasetScope.from_datasets(request.datasets)
        conversation: List[BaseMessage] = to_langchain_messages(request.messages)
        descriptions = await self._describe(scope)
        registry = build_tool_registry(
            scope=scope,
            executor=self._executor,
            emitter=emitter,
            sandbox=PythonSandbox(timeout_seconds=self.config.code_timeout_seconds, logger=self.logger),
            policy=self.config.query_policy,
            datasets=descriptions,
            logger=self.logger,
        )

        with self._tracer.start_as_current_span("orchestrator.planning_decision"):
            decision = await PlanningDecisionAgent(
                llm=self._llm,
                model=self.config.non_reasoning_model,
                logger=self.logger,
            ).decide(conversation, datasets=request.datasets, emitter=emitter)

        if not decision.requires_planning:
            await self._respond_directly(conversation, registry, request.datasets, emitter)
            return

        with self._tracer.start_as_current_span("orchestrator.plan") as span:
            plan = await PlanGenerator(
                llm=self._llm,
                model=self.config.reasoning_model,
                logger=self.logger,
            ).generate(
                conversation,
                registry=registry,
                datasets=request.datasets,
                emitter=emitter,
                descriptions=descriptions,
            )
            span.set_attribute("plan.steps", len(plan.steps))

        if not plan.steps:
            self.logger.info("Plan %s has no steps, answering directly", plan.id)
            await self._respond_directly(conversation, registry, request.datasets, emitter)
            return

        with self._tracer.start_as_current_span("orchestrator.execute_plan"):
            await StepExecutor(
                llm=self._llm,
                registry=registry,
                emitter=emitter,
                model=self.config.reasoning_model,
                max_tool_rounds=self.config.max_tool_rounds,
                logger=self.logger,
            ).execute_plan(plan, conversation)

        with self._tracer.start_as_current_span("orchestrator.synthesis"):
            await FinalSynthesizer(
                llm=self._llm,
                model=self.config.non_reasoning_model,
                logger=self.logger,
            ).synthesize(conversation, emitter=emitter, filters=request.filters)

    async def stream(self, request: ChatRequest) -> AsyncIterator[BaseModel]:
        """
        Run ``request`` in a producer task and yield its events in order.

        A fatal failure is reported as one terminal ``ErrorEvent``. Closing the
        iterator early cancels the producer task.
        """

        events = EventStream(maxsize=self.config.event_queue_size, logger=self.logger)

        async def produce() -> None:
            try:
                await self.run(request, events)
            except AgentInvocationError as exc:
                self.logger.error("Orchestration failed: %s", exc)
                await events.emit(ErrorEvent(error_text=str(exc)))
            except Exception:
                self.logger.exception("Unexpected orchestration failure")
                await events.emit(ErrorEvent(error_text=UNEXPECTED_ERROR_TEXT))
            finally:
                events.close()

        task = asyncio.create_task(produce())
        try:
            async for event in events:
                yield event
        finally:
            if not task.done():
                task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

    async def _respond_directly(
        self,
        conversation: List[BaseMessage],
        registry: ToolRegistry,
        datasets: List[DatasetRef],
        emitter: IEventEmitter,
    ) -> None:
        with self._tracer.start_as_current_span("orchestrator.direct_response"):
            result = await DirectResponder(
                llm=self._llm,
                registry=registry,
                emitter=emitter,
                model=self.config.non_reasoning_model,
                max_tool_rounds=self.config.max_tool_rounds,
                logger=self.logger,
            ).respond(conversation, datasets=datasets)
        conversation.extend(result.messages)

    async def _describe(self, scope: DatasetScope) -> List[DatasetDescription]:
        if self._catalog is None or not scope:
            return []
        try:
            return list(await self._catalog.describe(list(scope.dataset_ids)))
        except Exception as exc:
            # Descriptions only enrich prompts; the run continues without them.
            self.logger.warning("Dataset catalog lookup failed: %s", exc)
            return []


__all__ = ["DataAnalystOrchestrator", "EngineConfig", "UNEXPECTED_ERROR_TEXT"]

"""
Direct answer path: the full tool set with the answer streamed as text.
"""

import logging
from typing import Optional, Sequence

from langchain_core.messages import BaseMessage

from novablick.orchestrator.contracts import DatasetRef
from novablick.orchestrator.events import IEventEmitter
from novablick.orchestrator.llm.provider import LLMProvider
from novablick.orchestrator.tools.registry import ToolRegistry
from .executor.tool_loop import DEFAULT_MAX_TOOL_ROUNDS, ToolCallingLoop, ToolLoopResult

AGENT_SYSTEM_PROMPT = """You are an agentic data analyst. You operate in Novablick, a web application for tabular data analysis and visualization.

You are assisting a USER to understand their datasets. Each time the USER sends a message, we may automatically attach some information about their current state, such as what datasets they have selected. This information may or may not be relevant to the user's query, it is up for you to decide.

Your main goal is to follow the USER's instructions at each message.

<communication>
When using markdown in assistant messages, use backticks to format file, column, function, and class names. Use \\( and \\) for inline math, \\[ and \\] for block math.
</communication>

<tool_calling>
You have tools at your disposal to answer the USER. Follow these rules regarding tool calls:
1. ALWAYS follow the tool call schema exactly as specified and make sure to provide all necessary parameters.
2. The conversation may reference tools that are no longer available. NEVER call tools that are not explicitly provided.
3. **NEVER refer to tool names when speaking to the USER.** Instead, just say what the tool is doing in natural language.
4. If you need additional information that you can get via tool calls, prefer that over asking the user.
5. If you are not sure, use your tools to gather the relevant information: do NOT guess or make up an answer.
6. You can autonomously read as many datasets as you need to completely resolve the user's query, not just one.
</tool_calling>"""


class DirectResponder:
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
        self._loop = ToolCallingLoop(
            llm=llm,
            registry=registry,
            emitter=emitter,
            model=model,
            max_tool_rounds=max_tool_rounds,
            logger=self.logger,
        )

    @staticmethod
    def build_system_prompt(datasets: Sequence[DatasetRef]) -> str:
        if not datasets:
            return AGENT_SYSTEM_PROMPT
        selected = ", ".join(f"{dataset.name} (id: {dataset.id})" for dataset in datasets)
        return (
            f"{AGENT_SYSTEM_PROMPT}\n\nThe following datasets are selected by the user: {selected}. "
            "Unless explicitly mentioned, assume the user's query is about the selected datasets."
        )

    async def respond(self, messages: Sequence[BaseMessage], *, datasets: Sequence[DatasetRef]) -> ToolLoopResult:
        return await self._loop.run(
            messages,
            system=self.build_system_prompt(datasets),
            tools=list(self._registry),
            stage="direct response",
            stream_text=True,
        )


__all__ = ["AGENT_SYSTEM_PROMPT", "DirectResponder"]

"""
Uniform tool contract and the per-invocation registry the agents dispatch through.
"""

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Iterable, Iterator, List, Optional, Sequence

from pydantic import BaseModel, ValidationError


class ToolName(str, Enum):
    QUERY_DATASET = "query_dataset"
    RUN_CODE = "run_code"
    DISPLAY_BAR_CHART = "display_bar_chart"
    DISPLAY_LINE_CHART = "display_line_chart"
    DISPLAY_PIE_CHART = "display_pie_chart"


VISUALIZATION_TOOLS: frozenset[ToolName] = frozenset(
    {
        ToolName.DISPLAY_BAR_CHART,
        ToolName.DISPLAY_LINE_CHART,
        ToolName.DISPLAY_PIE_CHART,
    }
)

ToolExecute = Callable[[BaseModel], Awaitable[Any]]


@dataclass(slots=True)
class ToolDescriptor:
    name: ToolName
    description: str
    input_schema: type[BaseModel]
    execute: ToolExecute
    # One-line description used in planning prompts.
    summary: str = ""

    @property
    def is_visualization(self) -> bool:
        return self.name in VISUALIZATION_TOOLS

    def to_tool_schema(self) -> Dict[str, Any]:
        """OpenAI-style function schema accepted by ``BaseChatModel.bind_tools``."""
        return {
            "type": "function",
            "function": {
                "name": self.name.value,
                "description": self.description,
                "parameters": self.input_schema.model_json_schema(by_alias=True),
            },
        }


@dataclass(slots=True)
class ToolResult:
    name: str
    output: Any
    success: bool

    def as_message_content(self) -> str:
        if isinstance(self.output, str):
            return self.output
        return json.dumps(self.output, default=str)


def _failure(error: str) -> Dict[str, Any]:
    return {"success": False, "error": error}


def _is_failure(output: Any) -> bool:
    return isinstance(output, dict) and output.get("success") is False


class ToolRegistry:
    """Tools available to one orchestration run, keyed by ``ToolName``."""

    def __init__(
        self,
        tools: Iterable[ToolDescriptor] = (),
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._tools: Dict[ToolName, ToolDescriptor] = {}
        self.logger = logger or logging.getLogger(__name__)
        for tool in tools:
            self.register(tool)

    def register(self, tool: ToolDescriptor) -> ToolDescriptor:
        if tool.name in self._tools:
            raise ValueError(f"Tool '{tool.name.value}' is already registered.")
        self._tools[tool.name] = tool
        return tool

    def get(self, name: str) -> Optional[ToolDescriptor]:
        try:
            return self._tools.get(ToolName(name))
        except ValueError:
            return None

    @property
    def names(self) -> List[str]:
        return [name.value for name in self._tools]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.get(name) is not None

    def __iter__(self) -> Iterator[ToolDescriptor]:
        return iter(self._tools.values())

    def __len__(self) -> int:
        return len(self._tools)

    def resolve(self, names: Iterable[str]) -> List[ToolDescriptor]:
        """Map declared tool names to descriptors; unknown and duplicate names are dropped."""
        resolved: List[ToolDescriptor] = []
        for name in names:
            tool = self.get(str(name).strip())
            if tool is None:
                self.logger.info("Ignoring unknown tool '%s'", name)
                continue
            if tool not in resolved:
                resolved.append(tool)
        return resolved

    def describe(self) -> List[tuple[str, str]]:
        return [(tool.name.value, tool.summary or tool.description) for tool in self]

    async def invoke(
        self,
        name: str,
        arguments: Dict[str, Any],
        *,
        allowed: Optional[Sequence[ToolDescriptor]] = None,
    ) -> ToolResult:
        """
        Validate ``arguments`` and run the tool. Expected failures (unknown tool,
        invalid input, tool errors) come back as ``{"success": False, ...}``.
        """
        tool = self.get(name)
        if tool is None or (allowed is not None and tool not in allowed):
            return ToolResult(name=name, output=_failure(f"Tool '{name}' is not available."), success=False)

        try:
            payload = tool.input_schema.model_validate(arguments or {})
        except ValidationError as exc:
            self.logger.info("Invalid input for tool %s: %s", name, exc)
            return ToolResult(name=name, output=_failure(f"Invalid input for {name}: {exc}"), success=False)

        try:
            output = await tool.execute(payload)
            if hasattr(output, "__aiter__"):
                last: Any = None
                async for item in output:
                    last = item
                output = last
        except Exception as exc:
            self.logger.exception("Tool %s failed", name)
            return ToolResult(name=name, output=_failure(f"{type(exc).__name__}: {exc}"), success=False)

        return ToolResult(name=name, output=output, success=not _is_failure(output))


__all__ = [
    "ToolDescriptor",
    "ToolExecute",
    "ToolName",
    "ToolRegistry",
    "ToolResult",
    "VISUALIZATION_TOOLS",
]

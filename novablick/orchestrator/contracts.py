"""
Shared contracts for the orchestration engine: plan/step records, the inbound chat
request and the tagged union of events streamed back to the client.
"""

import uuid
from dataclasses import dataclass
from typing import Annotated, Any, Dict, Iterable, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _new_id() -> str:
    return str(uuid.uuid4())


class Step(_CamelModel):
    """One unit of planned work."""

    id: str = Field(..., description="Short unique identifier of the step, e.g. 'step-1'.")
    task: str = Field(..., description="What the step accomplishes.")
    instructions: str = Field(..., description="How the executor should carry out the task.")
    context: Optional[str] = Field(default=None, description="Optional extra context for the executor.")
    tools: List[str] = Field(default_factory=list, description="Names of the tools this step may use.")


class Plan(_CamelModel):
    id: str = Field(default_factory=_new_id)
    steps: List[Step] = Field(default_factory=list)


class PlanningDecision(_CamelModel):
    requires_planning: bool = Field(
        ..., description="True when the query needs multi-step planning."
    )
    reasoning: str = Field(..., description="Short explanation of the decision.")


# ---------------------------------------------------------------------------
# Chart payloads
# ---------------------------------------------------------------------------

ChartType = Literal["bar", "line", "pie"]


class ChartMetadata(_CamelModel):
    type: Optional[ChartType] = None
    title: str
    description: str


class ChartConfig(_CamelModel):
    """Chart configuration; every key besides ``metadata`` maps a data key to ``{"label": ...}``."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    metadata: ChartMetadata


class ChartInput(_CamelModel):
    data: List[Dict[str, Union[str, int, float, None]]] = Field(
        ..., description="Flat records, one per category or x-axis point."
    )
    config: ChartConfig


# ---------------------------------------------------------------------------
# Inbound request
# ---------------------------------------------------------------------------

ChatRole = Literal["system", "user", "assistant", "tool"]


class ChatMessage(_CamelModel):
    role: ChatRole
    content: str
    reasoning: Optional[str] = None
    tool_call_id: Optional[str] = None

    @model_validator(mode="after")
    def _require_tool_call_id(self) -> "ChatMessage":
        if self.role == "tool" and not self.tool_call_id:
            raise ValueError("tool messages must carry a toolCallId.")
        return self


class DatasetRef(_CamelModel):
    id: str
    name: str


class DateRange(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_: Optional[str] = Field(default=None, alias="from")
    to: Optional[str] = None


class ColumnFilter(_CamelModel):
    type: Literal["date", "categorical"]
    values: List[str] = Field(default_factory=list)
    date_range: Optional[DateRange] = None


class ChatRequest(_CamelModel):
    messages: List[ChatMessage]
    datasets: List[DatasetRef] = Field(default_factory=list)
    filters: Dict[str, ColumnFilter] = Field(default_factory=dict)

    @field_validator("messages")
    @classmethod
    def _validate_messages(cls, value: List[ChatMessage]) -> List[ChatMessage]:
        if not value:
            raise ValueError("messages must contain at least one message.")
        return value


@dataclass(frozen=True, slots=True)
class DatasetScope:
    """Dataset ids one invocation is authorized to query."""

    dataset_ids: tuple[str, ...] = ()

    @classmethod
    def from_datasets(cls, datasets: Iterable[DatasetRef]) -> "DatasetScope":
        return cls(dataset_ids=tuple(dataset.id for dataset in datasets))

    def __contains__(self, dataset_id: object) -> bool:
        return dataset_id in self.dataset_ids

    def __bool__(self) -> bool:
        return bool(self.dataset_ids)


# ---------------------------------------------------------------------------
# Stream events
# ---------------------------------------------------------------------------


class ReasoningStartEvent(_CamelModel):
    type: Literal["reasoning-start"] = "reasoning-start"
    id: str


class ReasoningDeltaEvent(_CamelModel):
    type: Literal["reasoning-delta"] = "reasoning-delta"
    id: str
    delta: str


class ReasoningEndEvent(_CamelModel):
    type: Literal["reasoning-end"] = "reasoning-end"
    id: str


class PlanData(_CamelModel):
    steps: List[Step]


class PlanUpdateEvent(_CamelModel):
    type: Literal["data-plan"] = "data-plan"
    id: str
    data: PlanData


class StepStatusData(_CamelModel):
    id: str
    plan_id: str
    completed: bool


class StepStatusEvent(_CamelModel):
    type: Literal["data-step-status"] = "data-step-status"
    id: str
    data: StepStatusData


class ChartEvent(_CamelModel):
    type: Literal["data-chart"] = "data-chart"
    data: ChartInput


class ToolInputEvent(_CamelModel):
    type: Literal["tool-input-available"] = "tool-input-available"
    tool_call_id: str
    tool_name: str
    input: Dict[str, Any]


class ToolOutputEvent(_CamelModel):
    type: Literal["tool-output-available"] = "tool-output-available"
    tool_call_id: str
    output: Any


class TextStartEvent(_CamelModel):
    type: Literal["text-start"] = "text-start"
    id: str


class TextDeltaEvent(_CamelModel):
    type: Literal["text-delta"] = "text-delta"
    id: str
    delta: str


class TextEndEvent(_CamelModel):
    type: Literal["text-end"] = "text-end"
    id: str


class ErrorEvent(_CamelModel):
    type: Literal["error"] = "error"
    error_text: str


StreamEvent = Annotated[
    Union[
        ReasoningStartEvent,
        ReasoningDeltaEvent,
        ReasoningEndEvent,
        PlanUpdateEvent,
        StepStatusEvent,
        ChartEvent,
        ToolInputEvent,
        ToolOutputEvent,
        TextStartEvent,
        TextDeltaEvent,
        TextEndEvent,
        ErrorEvent,
    ],
    Field(discriminator="type"),
]


def dump_event(event: BaseModel) -> Dict[str, Any]:
    """Serialise an event to the camelCase wire shape."""
    return event.model_dump(mode="json", by_alias=True)


__all__ = [
    "ChartConfig",
    "ChartEvent",
    "ChartInput",
    "ChartMetadata",
    "ChartType",
    "ChatMessage",
    "ChatRequest",
    "ColumnFilter",
    "DatasetRef",
    "DatasetScope",
    "DateRange",
    "ErrorEvent",
    "Plan",
    "PlanData",
    "PlanUpdateEvent",
    "PlanningDecision",
    "ReasoningDeltaEvent",
    "ReasoningEndEvent",
    "ReasoningStartEvent",
    "Step",
    "StepStatusData",
    "StepStatusEvent",
    "StreamEvent",
    "TextDeltaEvent",
    "TextEndEvent",
    "TextStartEvent",
    "ToolInputEvent",
    "ToolOutputEvent",
    "dump_event",
]

import logging
import uuid
from typing import Dict, List, Optional, Sequence

from langchain_core.messages import BaseMessage

from novablick.orchestrator.contracts import ColumnFilter, TextDeltaEvent, TextEndEvent, TextStartEvent
from novablick.orchestrator.errors import EventStreamClosedError, LLMInvocationError
from novablick.orchestrator.events import IEventEmitter
from novablick.orchestrator.llm.provider import LLMProvider, message_text

SYNTHESIS_PROMPT = "Synthesize the results from all steps into a coherent answer to the user's original query."


def describe_filters(filters: Dict[str, ColumnFilter]) -> List[str]:
    lines: List[str] = []
    for column, column_filter in filters.items():
        if column_filter.type == "date":
            date_range = column_filter.date_range
            start = date_range.from_ if date_range else None
            end = date_range.to if date_range else None
            if start or end:
                lines.append(f"- {column}: from {start or 'the beginning'} to {end or 'now'}")
            elif column_filter.values:
                lines.append(f"- {column}: one of {', '.join(column_filter.values)}")
        elif column_filter.values:
            lines.append(f"- {column}: one of {', '.join(column_filter.values)}")
    return lines


class FinalSynthesizer:
    """Closing streamed answer over the whole conversation, without tools."""

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
    def build_system_prompt(filters: Optional[Dict[str, ColumnFilter]] = None) -> str:
        lines = describe_filters(filters or {})
        if not lines:
            return SYNTHESIS_PROMPT
        return (
            f"{SYNTHESIS_PROMPT}\n\nThe user is currently viewing the data with these filters applied:\n"
            + "\n".join(lines)
        )

    async def synthesize(
        self,
        messages: Sequence[BaseMessage],
        *,
        emitter: IEventEmitter,
        filters: Optional[Dict[str, ColumnFilter]] = None,
    ) -> str:
        text_id = str(uuid.uuid4())
        await emitter.emit(TextStartEvent(id=text_id))

        parts: List[str] = []
        try:
            async for chunk in self._llm.astream_chat(
                messages,
                system=self.build_system_prompt(filters),
                model=self._model,
            ):
                delta = message_text(chunk)
                if delta:
                    parts.append(delta)
                    await emitter.emit(TextDeltaEvent(id=text_id, delta=delta))
        except EventStreamClosedError:
            raise
        except Exception as exc:
            raise LLMInvocationError("final synthesis", str(exc) or type(exc).__name__) from exc

        await emitter.emit(TextEndEvent(id=text_id))
        return "".join(parts)


__all__ = ["FinalSynthesizer", "SYNTHESIS_PROMPT", "describe_filters"]

"""
Chart display tools. All three share ``ChartInput`` and differ only in the
chart kind they stamp onto ``config.metadata.type`` before emitting.
"""

from typing import Dict, List

from pydantic import BaseModel

from novablick.orchestrator.contracts import ChartEvent, ChartInput, ChartType
from novablick.orchestrator.events import IEventEmitter
from novablick.orchestrator.tools.registry import ToolDescriptor, ToolName

CHART_DISPLAYED = "Chart displayed successfully."

_SERIES_EXAMPLE = """{
  "data": [
    { "month": "January", "desktop": 186, "mobile": 80 },
    { "month": "February", "desktop": 305, "mobile": 200 },
    { "month": "March", "desktop": 237, "mobile": 120 }
  ],
  "config": {
    "desktop": { "label": "Desktop" },
    "mobile": { "label": "Mobile" },
    "metadata": {
      "type": "%s",
      "title": "Trending up by 5.2%%",
      "description": "Showing total visitors for the last 3 months"
    }
  }
}"""

_PIE_EXAMPLE = """{
  "data": [
    { "browser": "chrome", "visitors": 275 },
    { "browser": "safari", "visitors": 200 },
    { "browser": "other", "visitors": 90 }
  ],
  "config": {
    "visitors": { "label": "Visitors" },
    "chrome": { "label": "Chrome" },
    "safari": { "label": "Safari" },
    "other": { "label": "Other" },
    "metadata": {
      "type": "pie",
      "title": "Browser share",
      "description": "Visitors by browser for January"
    }
  }
}"""


def _description(kind: ChartType) -> str:
    header = (
        f"Display a {kind} chart to the user based on the data.\n"
        "The title should be a string with the title of the chart.\n"
        "The description should be a string with the description of the chart.\n\n"
    )
    if kind == "pie":
        return header + (
            'The data format is: { "category_key": "category_value", "value_key": "value_value" }\n\n'
            "Example input (the config must contain the labels for each category value and the value key; "
            "keys must be consistent across the data rows):\n"
            f"{_PIE_EXAMPLE}"
        )
    return header + (
        "Example input (the config must contain the labels for each key in data):\n"
        f"{_SERIES_EXAMPLE % kind}"
    )


def stamp_chart_type(chart: ChartInput, kind: ChartType) -> ChartInput:
    metadata = chart.config.metadata.model_copy(update={"type": kind})
    config = chart.config.model_copy(update={"metadata": metadata})
    return chart.model_copy(update={"config": config})


_CHART_TOOLS: Dict[ToolName, ChartType] = {
    ToolName.DISPLAY_BAR_CHART: "bar",
    ToolName.DISPLAY_LINE_CHART: "line",
    ToolName.DISPLAY_PIE_CHART: "pie",
}


def create_chart_tool(name: ToolName, emitter: IEventEmitter) -> ToolDescriptor:
    kind = _CHART_TOOLS[name]

    async def execute(payload: BaseModel) -> str:
        assert isinstance(payload, ChartInput)
        await emitter.emit(ChartEvent(data=stamp_chart_type(payload, kind)))
        return CHART_DISPLAYED

    return ToolDescriptor(
        name=name,
        description=_description(kind),
        input_schema=ChartInput,
        execute=execute,
        summary=f"Display a {kind} chart to the user based on the data.",
    )


def create_chart_tools(emitter: IEventEmitter) -> List[ToolDescriptor]:
    return [create_chart_tool(name, emitter) for name in _CHART_TOOLS]


__all__ = ["CHART_DISPLAYED", "create_chart_tool", "create_chart_tools", "stamp_chart_type"]

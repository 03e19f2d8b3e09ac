from .tool import CHART_DISPLAYED, create_chart_tool, create_chart_tools, stamp_chart_type

__all__ = ["CHART_DISPLAYED", "create_chart_tool", "create_chart_tools", "stamp_chart_type"]

from .factory import build_tool_registry
from .registry import VISUALIZATION_TOOLS, ToolDescriptor, ToolName, ToolRegistry, ToolResult

__all__ = [
    "ToolDescriptor",
    "ToolName",
    "ToolRegistry",
    "ToolResult",
    "VISUALIZATION_TOOLS",
    "build_tool_registry",
]

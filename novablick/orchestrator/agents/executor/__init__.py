from .step_executor import StepExecutor, StepOutcome
from .tool_loop import DEFAULT_MAX_TOOL_ROUNDS, ToolCallingLoop, ToolLoopResult

__all__ = [
    "DEFAULT_MAX_TOOL_ROUNDS",
    "StepExecutor",
    "StepOutcome",
    "ToolCallingLoop",
    "ToolLoopResult",
]

from .sandbox import ERROR_PREFIX, ExecutionResult, PythonSandbox, requires_matplotlib
from .tool import RunCodeInput, create_run_code_tool

__all__ = [
    "ERROR_PREFIX",
    "ExecutionResult",
    "PythonSandbox",
    "RunCodeInput",
    "create_run_code_tool",
    "requires_matplotlib",
]

from typing import Any, Dict

from pydantic import BaseModel, Field

from novablick.orchestrator.tools.registry import ToolDescriptor, ToolName
from .sandbox import PythonSandbox

SUMMARY = "Execute Python code."

DESCRIPTION = (
    "Execute Python code. SQL queries are not supported. "
    "Printed output is returned line by line; call plt.show() to return a matplotlib figure as a PNG data URL."
)


class RunCodeInput(BaseModel):
    code: str = Field(..., description="Python source code to execute.")


def create_run_code_tool(sandbox: PythonSandbox) -> ToolDescriptor:
    async def execute(payload: BaseModel) -> Dict[str, Any]:
        assert isinstance(payload, RunCodeInput)
        result = await sandbox.run(payload.code)
        return {"outputContent": result.lines}

    return ToolDescriptor(
        name=ToolName.RUN_CODE,
        description=DESCRIPTION,
        input_schema=RunCodeInput,
        execute=execute,
        summary=SUMMARY,
    )


__all__ = ["RunCodeInput", "create_run_code_tool"]

import logging
from typing import Optional, Sequence

from novablick.orchestrator.contracts import DatasetScope
from novablick.orchestrator.events import IEventEmitter
from .charts import create_chart_tools
from .code_runner import PythonSandbox, create_run_code_tool
from .dataset_query import DatasetDescription, QueryExecutor, QueryPolicy, create_query_dataset_tool
from .registry import ToolName, ToolRegistry


def build_tool_registry(
    *,
    scope: DatasetScope,
    executor: QueryExecutor,
    emitter: IEventEmitter,
    sandbox: PythonSandbox,
    policy: QueryPolicy = QueryPolicy(),
    datasets: Sequence[DatasetDescription] = (),
    logger: Optional[logging.Logger] = None,
) -> ToolRegistry:
    """Registry for one invocation; the query tool is bound to ``scope`` and charts to ``emitter``."""

    registry = ToolRegistry(logger=logger)
    registry.register(create_query_dataset_tool(scope, executor, policy=policy, datasets=datasets, logger=logger))
    registry.register(create_run_code_tool(sandbox))
    for tool in create_chart_tools(emitter):
        registry.register(tool)

    missing = [name.value for name in ToolName if name.value not in registry]
    if missing:
        raise RuntimeError(f"Tools without an implementation: {', '.join(missing)}")
    return registry


__all__ = ["build_tool_registry"]

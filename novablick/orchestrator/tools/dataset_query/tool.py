"""
Dataset query tool: guard the model's SQL, run it through the executor and
return a tagged success/failure payload the model can read.
"""

import logging
from typing import Any, Dict, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field

from novablick.orchestrator.contracts import DatasetScope
from novablick.orchestrator.tools.registry import ToolDescriptor, ToolName
from .guard import QueryPolicy, QueryRejected, validate_query
from .interfaces import DatasetDescription, QueryExecutor

SUMMARY = "Query datasets using SQL SELECT queries."


class QueryDatasetInput(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    sql_query: str = Field(
        ...,
        alias="sqlQuery",
        description=(
            "SQL SELECT query to execute. Must query dataset_rows table and filter by dataset_id. "
            "Only SELECT queries allowed."
        ),
    )


# dialect -> (data column type, operator notes, integer cast, decimal cast)
_DIALECT_NOTES: Dict[str, tuple[str, str, str, str]] = {
    "postgresql": (
        "jsonb",
        """- Get text value: data->>'column_name'
- Get JSON value: data->'column_name'
- Cast to numeric: (data->>'age')::int or (data->>'price')::numeric
- Cast to boolean: (data->>'active')::boolean""",
        "(data->>'{0}')::int",
        "(data->>'{0}')::numeric",
    ),
    "sqlite": (
        "JSON text",
        """- Get text value: data->>'column_name'
- Get JSON value: data->'column_name'
- Cast to numeric: CAST(data->>'age' AS INTEGER) or CAST(data->>'price' AS REAL)
- Booleans come back as 1 and 0: data->>'active' = 1
- PostgreSQL casts such as ::int are not supported""",
        "CAST(data->>'{0}' AS INTEGER)",
        "CAST(data->>'{0}' AS REAL)",
    ),
}


def build_description(
    scope: DatasetScope,
    policy: QueryPolicy,
    datasets: Sequence[DatasetDescription] = (),
) -> str:
    example_id = scope.dataset_ids[0] if scope.dataset_ids else "dataset-uuid"
    table = policy.rows_table
    column = policy.scope_column
    where = f"WHERE {column} = '{example_id}'"
    data_type, operators, as_int, as_decimal = _DIALECT_NOTES.get(policy.dialect, _DIALECT_NOTES["postgresql"])
    price = as_decimal.format("price")
    score = as_int.format("score")

    description = f"""Query a dataset using SQL SELECT queries.
Make sure you sort and filter properly to avoid requiring too many rows.

**Allowed Dataset IDs:** {", ".join(scope.dataset_ids)}

**Database Schema:**
- Table: "{table}" with columns:
  - id (uuid): Row identifier
  - {column} (uuid): Dataset this row belongs to
  - row_number (integer): Original row number from the uploaded file
  - data ({data_type}): Row data stored as JSON object

**JSON Operators:**
{operators}

**Query Requirements:**
- Must be a SELECT query (read-only)
- Must include WHERE clause with {column} filter
- Automatically limited to {policy.row_cap} rows if no LIMIT specified

**Example Queries:**

Simple fetch all:
SELECT data FROM {table} {where} LIMIT 100

Select specific columns:
SELECT data->>'name', data->>'age', data->>'city' FROM {table} {where}

Filter rows:
SELECT * FROM {table} {where} AND data->>'status' = 'active'

Aggregate data:
SELECT data->>'category', COUNT(*), AVG({price}) FROM {table} {where} GROUP BY data->>'category'

Sort results:
SELECT data->>'name', {score} FROM {table} {where} ORDER BY {score} DESC LIMIT 10"""

    if datasets:
        rendered = "\n".join(dataset.render() for dataset in datasets)
        description = f"{description}\n\n**Dataset Columns:**\n{rendered}"
    return description


def create_query_dataset_tool(
    scope: DatasetScope,
    executor: QueryExecutor,
    *,
    policy: QueryPolicy = QueryPolicy(),
    datasets: Sequence[DatasetDescription] = (),
    logger: Optional[logging.Logger] = None,
) -> ToolDescriptor:
    """Build the query tool bound to ``scope``; the scope is never read from the query text."""

    log = logger or logging.getLogger(__name__)

    async def execute(payload: BaseModel) -> Dict[str, Any]:
        assert isinstance(payload, QueryDatasetInput)
        verdict = validate_query(payload.sql_query, scope, policy)
        if isinstance(verdict, QueryRejected):
            log.info("Rejected query (%s): %s", verdict.reason.value, payload.sql_query)
            return {"success": False, "error": verdict.message, "rows": None}

        try:
            rows = [dict(row) for row in await executor.execute(verdict.sql)]
        except Exception as exc:
            log.warning("Query execution failed: %s", exc)
            return {"success": False, "error": str(exc) or type(exc).__name__, "rows": None}

        log.debug("Executed %s -> %d rows", verdict.sql, len(rows))
        return {
            "success": True,
            "rowCount": len(rows),
            "rows": rows,
            "message": f"Successfully executed SQL query and returned {len(rows)} rows.",
        }

    return ToolDescriptor(
        name=ToolName.QUERY_DATASET,
        description=build_description(scope, policy, datasets),
        input_schema=QueryDatasetInput,
        execute=execute,
        summary=SUMMARY,
    )


__all__ = ["QueryDatasetInput", "build_description", "create_query_dataset_tool"]

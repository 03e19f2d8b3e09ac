"""
Protocol and data model definitions for the storage collaborators the query tool relies on.
"""

from typing import Any, Dict, List, Mapping, Optional, Protocol, Sequence

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class QueryExecutor(Protocol):
    """Runs guard-approved SQL and returns rows as mappings."""

    async def execute(self, sql: str) -> Sequence[Mapping[str, Any]]: ...


class ColumnSummary(BaseModel):
    name: str
    data_type: str
    null_ratio: float = 0.0
    unique_values: Optional[int] = None


class DatasetDescription(BaseModel):
    id: str
    name: str
    row_count: int = 0
    columns: List[ColumnSummary] = Field(default_factory=list)

    def render(self) -> str:
        lines = [f"- {self.name} (id: {self.id}, {self.row_count} rows)"]
        for column in self.columns:
            detail = f"{column.data_type}, {column.null_ratio:.0%} null"
            if column.unique_values is not None:
                detail = f"{detail}, {column.unique_values} unique"
            lines.append(f"    * {column.name} ({detail})")
        return "\n".join(lines)


class DatasetRow(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    row_number: int
    data: Dict[str, Any]


class DatasetCatalog(Protocol):
    """Metadata lookups used to enrich prompts. Never a path to the rows themselves."""

    async def describe(self, dataset_ids: Sequence[str]) -> List[DatasetDescription]: ...

    async def fetch_rows(self, dataset_id: str, *, limit: int = 5, offset: int = 0) -> List[DatasetRow]: ...


__all__ = [
    "ColumnSummary",
    "DatasetCatalog",
    "DatasetDescription",
    "DatasetRow",
    "QueryExecutor",
]

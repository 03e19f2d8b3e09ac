from .guard import (
    DEFAULT_ROW_CAP,
    GuardVerdict,
    QueryApproved,
    QueryPolicy,
    QueryRejected,
    RejectionReason,
    validate_query,
)
from .interfaces import (
    ColumnSummary,
    DatasetCatalog,
    DatasetDescription,
    DatasetRow,
    QueryExecutor,
)
from .tool import QueryDatasetInput, create_query_dataset_tool

__all__ = [
    "ColumnSummary",
    "DEFAULT_ROW_CAP",
    "DatasetCatalog",
    "DatasetDescription",
    "DatasetRow",
    "GuardVerdict",
    "QueryApproved",
    "QueryDatasetInput",
    "QueryExecutor",
    "QueryPolicy",
    "QueryRejected",
    "RejectionReason",
    "create_query_dataset_tool",
    "validate_query",
]

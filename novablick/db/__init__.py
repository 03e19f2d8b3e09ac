from .base import Base
from .dataset import Dataset, DatasetColumn, DatasetRowRecord
from .session import (
    async_session_scope,
    create_async_engine_for_url,
    create_async_session_factory,
    initialize_database,
)

__all__ = [
    "Base",
    "Dataset",
    "DatasetColumn",
    "DatasetRowRecord",
    "async_session_scope",
    "create_async_engine_for_url",
    "create_async_session_factory",
    "initialize_database",
]

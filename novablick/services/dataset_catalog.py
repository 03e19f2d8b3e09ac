"""
SQLAlchemy-backed collaborators for the orchestration engine. Each call opens
its own session because the engine outlives the HTTP request that started it.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from novablick.db.session import async_session_scope
from novablick.orchestrator.tools.dataset_query import ColumnSummary, DatasetDescription, DatasetRow
from novablick.repositories.dataset_repository import DatasetRepository


class SqlAlchemyDatasetCatalog:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._session_factory = session_factory
        self.logger = logger or logging.getLogger(__name__)

    async def describe(self, dataset_ids: Sequence[str]) -> List[DatasetDescription]:
        async with async_session_scope(self._session_factory) as session:
            datasets = await DatasetRepository(session).get_by_ids(dataset_ids)
            return [
                DatasetDescription(
                    id=dataset.id,
                    name=dataset.name,
                    row_count=dataset.row_count,
                    columns=[
                        ColumnSummary(
                            name=column.name,
                            data_type=column.data_type,
                            null_ratio=column.null_ratio or 0.0,
                            unique_values=column.unique_values,
                        )
                        for column in dataset.columns
                    ],
                )
                for dataset in datasets
            ]

    async def fetch_rows(self, dataset_id: str, *, limit: int = 5, offset: int = 0) -> List[DatasetRow]:
        async with async_session_scope(self._session_factory) as session:
            records = await DatasetRepository(session).list_rows(dataset_id, limit=limit, offset=offset)
            return [DatasetRow(id=record.id, row_number=record.row_number, data=record.data) for record in records]

    async def missing_ids(self, dataset_ids: Sequence[str]) -> List[str]:
        async with async_session_scope(self._session_factory) as session:
            return await DatasetRepository(session).missing_ids(dataset_ids)


class SqlAlchemyQueryExecutor:
    """Runs guard-approved SQL inside a read-only transaction that is always rolled back."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._session_factory = session_factory
        self.logger = logger or logging.getLogger(__name__)

    async def execute(self, sql: str) -> List[Dict[str, Any]]:
        async with async_session_scope(self._session_factory, read_only=True) as session:
            result = await session.execute(text(sql))
            rows = [dict(row) for row in result.mappings().all()]
        self.logger.debug("Query returned %d rows", len(rows))
        return rows


__all__ = ["SqlAlchemyDatasetCatalog", "SqlAlchemyQueryExecutor"]

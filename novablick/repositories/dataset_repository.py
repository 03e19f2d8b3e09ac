from typing import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from novablick.db.dataset import Dataset, DatasetRowRecord

MAX_PAGE_SIZE = 1000


class DatasetRepository:
    """Read access to uploaded datasets and their rows."""

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_ids(self, dataset_ids: Sequence[str]) -> list[Dataset]:
        if not dataset_ids:
            return []
        result = await self._session.scalars(select(Dataset).where(Dataset.id.in_(list(dataset_ids))))
        by_id = {dataset.id: dataset for dataset in result.all()}
        return [by_id[dataset_id] for dataset_id in dataset_ids if dataset_id in by_id]

    async def missing_ids(self, dataset_ids: Sequence[str]) -> list[str]:
        found = {dataset.id for dataset in await self.get_by_ids(dataset_ids)}
        return [dataset_id for dataset_id in dataset_ids if dataset_id not in found]

    async def list_rows(self, dataset_id: str, *, limit: int = 100, offset: int = 0) -> list[DatasetRowRecord]:
        limit = min(MAX_PAGE_SIZE, max(1, limit))
        offset = max(0, offset)
        result = await self._session.scalars(
            select(DatasetRowRecord)
            .where(DatasetRowRecord.dataset_id == dataset_id)
            .order_by(DatasetRowRecord.row_number.asc())
            .limit(limit)
            .offset(offset)
        )
        return list(result.all())

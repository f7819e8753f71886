from typing import List, Optional

from sqlalchemy import select

from perfstore.errors import InvalidInput, NotFound
from perfstore.models.dataset import Dataset
from perfstore.repositories.base import Repository
from perfstore.services.normalization import sanitize_optional
from perfstore.utils.clock import utcnow


class DatasetRepository(Repository):
    async def create(
        self, name: str, description: Optional[str] = None, source_file: Optional[str] = None
    ) -> Dataset:
        trimmed = name.strip()
        if not trimmed:
            raise InvalidInput("Dataset name cannot be empty")
        async with self.writing() as db:
            dataset = Dataset(
                name=trimmed,
                description=sanitize_optional(description),
                source_file=sanitize_optional(source_file),
            )
            db.add(dataset)
            await db.flush()
        return dataset

    async def list_all(self) -> List[Dataset]:
        async with self.reading() as db:
            result = await db.execute(
                select(Dataset).order_by(Dataset.created_at.desc(), Dataset.id.desc())
            )
            return list(result.scalars().all())

    async def get(self, dataset_id: int) -> Dataset:
        async with self.reading() as db:
            dataset = await db.get(Dataset, dataset_id)
        if dataset is None:
            raise NotFound("Dataset", dataset_id)
        return dataset

    async def exists(self, dataset_id: int) -> bool:
        async with self.reading() as db:
            result = await db.execute(select(Dataset.id).where(Dataset.id == dataset_id))
            return result.scalar_one_or_none() is not None

    async def update(self, dataset_id: int, name: str, description: Optional[str] = None) -> Dataset:
        trimmed = name.strip()
        if not trimmed:
            raise InvalidInput("Dataset name cannot be empty")
        async with self.writing() as db:
            dataset = await db.get(Dataset, dataset_id)
            if dataset is None:
                raise NotFound("Dataset", dataset_id)
            dataset.name = trimmed
            dataset.description = sanitize_optional(description)
            dataset.updated_at = utcnow()
        return dataset

    async def touch(self, dataset_id: int) -> Dataset:
        async with self.writing() as db:
            dataset = await db.get(Dataset, dataset_id)
            if dataset is None:
                raise NotFound("Dataset", dataset_id)
            dataset.updated_at = utcnow()
        return dataset

    async def delete(self, dataset_id: int) -> None:
        # Links, scores and rating mappings of the dataset are left in place.
        async with self.writing() as db:
            dataset = await db.get(Dataset, dataset_id)
            if dataset is None:
                raise NotFound("Dataset", dataset_id)
            await db.delete(dataset)

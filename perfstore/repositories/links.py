import logging
from typing import List, Optional, Tuple

from sqlalchemy import func, select

from perfstore.errors import ConstraintViolation
from perfstore.models.employee import DatasetEmployee
from perfstore.repositories.base import Repository
from perfstore.utils.clock import utcnow

logger = logging.getLogger(__name__)


class LinkRepository(Repository):
    """Dataset ↔ employee associations, unique per pair."""

    async def find(self, dataset_id: int, employee_id: int) -> Optional[DatasetEmployee]:
        async with self.reading() as db:
            result = await db.execute(
                select(DatasetEmployee)
                .where(DatasetEmployee.dataset_id == dataset_id)
                .where(DatasetEmployee.employee_id == employee_id)
            )
            return result.scalar_one_or_none()

    async def link(self, dataset_id: int, employee_id: int) -> Tuple[DatasetEmployee, bool]:
        """Associate an employee with a dataset.

        Returns the link and whether it was newly created. An existing link only
        has its updated_at refreshed.
        """
        existing = await self.find(dataset_id, employee_id)
        if existing is None:
            try:
                async with self.writing() as db:
                    link = DatasetEmployee(dataset_id=dataset_id, employee_id=employee_id)
                    db.add(link)
                    await db.flush()
                return link, True
            except ConstraintViolation:
                logger.warning("Link %s/%s created concurrently, refreshing it", dataset_id, employee_id)

        async with self.writing() as db:
            result = await db.execute(
                select(DatasetEmployee)
                .where(DatasetEmployee.dataset_id == dataset_id)
                .where(DatasetEmployee.employee_id == employee_id)
            )
            link = result.scalar_one()
            link.updated_at = utcnow()
        return link, False

    async def employee_ids(self, dataset_id: int) -> List[int]:
        async with self.reading() as db:
            result = await db.execute(
                select(DatasetEmployee.employee_id)
                .where(DatasetEmployee.dataset_id == dataset_id)
                .order_by(DatasetEmployee.id)
            )
            return list(result.scalars().all())

    async def count(self, dataset_id: int) -> int:
        async with self.reading() as db:
            result = await db.execute(
                select(func.count(DatasetEmployee.id)).where(DatasetEmployee.dataset_id == dataset_id)
            )
            return result.scalar_one()

    async def list_all(self) -> List[DatasetEmployee]:
        async with self.reading() as db:
            result = await db.execute(select(DatasetEmployee).order_by(DatasetEmployee.id))
            return list(result.scalars().all())

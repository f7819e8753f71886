import logging
from typing import Optional

from sqlalchemy import select

from perfstore.errors import ConstraintViolation
from perfstore.models.summary import Summary
from perfstore.repositories.base import Repository
from perfstore.utils.clock import utcnow

logger = logging.getLogger(__name__)


class SummaryRepository(Repository):
    async def get_for_employee(self, employee_id: int) -> Optional[Summary]:
        async with self.reading() as db:
            result = await db.execute(select(Summary).where(Summary.employee_id == employee_id))
            return result.scalar_one_or_none()

    async def save(self, employee_id: int, content: str) -> Summary:
        """Create the employee's summary or replace its content."""
        if await self.get_for_employee(employee_id) is None:
            try:
                async with self.writing() as db:
                    summary = Summary(employee_id=employee_id, content=content)
                    db.add(summary)
                    await db.flush()
                return summary
            except ConstraintViolation:
                logger.warning("Summary for employee %s created concurrently, updating it", employee_id)

        async with self.writing() as db:
            result = await db.execute(select(Summary).where(Summary.employee_id == employee_id))
            summary = result.scalar_one()
            summary.content = content
            summary.updated_at = utcnow()
        return summary

from typing import Iterable, List, Optional, Set, Tuple

from sqlalchemy import func, select

from perfstore.models.score import Score
from perfstore.repositories.base import Repository

ScoreKey = Tuple[int, int, str]  # employee_id, competency_id, raw_value


def _key(score: Score) -> ScoreKey:
    return score.employee_id, score.competency_id, score.raw_value


class ScoreRepository(Repository):
    async def create_many(self, dataset_id: int, rows: Iterable[dict]) -> int:
        """Insert scores for one dataset; rows carry employee_id, competency_id, raw_value and numeric_value."""
        scores = [Score(dataset_id=dataset_id, **row) for row in rows]
        if not scores:
            return 0
        async with self.writing() as db:
            db.add_all(scores)
        return len(scores)

    async def insert_if_missing(self, dataset_id: int, rows: Iterable[dict]) -> int:
        """Insert only the rows whose (employee, competency, raw value) is not yet in the dataset."""
        async with self.writing() as db:
            result = await db.execute(select(Score).where(Score.dataset_id == dataset_id))
            present: Set[ScoreKey] = {_key(score) for score in result.scalars()}
            inserted = 0
            for row in rows:
                key = (row["employee_id"], row["competency_id"], row["raw_value"])
                if key in present:
                    continue
                present.add(key)
                db.add(Score(dataset_id=dataset_id, **row))
                inserted += 1
        return inserted

    async def copy_into(self, source_dataset_id: int, target_dataset_id: int) -> int:
        rows = [
            {
                "employee_id": score.employee_id,
                "competency_id": score.competency_id,
                "raw_value": score.raw_value,
                "numeric_value": score.numeric_value,
            }
            for score in await self.list_for_dataset(source_dataset_id)
        ]
        return await self.insert_if_missing(target_dataset_id, rows)

    async def list_for_dataset(self, dataset_id: int, employee_id: Optional[int] = None) -> List[Score]:
        query = select(Score).where(Score.dataset_id == dataset_id)
        if employee_id is not None:
            query = query.where(Score.employee_id == employee_id)
        async with self.reading() as db:
            result = await db.execute(query.order_by(Score.id))
            return list(result.scalars().all())

    async def list_all(self) -> List[Score]:
        async with self.reading() as db:
            result = await db.execute(select(Score).order_by(Score.id))
            return list(result.scalars().all())

    async def count(self, dataset_id: Optional[int] = None) -> int:
        query = select(func.count(Score.id))
        if dataset_id is not None:
            query = query.where(Score.dataset_id == dataset_id)
        async with self.reading() as db:
            result = await db.execute(query)
            return result.scalar_one()

import logging
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy import func, select

from perfstore.errors import ConstraintViolation, InvalidInput
from perfstore.models.competency import Competency
from perfstore.models.score import RatingMapping
from perfstore.repositories.base import Repository

logger = logging.getLogger(__name__)


def rating_key(text_value: str) -> str:
    return text_value.strip().lower()


class CompetencyRepository(Repository):
    async def get_by_name(self, name: str) -> Optional[Competency]:
        async with self.reading() as db:
            result = await db.execute(select(Competency).where(Competency.name == name))
            return result.scalar_one_or_none()

    async def get_or_create(self, name: str) -> Tuple[Competency, bool]:
        """Resolve a competency by its exact name, creating it at the end of the display order."""
        name = name.strip()
        if not name:
            raise InvalidInput("Competency name cannot be blank")
        existing = await self.get_by_name(name)
        if existing is not None:
            return existing, False
        try:
            async with self.writing() as db:
                result = await db.execute(select(func.max(Competency.display_order)))
                last_order = result.scalar()
                competency = Competency(name=name, display_order=0 if last_order is None else last_order + 1)
                db.add(competency)
                await db.flush()
            return competency, True
        except ConstraintViolation:
            logger.warning("Competency %r created concurrently, reusing it", name)
            competency = await self.get_by_name(name)
            if competency is None:
                raise
            return competency, False

    async def resolve_many(self, names: Iterable[str]) -> Dict[str, Competency]:
        resolved: Dict[str, Competency] = {}
        for name in names:
            if name not in resolved:
                resolved[name], _ = await self.get_or_create(name)
        return resolved

    async def list_all(self) -> List[Competency]:
        async with self.reading() as db:
            result = await db.execute(
                select(Competency).order_by(Competency.display_order, Competency.name)
            )
            return list(result.scalars().all())


class RatingMappingRepository(Repository):
    async def list_for_dataset(self, dataset_id: int) -> List[RatingMapping]:
        async with self.reading() as db:
            result = await db.execute(
                select(RatingMapping)
                .where(RatingMapping.dataset_id == dataset_id)
                .order_by(RatingMapping.numeric_value.desc(), RatingMapping.id)
            )
            return list(result.scalars().all())

    async def insert_if_missing(
        self, dataset_id: int, text_value: str, numeric_value: float
    ) -> Tuple[Optional[RatingMapping], bool]:
        """Add a mapping unless the dataset already maps the same normalized text.

        Blank text values are ignored and return ``(None, False)``.
        """
        text_value = text_value.strip()
        if not text_value:
            logger.warning("Ignoring blank rating value for dataset %s", dataset_id)
            return None, False
        key = rating_key(text_value)
        for mapping in await self.list_for_dataset(dataset_id):
            if rating_key(mapping.text_value) == key:
                return mapping, False
        try:
            async with self.writing() as db:
                mapping = RatingMapping(dataset_id=dataset_id, text_value=text_value, numeric_value=numeric_value)
                db.add(mapping)
                await db.flush()
            return mapping, True
        except ConstraintViolation:
            logger.warning("Rating %r already mapped for dataset %s", text_value, dataset_id)
            for mapping in await self.list_for_dataset(dataset_id):
                if rating_key(mapping.text_value) == key:
                    return mapping, False
            raise

    async def lookup(self, dataset_id: int) -> Dict[str, float]:
        """Normalized text → numeric value for one dataset; the first mapping of a text wins."""
        table: Dict[str, float] = {}
        for mapping in await self.list_for_dataset(dataset_id):
            table.setdefault(rating_key(mapping.text_value), mapping.numeric_value)
        return table

    async def count(self, dataset_id: int) -> int:
        async with self.reading() as db:
            result = await db.execute(
                select(func.count(RatingMapping.id)).where(RatingMapping.dataset_id == dataset_id)
            )
            return result.scalar_one()

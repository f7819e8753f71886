from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from perfstore.database import Store
from perfstore.errors import ConstraintViolation, StorageFailure


class Repository:
    """Common plumbing: every public method runs in its own session."""

    def __init__(self, store: Store) -> None:
        self.store = store

    @asynccontextmanager
    async def reading(self) -> AsyncIterator[AsyncSession]:
        async with self.store.session() as session:
            try:
                yield session
            except SQLAlchemyError as e:
                raise StorageFailure(str(e)) from e

    @asynccontextmanager
    async def writing(self) -> AsyncIterator[AsyncSession]:
        async with self.store.session(write=True) as session:
            try:
                async with session.begin():
                    yield session
            except IntegrityError as e:
                raise ConstraintViolation(str(e.orig)) from e
            except SQLAlchemyError as e:
                raise StorageFailure(str(e)) from e

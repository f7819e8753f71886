# perfstore/database.py
import asyncio
import logging
from typing import Optional

from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base

from perfstore.errors import StorageFailure
from perfstore.migrations.manager import SchemaManager

logger = logging.getLogger(__name__)

Base = declarative_base()


def _install_sqlite_transactions(engine: AsyncEngine) -> None:
    # pysqlite only emits BEGIN before DML; take over so DDL shares the transaction.
    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        statement = conn.info.pop("begin_statement", None)
        conn.exec_driver_sql(statement or conn.get_execution_options().get("sqlite_begin", "BEGIN"))


class Store:
    """Explicit handle on one embedded database.

    ``open()`` brings the schema up to ``target_version`` before any session can
    be created, and is safe to await repeatedly: the first caller runs the
    upgrade, later callers get the same handle back.
    """

    def __init__(self, url: str, *, echo: bool = False, target_version: Optional[int] = None) -> None:
        self.url = url
        self.echo = echo
        self.target_version = target_version
        self.engine: Optional[AsyncEngine] = None
        self.schema_version: Optional[int] = None
        self._sessionmaker: Optional[async_sessionmaker] = None
        self._write_sessionmaker: Optional[async_sessionmaker] = None
        self._open_lock = asyncio.Lock()
        # check-then-insert section for employee identities (no unique index on name_key)
        self.identity_lock = asyncio.Lock()

    @property
    def is_open(self) -> bool:
        return self.engine is not None

    async def open(self) -> "Store":
        async with self._open_lock:
            if self.engine is not None:
                return self

            engine = create_async_engine(self.url, echo=self.echo)
            if engine.dialect.name == "sqlite":
                _install_sqlite_transactions(engine)

            try:
                self.schema_version = await SchemaManager(engine, self.target_version).upgrade()
            except BaseException:
                await engine.dispose()
                raise

            self.engine = engine
            self._sessionmaker = async_sessionmaker(bind=engine, expire_on_commit=False, class_=AsyncSession)
            # Writers take the write lock up front; a deferred BEGIN that reads first
            # cannot upgrade its lock while another writer holds it.
            self._write_sessionmaker = async_sessionmaker(
                bind=engine.execution_options(sqlite_begin="BEGIN IMMEDIATE"),
                expire_on_commit=False,
                class_=AsyncSession,
            )
            logger.info("Store opened at %s (schema version %s)", engine.url, self.schema_version)
            return self

    async def close(self) -> None:
        async with self._open_lock:
            if self.engine is None:
                return
            await self.engine.dispose()
            self.engine = None
            self._sessionmaker = None
            self._write_sessionmaker = None
            logger.info("Store closed")

    def session(self, write: bool = False) -> AsyncSession:
        maker = self._write_sessionmaker if write else self._sessionmaker
        if maker is None:
            raise StorageFailure("Store is not open")
        return maker()

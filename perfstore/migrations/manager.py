"""Schema lifecycle: read the recorded version, run pending steps, record the new one.

Steps live in ``perfstore.migrations.versions`` and are applied in revision
order inside a single exclusive transaction, so an upgrade either completes or
leaves the previous schema untouched.
"""
import logging
from typing import Optional

import sqlalchemy as sa
from alembic.migration import MigrationContext
from alembic.operations import Operations
from sqlalchemy.ext.asyncio import AsyncEngine

from perfstore.errors import UpgradeFailure
from perfstore.migrations.versions import (
    v001_initial_schema,
    v002_unique_summary,
    v003_master_employee_data,
)

logger = logging.getLogger(__name__)

STEPS = (
    v001_initial_schema,
    v002_unique_summary,
    v003_master_employee_data,
)
LATEST_VERSION: int = STEPS[-1].revision

_version_table = sa.Table(
    "schema_version",
    sa.MetaData(),
    sa.Column("version", sa.Integer(), nullable=False),
)


def _check_chain() -> None:
    previous = None
    for step in STEPS:
        if step.down_revision != previous:
            raise UpgradeFailure(
                f"Migration {step.revision} revises {step.down_revision}, expected {previous}"
            )
        previous = step.revision


_check_chain()


def read_version(connection: sa.Connection) -> int:
    if not sa.inspect(connection).has_table(_version_table.name):
        return 0
    version = connection.execute(sa.select(sa.func.max(_version_table.c.version))).scalar()
    return version or 0


def _write_version(connection: sa.Connection, version: int) -> None:
    _version_table.create(connection, checkfirst=True)
    connection.execute(_version_table.delete())
    connection.execute(_version_table.insert().values(version=version))


class SchemaManager:
    def __init__(self, engine: AsyncEngine, target_version: Optional[int] = None) -> None:
        self.engine = engine
        self.target_version = LATEST_VERSION if target_version is None else target_version
        if not 1 <= self.target_version <= LATEST_VERSION:
            raise UpgradeFailure(
                f"Unknown schema version {self.target_version} (latest is {LATEST_VERSION})"
            )

    async def upgrade(self) -> int:
        try:
            async with self.engine.connect() as conn:
                if self.engine.dialect.name == "sqlite":
                    conn.info["begin_statement"] = "BEGIN EXCLUSIVE"
                async with conn.begin():
                    return await conn.run_sync(self._upgrade)
        except UpgradeFailure:
            raise
        except Exception as e:
            raise UpgradeFailure(f"Schema upgrade failed: {e}") from e

    def _upgrade(self, connection: sa.Connection) -> int:
        current = read_version(connection)
        if current > self.target_version:
            raise UpgradeFailure(
                f"Database schema version {current} is newer than supported version {self.target_version}"
            )
        if current == self.target_version:
            return current

        op = Operations(MigrationContext.configure(connection))
        for step in STEPS:
            if current < step.revision <= self.target_version:
                logger.info("Applying schema step %s: %s", step.revision, step.title)
                step.upgrade(op)

        _write_version(connection, self.target_version)
        logger.info("Schema upgraded from version %s to %s", current, self.target_version)
        return self.target_version

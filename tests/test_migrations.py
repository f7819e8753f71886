import asyncio
from datetime import datetime, timezone

import pytest
import sqlalchemy as sa

from perfstore.database import Store
from perfstore.errors import UpgradeFailure
from perfstore.migrations.manager import LATEST_VERSION, read_version
from perfstore.migrations.versions.v003_master_employee_data import (
    backfill_score_datasets,
    split_legacy_employees,
)
from perfstore.repositories.employees import EmployeeRepository
from perfstore.repositories.links import LinkRepository
from perfstore.repositories.scores import ScoreRepository

NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)
LEGACY_TIME = datetime(2023, 6, 1)

legacy_datasets = sa.table(
    "datasets",
    sa.column("id", sa.Integer()),
    sa.column("name", sa.String()),
    sa.column("created_at", sa.DateTime()),
    sa.column("updated_at", sa.DateTime()),
)
legacy_employees = sa.table(
    "employees",
    sa.column("id", sa.Integer()),
    sa.column("dataset_id", sa.Integer()),
    sa.column("name", sa.String()),
    sa.column("nip", sa.String()),
    sa.column("created_at", sa.DateTime()),
)
legacy_competencies = sa.table(
    "competencies",
    sa.column("id", sa.Integer()),
    sa.column("name", sa.String()),
    sa.column("display_order", sa.Integer()),
)
legacy_scores = sa.table(
    "scores",
    sa.column("id", sa.Integer()),
    sa.column("employee_id", sa.Integer()),
    sa.column("competency_id", sa.Integer()),
    sa.column("raw_value", sa.String()),
    sa.column("numeric_value", sa.Float()),
    sa.column("created_at", sa.DateTime()),
)
legacy_summaries = sa.table(
    "summaries",
    sa.column("employee_id", sa.Integer()),
    sa.column("content", sa.Text()),
    sa.column("created_at", sa.DateTime()),
    sa.column("updated_at", sa.DateTime()),
)


# Pure transformation

def test_split_legacy_employees_builds_links():
    rows = [
        {"id": 1, "dataset_id": 10, "name": "José Álvarez", "nip": "1", "created_at": LEGACY_TIME},
        {"id": 2, "dataset_id": None, "name": "Budi", "nip": None, "created_at": None},
    ]

    employees, links = split_legacy_employees(rows, NOW)

    assert [e["id"] for e in employees] == [1, 2]
    assert all("dataset_id" not in e for e in employees)
    assert employees[0]["name_key"] == "jose alvarez"
    assert employees[0]["created_at"] == LEGACY_TIME
    assert employees[1]["created_at"] == NOW
    assert all(e["updated_at"] == NOW for e in employees)
    assert links == [{"dataset_id": 10, "employee_id": 1, "created_at": LEGACY_TIME, "updated_at": NOW}]


def test_backfill_uses_link_map_then_lookup():
    rows = [
        {"id": 1, "employee_id": 1, "dataset_id": None},
        {"id": 2, "employee_id": 2, "dataset_id": None},
        {"id": 3, "employee_id": 3, "dataset_id": None},
        {"id": 4, "employee_id": 1, "dataset_id": 7},
    ]
    looked_up = []

    def lookup(employee_id):
        looked_up.append(employee_id)
        return 20 if employee_id == 2 else None

    updates, unresolved = backfill_score_datasets(rows, {1: 10}, lookup)

    assert updates == [
        {"b_score_id": 1, "b_dataset_id": 10},
        {"b_score_id": 2, "b_dataset_id": 20},
    ]
    assert unresolved == [3]
    assert looked_up == [2, 3]


# Store lifecycle

async def test_fresh_store_is_created_at_latest_version(store):
    assert store.schema_version == LATEST_VERSION
    async with store.engine.connect() as conn:
        assert await conn.run_sync(read_version) == LATEST_VERSION
        tables = await conn.run_sync(lambda c: set(sa.inspect(c).get_table_names()))
    assert {"datasets", "employees", "dataset_employees", "competencies",
            "scores", "rating_mappings", "summaries", "schema_version"} <= tables


async def test_open_is_idempotent(db_url):
    store = Store(db_url)
    first, second = await asyncio.gather(store.open(), store.open())
    engine = store.engine
    try:
        assert first is second is store
        assert (await store.open()).engine is engine
    finally:
        await store.close()
    assert not store.is_open


async def _seed_legacy_store(db_url):
    legacy = Store(db_url, target_version=1)
    await legacy.open()
    assert legacy.schema_version == 1
    async with legacy.engine.begin() as conn:
        await conn.execute(legacy_datasets.insert(), [
            {"id": 1, "name": "2022", "created_at": LEGACY_TIME, "updated_at": LEGACY_TIME},
            {"id": 2, "name": "2023", "created_at": LEGACY_TIME, "updated_at": LEGACY_TIME},
        ])
        await conn.execute(legacy_employees.insert(), [
            {"id": 1, "dataset_id": 1, "name": "Ana Putri", "nip": "1001", "created_at": LEGACY_TIME},
            {"id": 2, "dataset_id": 2, "name": "Budi", "nip": None, "created_at": LEGACY_TIME},
            {"id": 3, "dataset_id": 1, "name": "Cici", "nip": None, "created_at": LEGACY_TIME},
        ])
        await conn.execute(legacy_competencies.insert(), [
            {"id": 1, "name": "Integritas", "display_order": 0},
        ])
        await conn.execute(legacy_scores.insert(), [
            {"id": 1, "employee_id": 1, "competency_id": 1, "raw_value": "Baik",
             "numeric_value": 4.0, "created_at": LEGACY_TIME},
            {"id": 2, "employee_id": 2, "competency_id": 1, "raw_value": "Cukup",
             "numeric_value": 3.0, "created_at": LEGACY_TIME},
            {"id": 3, "employee_id": 3, "competency_id": 1, "raw_value": "Baik",
             "numeric_value": 4.0, "created_at": LEGACY_TIME},
            # employee 99 never existed
            {"id": 4, "employee_id": 99, "competency_id": 1, "raw_value": "Baik",
             "numeric_value": 4.0, "created_at": LEGACY_TIME},
        ])
    return legacy


async def test_upgrade_moves_legacy_employees_into_master_data(db_url):
    legacy = await _seed_legacy_store(db_url)
    await legacy.close()

    store = Store(db_url)
    await store.open()
    try:
        assert store.schema_version == LATEST_VERSION

        links = await LinkRepository(store).list_all()
        assert sorted((link.dataset_id, link.employee_id) for link in links) == [(1, 1), (1, 3), (2, 2)]

        employees = {e.id: e for e in await EmployeeRepository(store).list_all()}
        assert set(employees) == {1, 2, 3}
        assert employees[1].name_key == "ana putri"
        assert employees[1].nip == "1001"
        assert employees[1].updated_at is not None

        scores = {s.id: s.dataset_id for s in await ScoreRepository(store).list_all()}
        assert scores == {1: 1, 2: 2, 3: 1, 4: None}
    finally:
        await store.close()


async def test_store_newer_than_target_is_rejected(store, db_url):
    older = Store(db_url, target_version=2)
    with pytest.raises(UpgradeFailure):
        await older.open()
    assert not older.is_open


async def test_unknown_target_version_is_rejected(db_url):
    with pytest.raises(UpgradeFailure):
        await Store(db_url, target_version=LATEST_VERSION + 1).open()


async def test_failed_step_rolls_back_the_whole_upgrade(db_url):
    legacy = await _seed_legacy_store(db_url)
    async with legacy.engine.begin() as conn:
        # two summaries for one employee break the v2 unique index
        await conn.execute(legacy_summaries.insert(), [
            {"employee_id": 1, "content": "a", "created_at": LEGACY_TIME, "updated_at": LEGACY_TIME},
            {"employee_id": 1, "content": "b", "created_at": LEGACY_TIME, "updated_at": LEGACY_TIME},
        ])
    await legacy.close()

    with pytest.raises(UpgradeFailure):
        await Store(db_url).open()

    reopened = Store(db_url, target_version=1)
    await reopened.open()
    try:
        assert reopened.schema_version == 1
        async with reopened.engine.connect() as conn:
            tables = await conn.run_sync(lambda c: set(sa.inspect(c).get_table_names()))
            employee_columns = await conn.run_sync(
                lambda c: {col["name"] for col in sa.inspect(c).get_columns("employees")}
            )
        assert "dataset_employees" not in tables
        assert "dataset_id" in employee_columns
    finally:
        await reopened.close()

"""master employee data

Revision: 3
Revises: 2

Employees stop belonging to a single dataset. Every legacy employee keeps its
id, loses ``dataset_id`` and gets a ``dataset_employees`` link recording the
dataset it used to belong to; every score gains the ``dataset_id`` of its
employee's former dataset.
"""
import logging
from datetime import datetime
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Tuple

import sqlalchemy as sa
from alembic.operations import Operations

from perfstore.services.normalization import identity_key
from perfstore.utils.clock import utcnow

logger = logging.getLogger(__name__)

revision: int = 3
down_revision: Optional[int] = 2
title = "master employee data"


def split_legacy_employees(
    rows: Iterable[Mapping], now: datetime
) -> Tuple[List[dict], List[dict]]:
    """Turn legacy dataset-owned employee rows into global employees plus links."""
    employees: List[dict] = []
    links: List[dict] = []
    for row in rows:
        record = dict(row)
        dataset_id = record.pop("dataset_id", None)
        created_at = record.get("created_at") or now
        record["created_at"] = created_at
        record["updated_at"] = now
        record["name_key"] = identity_key(record["name"])
        employees.append(record)
        if dataset_id is not None:
            links.append({
                "dataset_id": dataset_id,
                "employee_id": record["id"],
                "created_at": created_at,
                "updated_at": now,
            })
    return employees, links


def backfill_score_datasets(
    rows: Iterable[Mapping],
    link_map: Mapping[int, int],
    lookup: Callable[[int], Optional[int]],
) -> Tuple[List[dict], List[int]]:
    """Resolve a dataset for every score that has none.

    ``link_map`` is the employee → dataset map built while splitting employees;
    ``lookup`` is consulted for employees missing from it. Returns the updates to
    apply and the ids of scores that could not be resolved.
    """
    updates: List[dict] = []
    unresolved: List[int] = []
    for row in rows:
        if row.get("dataset_id") is not None:
            continue
        dataset_id = link_map.get(row["employee_id"])
        if dataset_id is None:
            dataset_id = lookup(row["employee_id"])
        if dataset_id is None:
            unresolved.append(row["id"])
            continue
        updates.append({"b_score_id": row["id"], "b_dataset_id": dataset_id})
    return updates, unresolved


def upgrade(op: Operations) -> None:
    bind = op.get_bind()
    now = utcnow()

    links_table = op.create_table(
        "dataset_employees",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("dataset_id", sa.Integer(), nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("dataset_id", "employee_id", name="uq_dataset_employee"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_dataset_employees_dataset_id", "dataset_employees", ["dataset_id"])
    op.create_index("ix_dataset_employees_employee_id", "dataset_employees", ["employee_id"])

    # Index names are schema-global; free them before the rebuild.
    op.drop_index("ix_employees_dataset_id", table_name="employees")
    op.drop_index("ix_employees_name", table_name="employees")
    op.rename_table("employees", "employees_legacy")

    employees_table = op.create_table(
        "employees",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("name_key", sa.String(), nullable=False),
        sa.Column("nip", sa.String(), nullable=True),
        sa.Column("gol", sa.String(), nullable=True),
        sa.Column("jabatan", sa.String(), nullable=True),
        sa.Column("sub_jabatan", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_employees_name", "employees", ["name"])
    op.create_index("ix_employees_name_key", "employees", ["name_key"])

    legacy_employees = sa.table(
        "employees_legacy",
        sa.column("id", sa.Integer()),
        sa.column("dataset_id", sa.Integer()),
        sa.column("name", sa.String()),
        sa.column("nip", sa.String()),
        sa.column("gol", sa.String()),
        sa.column("jabatan", sa.String()),
        sa.column("sub_jabatan", sa.String()),
        sa.column("created_at", sa.DateTime(timezone=True)),
    )
    rows = bind.execute(sa.select(legacy_employees).order_by(legacy_employees.c.id)).mappings()
    employees, links = split_legacy_employees(rows, now)
    if employees:
        op.bulk_insert(employees_table, employees)
    if links:
        op.bulk_insert(links_table, links)
    logger.info("Moved %d employees into master data with %d dataset links", len(employees), len(links))

    op.add_column("scores", sa.Column("dataset_id", sa.Integer(), nullable=True))
    op.create_index("ix_scores_dataset_id", "scores", ["dataset_id"])

    scores = sa.table(
        "scores",
        sa.column("id", sa.Integer()),
        sa.column("employee_id", sa.Integer()),
        sa.column("dataset_id", sa.Integer()),
    )
    link_map: Dict[int, int] = {link["employee_id"]: link["dataset_id"] for link in links}

    def lookup(employee_id: int) -> Optional[int]:
        return bind.execute(
            sa.select(links_table.c.dataset_id)
            .where(links_table.c.employee_id == employee_id)
            .order_by(links_table.c.id)
            .limit(1)
        ).scalar()

    pending = bind.execute(
        sa.select(scores).where(scores.c.dataset_id.is_(None)).order_by(scores.c.id)
    ).mappings().all()
    updates, unresolved = backfill_score_datasets(pending, link_map, lookup)
    if updates:
        bind.execute(
            scores.update()
            .where(scores.c.id == sa.bindparam("b_score_id"))
            .values(dataset_id=sa.bindparam("b_dataset_id")),
            updates,
        )
    if unresolved:
        logger.warning("%d legacy scores reference employees without a dataset: %s", len(unresolved), unresolved)

    op.drop_table("employees_legacy")

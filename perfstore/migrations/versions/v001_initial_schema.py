"""initial schema

Revision: 1
Revises:
"""
from typing import Optional

import sqlalchemy as sa
from alembic.operations import Operations


revision: int = 1
down_revision: Optional[int] = None
title = "initial schema"


def upgrade(op: Operations) -> None:
    # Employees are still owned by one dataset at this version.
    existing = set(sa.inspect(op.get_bind()).get_table_names())

    if "datasets" not in existing:
        op.create_table(
            "datasets",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("name", sa.String(), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("source_file", sa.String(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
            sqlite_autoincrement=True,
        )
        op.create_index("ix_datasets_name", "datasets", ["name"])

    if "employees" not in existing:
        op.create_table(
            "employees",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("dataset_id", sa.Integer(), nullable=False),
            sa.Column("name", sa.String(), nullable=False),
            sa.Column("nip", sa.String(), nullable=True),
            sa.Column("gol", sa.String(), nullable=True),
            sa.Column("jabatan", sa.String(), nullable=True),
            sa.Column("sub_jabatan", sa.String(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sqlite_autoincrement=True,
        )
        op.create_index("ix_employees_dataset_id", "employees", ["dataset_id"])
        op.create_index("ix_employees_name", "employees", ["name"])

    if "competencies" not in existing:
        op.create_table(
            "competencies",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("name", sa.String(), nullable=False),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("display_order", sa.Integer(), nullable=False, server_default="0"),
            sa.UniqueConstraint("name", name="uq_competencies_name"),
            sqlite_autoincrement=True,
        )

    if "scores" not in existing:
        op.create_table(
            "scores",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("employee_id", sa.Integer(), nullable=False),
            sa.Column("competency_id", sa.Integer(), nullable=False),
            sa.Column("raw_value", sa.String(), nullable=False),
            sa.Column("numeric_value", sa.Float(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sqlite_autoincrement=True,
        )
        op.create_index("ix_scores_employee_id", "scores", ["employee_id"])
        op.create_index("ix_scores_competency_id", "scores", ["competency_id"])

    if "rating_mappings" not in existing:
        op.create_table(
            "rating_mappings",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("dataset_id", sa.Integer(), nullable=False),
            sa.Column("text_value", sa.String(), nullable=False),
            sa.Column("numeric_value", sa.Float(), nullable=False),
            sa.UniqueConstraint("dataset_id", "text_value", name="uq_rating_mapping_text"),
            sqlite_autoincrement=True,
        )
        op.create_index("ix_rating_mappings_dataset_id", "rating_mappings", ["dataset_id"])

    if "summaries" not in existing:
        op.create_table(
            "summaries",
            sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
            sa.Column("employee_id", sa.Integer(), nullable=False),
            sa.Column("content", sa.Text(), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
            sqlite_autoincrement=True,
        )
        op.create_index("ix_summaries_employee_id", "summaries", ["employee_id"])

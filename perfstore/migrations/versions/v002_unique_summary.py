"""unique summary per employee

Revision: 2
Revises: 1
"""
from typing import Optional

from alembic.operations import Operations


revision: int = 2
down_revision: Optional[int] = 1
title = "unique summary per employee"


def upgrade(op: Operations) -> None:
    # Fails (and rolls the whole upgrade back) if an employee already has two summaries.
    op.drop_index("ix_summaries_employee_id", table_name="summaries")
    op.create_index("uq_summaries_employee_id", "summaries", ["employee_id"], unique=True)

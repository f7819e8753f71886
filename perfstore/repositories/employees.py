from typing import Dict, Iterable, List, Optional

from sqlalchemy import delete, func, select

from perfstore.errors import InvalidInput, NotFound
from perfstore.models.employee import DatasetEmployee, Employee
from perfstore.models.score import Score
from perfstore.models.summary import Summary
from perfstore.repositories.base import Repository
from perfstore.schemas.employee import EmployeeRow, EmployeeUpdate
from perfstore.services.normalization import (
    OPTIONAL_FIELDS,
    identity_key,
    merge_employee_fields,
    sanitize_optional,
)
from perfstore.utils.clock import utcnow


def _as_row(employee: Employee) -> EmployeeRow:
    return EmployeeRow(
        name=employee.name,
        nip=employee.nip,
        gol=employee.gol,
        jabatan=employee.jabatan,
        sub_jabatan=employee.sub_jabatan,
    )


class EmployeeRepository(Repository):
    async def create(self, row: EmployeeRow) -> Employee:
        name = row.name.strip()
        if not name:
            raise InvalidInput("Employee name cannot be blank")
        async with self.writing() as db:
            employee = Employee(
                name=name,
                name_key=identity_key(name),
                **{field: sanitize_optional(getattr(row, field)) for field in OPTIONAL_FIELDS},
            )
            db.add(employee)
            await db.flush()
        return employee

    async def get(self, employee_id: int) -> Employee:
        async with self.reading() as db:
            employee = await db.get(Employee, employee_id)
        if employee is None:
            raise NotFound("Employee", employee_id)
        return employee

    async def find_by_key(self, key: str) -> Optional[Employee]:
        # Legacy data may hold several records per key; the oldest one is canonical.
        async with self.reading() as db:
            result = await db.execute(
                select(Employee).where(Employee.name_key == key).order_by(Employee.id).limit(1)
            )
            return result.scalar_one_or_none()

    async def find_by_keys(self, keys: Iterable[str]) -> Dict[str, Employee]:
        keys = set(keys)
        if not keys:
            return {}
        async with self.reading() as db:
            result = await db.execute(
                select(Employee).where(Employee.name_key.in_(keys)).order_by(Employee.id)
            )
            found: Dict[str, Employee] = {}
            for employee in result.scalars():
                found.setdefault(employee.name_key, employee)
            return found

    async def list_all(self) -> List[Employee]:
        async with self.reading() as db:
            result = await db.execute(select(Employee).order_by(func.lower(Employee.name), Employee.id))
            return list(result.scalars().all())

    async def list_by_ids(self, ids: Iterable[int]) -> List[Employee]:
        ids = list(ids)
        if not ids:
            return []
        async with self.reading() as db:
            result = await db.execute(select(Employee).where(Employee.id.in_(ids)))
            return list(result.scalars().all())

    async def count(self) -> int:
        async with self.reading() as db:
            result = await db.execute(select(func.count(Employee.id)))
            return result.scalar_one()

    async def fill_missing(self, employee_id: int, row: EmployeeRow) -> Employee:
        """Fill the optional fields the stored record lacks and refresh updated_at."""
        async with self.writing() as db:
            employee = await db.get(Employee, employee_id)
            if employee is None:
                raise NotFound("Employee", employee_id)
            merged = merge_employee_fields(_as_row(employee), row)
            for field in OPTIONAL_FIELDS:
                setattr(employee, field, getattr(merged, field))
            employee.updated_at = utcnow()
        return employee

    async def bulk_update(self, updates: List[EmployeeUpdate]) -> int:
        if not updates:
            return 0
        total_updated = 0
        async with self.writing() as db:
            for update in updates:
                provided = update.model_fields_set - {"id"}
                if not provided:
                    # nothing to update for this record
                    continue
                employee = await db.get(Employee, update.id)
                if employee is None:
                    raise NotFound("Employee", update.id)
                if "name" in provided:
                    name = (update.name or "").strip()
                    if not name:
                        raise InvalidInput(f"Employee {update.id} name cannot be blank")
                    key = identity_key(name)
                    taken = await db.execute(
                        select(Employee.id).where(Employee.name_key == key).where(Employee.id != employee.id).limit(1)
                    )
                    if taken.scalar_one_or_none() is not None:
                        raise InvalidInput(f"Employee name {name!r} is already used by another employee")
                    employee.name = name
                    employee.name_key = key
                for field in OPTIONAL_FIELDS:
                    if field in provided:
                        setattr(employee, field, sanitize_optional(getattr(update, field)))
                employee.updated_at = utcnow()
                total_updated += 1
        return total_updated

    async def bulk_delete(self, ids: List[int]) -> int:
        """Delete employees together with their scores, dataset links and summary."""
        if not ids:
            return 0
        async with self.writing() as db:
            await db.execute(delete(Score).where(Score.employee_id.in_(ids)))
            await db.execute(delete(DatasetEmployee).where(DatasetEmployee.employee_id.in_(ids)))
            await db.execute(delete(Summary).where(Summary.employee_id.in_(ids)))
            result = await db.execute(delete(Employee).where(Employee.id.in_(ids)))
            return result.rowcount or 0

"""Error taxonomy shared by the store, the import layer and the HTTP layer.

Validation findings (duplicates, orphans, unmapped ratings, blank names) are
not errors: they are returned as data by ``services.validation``.
"""
from typing import Optional


class PerfStoreError(Exception):
    """Base class for every error raised by perfstore."""


class NotFound(PerfStoreError):
    def __init__(self, entity: str, identity) -> None:
        self.entity = entity
        self.identity = identity
        super().__init__(f"{entity} {identity} not found")


class ConstraintViolation(PerfStoreError):
    """A unique index rejected a write."""


class InvalidInput(PerfStoreError):
    """The caller supplied data that an operation cannot accept."""


class BlankName(InvalidInput):
    def __init__(self, row: Optional[int] = None, what: str = "Employee name") -> None:
        self.row = row
        message = f"{what} cannot be blank"
        if row is not None:
            message += f" (row {row})"
        super().__init__(message)


class UnknownEmployee(InvalidInput):
    def __init__(self, name: str, row: Optional[int] = None) -> None:
        self.name = name
        self.row = row
        message = f"Employee not found in master data: {name}"
        if row is not None:
            message += f" (row {row})"
        super().__init__(message)


class UpgradeFailure(PerfStoreError):
    """The schema upgrade could not complete; the store was not opened."""


class StorageFailure(PerfStoreError):
    """The underlying database reported an error."""

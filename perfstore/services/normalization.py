"""Employee identity normalization.

Two display names denote the same employee when their normalized keys are
equal: "José  Álvarez", "jose alvarez" and " JOSE-ALVAREZ " all map to
``"jose alvarez"``. Every import path resolves employees through these helpers.
"""
import re
import unicodedata
from typing import Dict, Iterable, Optional

from perfstore.errors import BlankName
from perfstore.schemas.employee import EmployeeRow

OPTIONAL_FIELDS = ("nip", "gol", "jabatan", "sub_jabatan")

_WHITESPACE = re.compile(r"\s+")


def normalize_name(name: Optional[str]) -> str:
    if not name:
        return ""
    decomposed = unicodedata.normalize("NFKD", name)
    without_marks = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    letters = "".join(ch if ch.isalpha() else " " for ch in without_marks)
    return _WHITESPACE.sub(" ", letters).lower().strip()


def identity_key(name: Optional[str]) -> str:
    """Lookup key for an employee; names without letters fall back to their trimmed lower-case form."""
    return normalize_name(name) or (name or "").strip().lower()


def sanitize_optional(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def merge_employee_fields(
    existing: EmployeeRow, incoming: EmployeeRow, prefer_incoming: bool = False
) -> EmployeeRow:
    """Combine two rows describing the same employee.

    The display name of ``existing`` is kept. With ``prefer_incoming`` the
    incoming non-blank optional fields replace existing ones (later rows of a
    batch win); without it only fields ``existing`` lacks are filled (a stored
    record keeps what it already has).
    """
    merged = {"name": existing.name.strip() or incoming.name.strip()}
    for field in OPTIONAL_FIELDS:
        current = sanitize_optional(getattr(existing, field))
        new = sanitize_optional(getattr(incoming, field))
        if prefer_incoming:
            merged[field] = new if new is not None else current
        else:
            merged[field] = current if current is not None else new
    return EmployeeRow(**merged)


def collapse_employee_rows(rows: Iterable[EmployeeRow]) -> Dict[str, EmployeeRow]:
    """Deduplicate a batch by identity key, in first-seen order.

    Raises BlankName for the first row whose name is empty after trimming.
    """
    unique: Dict[str, EmployeeRow] = {}
    for index, row in enumerate(rows):
        trimmed = row.name.strip()
        if not trimmed:
            raise BlankName(index)
        key = identity_key(trimmed)
        incoming = merge_employee_fields(EmployeeRow(name=trimmed), row, prefer_incoming=True)
        if key in unique:
            unique[key] = merge_employee_fields(unique[key], incoming, prefer_incoming=True)
        else:
            unique[key] = incoming
    return unique

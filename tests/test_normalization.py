import pytest

from perfstore.errors import BlankName
from perfstore.schemas.employee import EmployeeRow
from perfstore.services.normalization import (
    collapse_employee_rows,
    identity_key,
    merge_employee_fields,
    normalize_name,
    sanitize_optional,
)

NAMES = ["José  Álvarez", " JOSE-ALVAREZ ", "Siti Nur'aini", "Ñandú", "Dr. Budi, S.E.", "", "  "]


@pytest.mark.parametrize("name", NAMES)
def test_normalize_is_idempotent(name):
    assert normalize_name(normalize_name(name)) == normalize_name(name)


def test_normalize_ignores_case_diacritics_and_padding():
    assert normalize_name("José  Álvarez") == "jose alvarez"
    assert normalize_name("  JOSE-ALVAREZ\t") == "jose alvarez"
    assert normalize_name("jose alvarez") == "jose alvarez"


def test_normalize_drops_non_letters():
    assert normalize_name("Dr. Budi, S.E.") == "dr budi s e"
    assert normalize_name("Ana 2") == "ana"
    assert normalize_name(None) == ""


def test_identity_key_falls_back_for_names_without_letters():
    assert identity_key("Ana") == "ana"
    assert identity_key(" 007 ") == "007"
    assert identity_key("   ") == ""


def test_sanitize_optional():
    assert sanitize_optional(None) is None
    assert sanitize_optional("   ") is None
    assert sanitize_optional(" 1001 ") == "1001"


def test_merge_keeps_populated_fields_and_display_name():
    existing = EmployeeRow(name="Ana Putri", nip="1001", gol=None)
    incoming = EmployeeRow(name="ana putri", nip="9999", gol="III/a", jabatan="  ")

    merged = merge_employee_fields(existing, incoming)

    assert merged.name == "Ana Putri"
    assert merged.nip == "1001"
    assert merged.gol == "III/a"
    assert merged.jabatan is None


def test_merge_prefer_incoming_overrides_non_blank_fields():
    existing = EmployeeRow(name="Ana Putri", nip="1001", gol="III/a")
    incoming = EmployeeRow(name="ANA PUTRI", nip="2002", gol="")

    merged = merge_employee_fields(existing, incoming, prefer_incoming=True)

    assert merged.name == "Ana Putri"
    assert merged.nip == "2002"
    assert merged.gol == "III/a"


def test_collapse_merges_rows_with_the_same_identity():
    rows = [
        EmployeeRow(name=" Ana Putri ", nip="1001"),
        EmployeeRow(name="Budi"),
        EmployeeRow(name="ANA PUTRI", nip="2002", jabatan="Staf"),
    ]

    unique = collapse_employee_rows(rows)

    assert list(unique) == ["ana putri", "budi"]
    assert unique["ana putri"].name == "Ana Putri"
    assert unique["ana putri"].nip == "2002"
    assert unique["ana putri"].jabatan == "Staf"


def test_collapse_rejects_blank_names():
    with pytest.raises(BlankName) as excinfo:
        collapse_employee_rows([EmployeeRow(name="Ana"), EmployeeRow(name="   ")])
    assert excinfo.value.row == 1

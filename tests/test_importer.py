import asyncio

import pytest

from perfstore.errors import BlankName, InvalidInput, NotFound, UnknownEmployee
from perfstore.repositories.catalog import CompetencyRepository, RatingMappingRepository
from perfstore.repositories.datasets import DatasetRepository
from perfstore.repositories.employees import EmployeeRepository
from perfstore.repositories.links import LinkRepository
from perfstore.repositories.scores import ScoreRepository
from perfstore.schemas.dataset import MergeDatasetsRequest
from perfstore.schemas.employee import EmployeeRow
from perfstore.schemas.imports import (
    PerformanceAppendRequest,
    PerformanceImportRequest,
    RatingMappingIn,
    ScoreRow,
)
from perfstore.services import importer


def performance(name, scores, mappings=(("Baik", 4),), employee_names=()):
    return PerformanceImportRequest(
        dataset_name=name,
        employee_names=list(employee_names),
        scores=[ScoreRow(employee_name=e, competency=c, value=v) for e, c, v in scores],
        rating_mappings=[RatingMappingIn(text_value=t, numeric_value=n) for t, n in mappings],
    )


# Employee import

async def test_reimporting_the_same_row_updates_instead_of_duplicating(store):
    row = EmployeeRow(name="Ana Putri", nip="1001")

    first = await importer.import_employees(store, [row])
    second = await importer.import_employees(store, [row])

    assert (first.inserted, first.updated, first.total) == (1, 0, 1)
    assert (second.inserted, second.updated, second.total) == (0, 1, 1)
    assert await EmployeeRepository(store).count() == 1


async def test_spelling_variants_resolve_to_one_employee(store):
    await importer.import_employees(store, [EmployeeRow(name="José Álvarez", nip="1")])
    result = await importer.import_employees(store, [EmployeeRow(name="  JOSE alvarez", nip="2", gol="III/a")])

    assert result.updated == 1
    [employee] = await EmployeeRepository(store).list_all()
    assert employee.name == "José Álvarez"
    assert employee.nip == "1"
    assert employee.gol == "III/a"


async def test_later_rows_of_a_batch_win(store):
    result = await importer.import_employees(store, [
        EmployeeRow(name="Ana", nip="1", jabatan="Staf"),
        EmployeeRow(name="ANA", nip="2"),
    ])

    assert (result.inserted, result.total) == (1, 1)
    [employee] = await EmployeeRepository(store).list_all()
    assert (employee.name, employee.nip, employee.jabatan) == ("Ana", "2", "Staf")


async def test_blank_name_aborts_employee_import(store):
    with pytest.raises(BlankName):
        await importer.import_employees(store, [EmployeeRow(name="Ana"), EmployeeRow(name=" ")])
    assert await EmployeeRepository(store).count() == 0


async def test_empty_employee_import(store):
    result = await importer.import_employees(store, [])
    assert (result.inserted, result.updated, result.total) == (0, 0, 0)


# Performance import

async def test_ratings_resolve_case_insensitively(staff):
    result = await importer.import_performance_dataset(staff, performance("2024", [
        ("Ana Putri", "Integritas", "baik"),
        ("ana putri", "Kerjasama", "Cukup"),
    ]))

    assert (result.employee_count, result.competency_count, result.score_count) == (1, 2, 2)
    values = {s.raw_value: s.numeric_value for s in await ScoreRepository(staff).list_for_dataset(result.dataset.id)}
    assert values == {"baik": 4.0, "Cukup": None}


async def test_unknown_employee_aborts_before_anything_is_written(staff):
    request = performance("2024", [
        ("Ana Putri", "Integritas", "Baik"),
        ("Siapa Saja", "Integritas", "Baik"),
    ])

    with pytest.raises(UnknownEmployee) as excinfo:
        await importer.import_performance_dataset(staff, request)

    assert excinfo.value.name == "Siapa Saja"
    assert excinfo.value.row == 1
    assert await DatasetRepository(staff).list_all() == []
    assert await CompetencyRepository(staff).list_all() == []


async def test_employee_names_without_scores_are_linked(staff):
    result = await importer.import_performance_dataset(staff, performance(
        "2024", [("Ana Putri", "Integritas", "Baik")], employee_names=["Budi Santoso", " ", "ana putri"],
    ))

    assert result.employee_count == 2
    assert await LinkRepository(staff).count(result.dataset.id) == 2


async def test_blank_rating_text_is_skipped(staff):
    result = await importer.import_performance_dataset(staff, performance(
        "2024", [("Ana Putri", "Integritas", "Baik")], mappings=(("Baik", 4), ("  ", 0)),
    ))
    assert await RatingMappingRepository(staff).count(result.dataset.id) == 1


async def test_competencies_keep_first_seen_order(staff):
    await importer.import_performance_dataset(staff, performance("2024", [
        ("Ana Putri", "Zeta", "Baik"),
        ("Ana Putri", "Alpha", "Baik"),
    ]))
    await importer.import_performance_dataset(staff, performance("2025", [
        ("Ana Putri", "Alpha", "Baik"),
        ("Ana Putri", "Beta", "Baik"),
    ]))

    competencies = await CompetencyRepository(staff).list_all()
    assert [(c.name, c.display_order) for c in competencies] == [("Zeta", 0), ("Alpha", 1), ("Beta", 2)]


async def test_blank_dataset_name_is_rejected(staff):
    with pytest.raises(InvalidInput):
        await importer.import_performance_dataset(staff, performance("  ", []))


async def test_concurrent_imports_share_new_competencies(staff):
    requests = [
        performance(f"202{n}", [("Ana Putri", "Integritas", "Baik"), ("Budi Santoso", "Kerjasama", "Baik")])
        for n in range(4)
    ]

    results = await asyncio.gather(*(importer.import_performance_dataset(staff, r) for r in requests))

    assert [r.score_count for r in results] == [2, 2, 2, 2]
    names = sorted(c.name for c in await CompetencyRepository(staff).list_all())
    assert names == ["Integritas", "Kerjasama"]
    assert len(await DatasetRepository(staff).list_all()) == 4


# Append

async def test_append_employees_links_and_counts(staff):
    dataset = await DatasetRepository(staff).create("2024")

    first = await importer.append_dataset_employees(staff, dataset.id, [
        EmployeeRow(name="Ana Putri"),
        EmployeeRow(name="Dewi Lestari", nip="1004"),
        EmployeeRow(name="dewi lestari", jabatan="Staf"),
    ])
    second = await importer.append_dataset_employees(staff, dataset.id, [EmployeeRow(name="ANA PUTRI")])

    assert (first.created, first.updated, first.linked) == (1, 1, 2)
    assert (second.created, second.updated, second.linked) == (0, 1, 0)
    dewi = await EmployeeRepository(staff).find_by_key("dewi lestari")
    assert (dewi.nip, dewi.jabatan) == ("1004", "Staf")
    assert await LinkRepository(staff).count(dataset.id) == 2


async def test_append_employees_to_missing_dataset(staff):
    with pytest.raises(NotFound):
        await importer.append_dataset_employees(staff, 404, [EmployeeRow(name="Ana Putri")])


async def test_append_scores_does_not_repeat_existing_facts(staff):
    created = await importer.import_performance_dataset(staff, performance("2024", [
        ("Ana Putri", "Integritas", "Baik"),
    ]))
    request = PerformanceAppendRequest(
        scores=[
            ScoreRow(employee_name="Ana Putri", competency="Integritas", value="Baik"),
            ScoreRow(employee_name="Budi Santoso", competency="Integritas", value="sangat baik"),
        ],
        rating_mappings=[RatingMappingIn(text_value="Sangat Baik", numeric_value=5)],
    )

    result = await importer.append_performance_scores(staff, created.dataset.id, request)

    assert (result.employee_count, result.score_count) == (2, 1)
    scores = await ScoreRepository(staff).list_for_dataset(created.dataset.id)
    assert sorted(s.numeric_value for s in scores) == [4.0, 5.0]
    assert await LinkRepository(staff).count(created.dataset.id) == 2


async def test_append_scores_to_missing_dataset(staff):
    with pytest.raises(NotFound):
        await importer.append_performance_scores(staff, 404, PerformanceAppendRequest())


# Merge

async def test_merge_unions_without_duplicates(staff):
    a = await importer.import_performance_dataset(staff, performance("A", [
        ("Jane Doe", "Integrity", "Baik"),
    ]))
    b = await importer.import_performance_dataset(staff, performance("B", [
        ("Jane Doe", "Integrity", "Baik"),
        ("Ana Putri", "Integrity", "Cukup"),
    ], mappings=(("baik", 4), ("Cukup", 3))))

    result = await importer.merge_datasets(staff, MergeDatasetsRequest(
        source_dataset_ids=[a.dataset.id, b.dataset.id, a.dataset.id],
        target_name="  Gabungan ",
        target_description="A + B",
    ))

    target = result.dataset.id
    assert result.dataset.name == "Gabungan"
    assert result.source_dataset_ids == [a.dataset.id, b.dataset.id]
    assert result.employee_count == 2
    assert result.score_count == 2
    assert result.rating_mapping_count == 2

    jane = await EmployeeRepository(staff).find_by_key("jane doe")
    jane_links = [l for l in await LinkRepository(staff).list_all() if l.dataset_id == target and l.employee_id == jane.id]
    assert len(jane_links) == 1
    jane_scores = await ScoreRepository(staff).list_for_dataset(target, jane.id)
    assert [(s.raw_value, s.numeric_value) for s in jane_scores] == [("Baik", 4.0)]
    # sources are untouched
    assert await ScoreRepository(staff).count(b.dataset.id) == 2


@pytest.mark.parametrize("ids", [[], [1], [1, 1]])
async def test_merge_needs_two_distinct_sources(staff, ids):
    with pytest.raises(InvalidInput):
        await importer.merge_datasets(staff, MergeDatasetsRequest(source_dataset_ids=ids, target_name="X"))


async def test_merge_needs_a_target_name(staff):
    a = await DatasetRepository(staff).create("A")
    b = await DatasetRepository(staff).create("B")
    with pytest.raises(InvalidInput):
        await importer.merge_datasets(staff, MergeDatasetsRequest(source_dataset_ids=[a.id, b.id], target_name=" "))


async def test_merge_with_missing_source_creates_nothing(staff):
    a = await DatasetRepository(staff).create("A")
    with pytest.raises(NotFound):
        await importer.merge_datasets(staff, MergeDatasetsRequest(source_dataset_ids=[a.id, 999], target_name="X"))
    assert len(await DatasetRepository(staff).list_all()) == 1


def test_default_rating_scale():
    mappings = importer.default_rating_mappings()
    assert [(m.text_value, m.numeric_value) for m in mappings] == [
        ("Sangat Baik", 5), ("Baik", 4), ("Cukup", 3), ("Kurang", 2), ("Sangat Kurang", 1),
    ]

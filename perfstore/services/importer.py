"""Multi-entity import and merge operations.

Each operation is a sequence of repository calls, every one of them its own
transaction. An error half-way leaves the earlier steps committed (a dataset
that was already created stays), so every input that can be checked up front
is checked before the first write.
"""
import logging
from typing import Dict, Iterable, List, Sequence, Tuple

from perfstore.database import Store
from perfstore.errors import BlankName, InvalidInput, UnknownEmployee
from perfstore.models.dataset import Dataset
from perfstore.models.employee import Employee
from perfstore.repositories.catalog import CompetencyRepository, RatingMappingRepository, rating_key
from perfstore.repositories.datasets import DatasetRepository
from perfstore.repositories.employees import EmployeeRepository
from perfstore.repositories.links import LinkRepository
from perfstore.repositories.scores import ScoreRepository
from perfstore.schemas.dataset import DatasetResponse, MergeDatasetsRequest, MergeDatasetsResult
from perfstore.schemas.employee import DatasetEmployeeAppendResult, EmployeeImportResult, EmployeeRow
from perfstore.schemas.imports import (
    PerformanceAppendRequest,
    PerformanceImportRequest,
    PerformanceImportResult,
    RatingMappingIn,
    ScoreRow,
)
from perfstore.services.normalization import collapse_employee_rows, identity_key

logger = logging.getLogger(__name__)

DEFAULT_RATING_SCALE = (
    ("Sangat Baik", 5.0),
    ("Baik", 4.0),
    ("Cukup", 3.0),
    ("Kurang", 2.0),
    ("Sangat Kurang", 1.0),
)


def default_rating_mappings() -> List[RatingMappingIn]:
    return [RatingMappingIn(text_value=text, numeric_value=value) for text, value in DEFAULT_RATING_SCALE]


async def _upsert_employees(store: Store, unique: Dict[str, EmployeeRow]) -> List[Tuple[Employee, bool]]:
    """Create or complete one employee per identity key; the flag tells whether it was created."""
    employees = EmployeeRepository(store)
    resolved: List[Tuple[Employee, bool]] = []
    async with store.identity_lock:
        for key, row in unique.items():
            existing = await employees.find_by_key(key)
            if existing is None:
                resolved.append((await employees.create(row), True))
            else:
                resolved.append((await employees.fill_missing(existing.id, row), False))
    return resolved


async def import_employees(store: Store, rows: Sequence[EmployeeRow]) -> EmployeeImportResult:
    if not rows:
        return EmployeeImportResult(inserted=0, updated=0, total=0)

    unique = collapse_employee_rows(rows)
    resolved = await _upsert_employees(store, unique)
    inserted = sum(1 for _, created in resolved if created)
    updated = len(resolved) - inserted
    logger.info("Imported employees: %d inserted, %d updated", inserted, updated)
    return EmployeeImportResult(inserted=inserted, updated=updated, total=inserted + updated)


async def append_dataset_employees(
    store: Store, dataset_id: int, rows: Sequence[EmployeeRow]
) -> DatasetEmployeeAppendResult:
    datasets = DatasetRepository(store)
    await datasets.get(dataset_id)
    if not rows:
        return DatasetEmployeeAppendResult(created=0, updated=0, linked=0)

    unique = collapse_employee_rows(rows)
    resolved = await _upsert_employees(store, unique)

    links = LinkRepository(store)
    linked = 0
    for employee, _ in resolved:
        _, is_new = await links.link(dataset_id, employee.id)
        if is_new:
            linked += 1
    await datasets.touch(dataset_id)

    created = sum(1 for _, is_created in resolved if is_created)
    result = DatasetEmployeeAppendResult(created=created, updated=len(resolved) - created, linked=linked)
    logger.info(
        "Appended employees to dataset %s: %d created, %d updated, %d linked",
        dataset_id, result.created, result.updated, result.linked,
    )
    return result


def _referenced_names(employee_names: Iterable[str], scores: Sequence[ScoreRow]) -> Dict[str, Tuple[str, int]]:
    """Identity key → (first spelling, row) for every employee a performance payload mentions."""
    referenced: Dict[str, Tuple[str, int]] = {}
    for index, name in enumerate(employee_names):
        trimmed = name.strip()
        if trimmed:
            referenced.setdefault(identity_key(trimmed), (trimmed, index))
    for index, score in enumerate(scores):
        trimmed = score.employee_name.strip()
        if not trimmed:
            raise BlankName(index, what="Score employee name")
        referenced.setdefault(identity_key(trimmed), (trimmed, index))
    return referenced


def _competency_names(scores: Sequence[ScoreRow]) -> List[str]:
    names: List[str] = []
    for index, score in enumerate(scores):
        name = score.competency.strip()
        if not name:
            raise BlankName(index, what="Competency name")
        if name not in names:
            names.append(name)
    return names


async def _resolve_referenced(store: Store, referenced: Dict[str, Tuple[str, int]]) -> Dict[str, Employee]:
    found = await EmployeeRepository(store).find_by_keys(referenced)
    for key, (display, row) in referenced.items():
        if key not in found:
            raise UnknownEmployee(display, row)
    return found


async def _write_performance(
    store: Store,
    dataset_id: int,
    employees: Dict[str, Employee],
    competency_names: List[str],
    scores: Sequence[ScoreRow],
    rating_mappings: Sequence[RatingMappingIn],
    append: bool,
) -> Tuple[int, int, int]:
    mappings = RatingMappingRepository(store)
    for mapping in rating_mappings:
        await mappings.insert_if_missing(dataset_id, mapping.text_value, mapping.numeric_value)
    ratings = await mappings.lookup(dataset_id)

    links = LinkRepository(store)
    employee_ids = []
    for employee in employees.values():
        if employee.id not in employee_ids:
            await links.link(dataset_id, employee.id)
            employee_ids.append(employee.id)

    competencies = await CompetencyRepository(store).resolve_many(competency_names)

    rows = [
        {
            "employee_id": employees[identity_key(score.employee_name.strip())].id,
            "competency_id": competencies[score.competency.strip()].id,
            "raw_value": score.value,
            "numeric_value": ratings.get(rating_key(score.value)),
        }
        for score in scores
    ]
    repository = ScoreRepository(store)
    if append:
        score_count = await repository.insert_if_missing(dataset_id, rows)
    else:
        score_count = await repository.create_many(dataset_id, rows)
    return len(employee_ids), len(competencies), score_count


async def import_performance_dataset(store: Store, request: PerformanceImportRequest) -> PerformanceImportResult:
    if not request.dataset_name.strip():
        raise InvalidInput("Dataset name cannot be empty")
    referenced = _referenced_names(request.employee_names, request.scores)
    competency_names = _competency_names(request.scores)
    # Unknown employees abort the import before the dataset exists.
    employees = await _resolve_referenced(store, referenced)

    datasets = DatasetRepository(store)
    dataset = await datasets.create(request.dataset_name, request.dataset_description, request.source_file)
    employee_count, competency_count, score_count = await _write_performance(
        store, dataset.id, employees, competency_names, request.scores, request.rating_mappings, append=False,
    )
    logger.info(
        "Imported dataset %s (%s): %d employees, %d competencies, %d scores",
        dataset.id, dataset.name, employee_count, competency_count, score_count,
    )
    return PerformanceImportResult(
        dataset=DatasetResponse.model_validate(dataset),
        employee_count=employee_count,
        competency_count=competency_count,
        score_count=score_count,
    )


async def append_performance_scores(
    store: Store, dataset_id: int, request: PerformanceAppendRequest
) -> PerformanceImportResult:
    datasets = DatasetRepository(store)
    await datasets.get(dataset_id)
    referenced = _referenced_names(request.employee_names, request.scores)
    competency_names = _competency_names(request.scores)
    employees = await _resolve_referenced(store, referenced)

    employee_count, competency_count, score_count = await _write_performance(
        store, dataset_id, employees, competency_names, request.scores, request.rating_mappings, append=True,
    )
    dataset = await datasets.touch(dataset_id)
    logger.info(
        "Appended to dataset %s: %d employees, %d competencies, %d new scores",
        dataset_id, employee_count, competency_count, score_count,
    )
    return PerformanceImportResult(
        dataset=DatasetResponse.model_validate(dataset),
        employee_count=employee_count,
        competency_count=competency_count,
        score_count=score_count,
    )


def _distinct(ids: Iterable[int]) -> List[int]:
    unique: List[int] = []
    for value in ids:
        if value not in unique:
            unique.append(value)
    return unique


async def merge_datasets(store: Store, request: MergeDatasetsRequest) -> MergeDatasetsResult:
    source_ids = _distinct(request.source_dataset_ids)
    if len(source_ids) < 2:
        raise InvalidInput("Select at least two datasets to merge")
    if not request.target_name.strip():
        raise InvalidInput("Target dataset name cannot be empty")

    datasets = DatasetRepository(store)
    for source_id in source_ids:
        await datasets.get(source_id)

    target: Dataset = await datasets.create(request.target_name, request.target_description)
    links = LinkRepository(store)
    scores = ScoreRepository(store)
    mappings = RatingMappingRepository(store)

    employee_ids: List[int] = []
    for source_id in source_ids:
        for employee_id in await links.employee_ids(source_id):
            if employee_id not in employee_ids:
                employee_ids.append(employee_id)
    for employee_id in employee_ids:
        await links.link(target.id, employee_id)

    score_count = 0
    for source_id in source_ids:
        score_count += await scores.copy_into(source_id, target.id)
        for mapping in await mappings.list_for_dataset(source_id):
            await mappings.insert_if_missing(target.id, mapping.text_value, mapping.numeric_value)

    rating_mapping_count = await mappings.count(target.id)
    logger.info(
        "Merged datasets %s into %s: %d employees, %d scores, %d rating mappings",
        source_ids, target.id, len(employee_ids), score_count, rating_mapping_count,
    )
    return MergeDatasetsResult(
        dataset=DatasetResponse.model_validate(target),
        employee_count=await links.count(target.id),
        score_count=score_count,
        rating_mapping_count=rating_mapping_count,
        source_dataset_ids=source_ids,
    )


"""Read-only aggregates over the store.

Everything is recomputed from the repositories on every call; nothing is cached.
"""
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Sequence

from perfstore.config import settings
from perfstore.database import Store
from perfstore.errors import NotFound
from perfstore.models.competency import Competency
from perfstore.models.employee import Employee
from perfstore.models.score import Score
from perfstore.repositories.catalog import CompetencyRepository
from perfstore.repositories.datasets import DatasetRepository
from perfstore.repositories.employees import EmployeeRepository
from perfstore.repositories.links import LinkRepository
from perfstore.repositories.scores import ScoreRepository
from perfstore.schemas.analytics import (
    CompetencyDelta,
    CompetencyOverviewItem,
    CompetencyResponse,
    CompetencyStats,
    DashboardOverview,
    DatasetComparison,
    DatasetOverviewItem,
    DatasetStats,
    EmployeePerformance,
    ScoreDistribution,
    ScoreResponse,
    ScoreWithCompetency,
)
from perfstore.schemas.dataset import DatasetResponse
from perfstore.schemas.employee import EmployeeListResult, EmployeeResponse, EmployeeWithStats
from perfstore.services.normalization import normalize_name

BUCKETS = ("0-1", "1-2", "2-3", "3-4", "4+")

STAFF_KEYWORDS = ("staff", "staf")
ESELON_KEYWORDS = (
    "eselon", "kepala", "sekretaris", "kabid", "kabag", "kasubag", "kepala seksi", "kasi",
    "koordinator", "pengawas", "sub bagian", "subbagian", "subbidang", "sub bidang",
)

SORT_FIELDS = ("name", "nip", "jabatan", "status", "average_score", "score_count", "created_at")


def mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def score_distribution(values: Iterable[float]) -> List[ScoreDistribution]:
    counts = [0] * len(BUCKETS)
    for value in values:
        counts[min(max(int(value // 1), 0), len(BUCKETS) - 1)] += 1
    return [ScoreDistribution(range=label, count=count) for label, count in zip(BUCKETS, counts)]


def position_status(jabatan: Optional[str], sub_jabatan: Optional[str], gol: Optional[str]) -> str:
    role = normalize_name(f"{jabatan or ''} {sub_jabatan or ''}")
    if role:
        if any(keyword in role for keyword in STAFF_KEYWORDS):
            return "Staff"
        if any(keyword in role for keyword in ESELON_KEYWORDS):
            return "Eselon"
    if (gol or "").strip().upper().startswith("IV"):
        return "Eselon"
    return "Staff"


def _numeric(scores: Iterable[Score]) -> List[float]:
    return [score.numeric_value for score in scores if score.numeric_value is not None]


def _competency_stats(scores: Sequence[Score], competencies: Dict[int, Competency]) -> List[CompetencyStats]:
    values: Dict[int, List[float]] = defaultdict(list)
    evaluated: Dict[int, set] = defaultdict(set)
    for score in scores:
        if score.numeric_value is None or score.competency_id not in competencies:
            continue
        values[score.competency_id].append(score.numeric_value)
        evaluated[score.competency_id].add(score.employee_id)
    ordered = sorted(values, key=lambda cid: (competencies[cid].display_order, competencies[cid].name))
    return [
        CompetencyStats(
            competency=CompetencyResponse.model_validate(competencies[cid]),
            average_score=mean(values[cid]),
            employee_count=len(evaluated[cid]),
        )
        for cid in ordered
    ]


async def dataset_stats(store: Store, dataset_id: int) -> DatasetStats:
    dataset = await DatasetRepository(store).get(dataset_id)
    scores = await ScoreRepository(store).list_for_dataset(dataset_id)
    competencies = {c.id: c for c in await CompetencyRepository(store).list_all()}
    numeric = _numeric(scores)
    return DatasetStats(
        dataset=DatasetResponse.model_validate(dataset),
        total_employees=await LinkRepository(store).count(dataset_id),
        total_competencies=len({score.competency_id for score in scores}),
        total_scores=len(scores),
        average_score=mean(numeric),
        score_distribution=score_distribution(numeric),
        competency_stats=_competency_stats(scores, competencies),
    )


def _role(employee: EmployeeWithStats) -> str:
    return normalize_name(f"{employee.jabatan or ''} {employee.sub_jabatan or ''}")


_SORT_KEYS = {
    "name": lambda e: e.name.lower(),
    "nip": lambda e: (e.nip or "").lower(),
    "jabatan": _role,
    "status": lambda e: e.position_status,
    "average_score": lambda e: e.average_score,
    "score_count": lambda e: e.score_count,
    "created_at": lambda e: e.created_at,
}


def _matches(employee: Employee, needle: str) -> bool:
    fields = (employee.name, employee.nip, employee.jabatan, employee.sub_jabatan)
    return any(needle in (value or "").lower() for value in fields)


async def list_employees(
    store: Store,
    dataset_id: int,
    search: Optional[str] = None,
    limit: Optional[int] = None,
    offset: int = 0,
    sort_by: Optional[str] = None,
    sort_direction: Optional[str] = None,
) -> EmployeeListResult:
    await DatasetRepository(store).get(dataset_id)
    limit = min(max(limit if limit is not None else settings.EMPLOYEE_PAGE_LIMIT, 1), settings.EMPLOYEE_PAGE_MAX)
    offset = max(offset, 0)

    employee_ids = await LinkRepository(store).employee_ids(dataset_id)
    employees = await EmployeeRepository(store).list_by_ids(employee_ids)
    needle = (search or "").strip().lower()
    if needle:
        employees = [employee for employee in employees if _matches(employee, needle)]

    by_employee: Dict[int, List[Score]] = defaultdict(list)
    for score in await ScoreRepository(store).list_for_dataset(dataset_id):
        by_employee[score.employee_id].append(score)

    rows = []
    for employee in employees:
        scores = by_employee.get(employee.id, [])
        rows.append(EmployeeWithStats(
            **EmployeeResponse.model_validate(employee).model_dump(),
            position_status=position_status(employee.jabatan, employee.sub_jabatan, employee.gol),
            average_score=mean(_numeric(scores)),
            score_count=len(scores),
        ))

    key = _SORT_KEYS.get(sort_by or "name", _SORT_KEYS["name"])
    rows.sort(key=_SORT_KEYS["name"])
    rows.sort(key=key, reverse=(sort_direction or "").lower() == "desc")
    return EmployeeListResult(employees=rows[offset:offset + limit], total_count=len(rows))


async def employee_performance(store: Store, dataset_id: int, employee_id: int) -> EmployeePerformance:
    if await LinkRepository(store).find(dataset_id, employee_id) is None:
        raise NotFound("Employee", f"{employee_id} in dataset {dataset_id}")
    employee = await EmployeeRepository(store).get(employee_id)
    competencies = {c.id: c for c in await CompetencyRepository(store).list_all()}
    scores = [
        score for score in await ScoreRepository(store).list_for_dataset(dataset_id, employee_id)
        if score.competency_id in competencies
    ]
    scores.sort(key=lambda s: (competencies[s.competency_id].display_order, competencies[s.competency_id].name))

    rated = [score for score in scores if score.numeric_value is not None]
    strongest = sorted(rated, key=lambda s: s.numeric_value, reverse=True)
    weakest = sorted(rated, key=lambda s: s.numeric_value)
    return EmployeePerformance(
        employee=EmployeeResponse.model_validate(employee),
        scores=[
            ScoreWithCompetency(
                score=ScoreResponse.model_validate(score),
                competency=CompetencyResponse.model_validate(competencies[score.competency_id]),
            )
            for score in scores
        ],
        average_score=mean(_numeric(scores)),
        strengths=[competencies[s.competency_id].name for s in strongest[:3]],
        gaps=[competencies[s.competency_id].name for s in weakest[:3]],
    )


async def compare_datasets(store: Store, base_id: int, comparison_id: int) -> DatasetComparison:
    base = await dataset_stats(store, base_id)
    comparison = await dataset_stats(store, comparison_id)

    base_by_id = {stat.competency.id: stat for stat in base.competency_stats}
    deltas: List[CompetencyDelta] = []
    for stat in comparison.competency_stats:
        base_stat = base_by_id.pop(stat.competency.id, None)
        base_average = base_stat.average_score if base_stat is not None else 0.0
        deltas.append(CompetencyDelta(
            competency=stat.competency,
            base_average=base_average,
            comparison_average=stat.average_score,
            delta=stat.average_score - base_average,
        ))
    # competencies rated only in the base dataset
    for stat in base_by_id.values():
        deltas.append(CompetencyDelta(
            competency=stat.competency,
            base_average=stat.average_score,
            comparison_average=0.0,
            delta=-stat.average_score,
        ))
    deltas.sort(key=lambda d: (d.competency.display_order, d.competency.name))

    return DatasetComparison(
        base=base,
        comparison=comparison,
        competency_deltas=deltas,
        average_delta=comparison.average_score - base.average_score,
    )


async def dashboard_overview(
    store: Store, top_n: Optional[int] = None, recent_n: Optional[int] = None
) -> DashboardOverview:
    top_n = settings.DASHBOARD_TOP_N if top_n is None else top_n
    recent_n = settings.DASHBOARD_RECENT_N if recent_n is None else recent_n

    datasets = await DatasetRepository(store).list_all()
    competencies = await CompetencyRepository(store).list_all()
    links = LinkRepository(store)
    live = {dataset.id for dataset in datasets}
    # Scores of deleted datasets are still stored; leave them out.
    scores = [score for score in await ScoreRepository(store).list_all() if score.dataset_id in live]

    per_dataset: Dict[int, List[Score]] = defaultdict(list)
    for score in scores:
        per_dataset[score.dataset_id].append(score)

    items: Dict[int, DatasetOverviewItem] = {}
    for dataset in datasets:
        dataset_scores = per_dataset.get(dataset.id, [])
        items[dataset.id] = DatasetOverviewItem(
            dataset=DatasetResponse.model_validate(dataset),
            total_employees=await links.count(dataset.id),
            total_scores=len(dataset_scores),
            average_score=mean(_numeric(dataset_scores)),
        )

    # list_all() returns the newest datasets first
    recent = [items[dataset.id] for dataset in datasets[:recent_n]]
    scored = [item for item in items.values() if item.total_scores]
    top = sorted(scored, key=lambda item: item.average_score, reverse=True)[:top_n]

    values: Dict[int, List[float]] = defaultdict(list)
    score_counts: Dict[int, int] = defaultdict(int)
    dataset_sets: Dict[int, set] = defaultdict(set)
    for score in scores:
        score_counts[score.competency_id] += 1
        dataset_sets[score.competency_id].add(score.dataset_id)
        if score.numeric_value is not None:
            values[score.competency_id].append(score.numeric_value)
    overview = [
        CompetencyOverviewItem(
            competency=CompetencyResponse.model_validate(competency),
            dataset_count=len(dataset_sets[competency.id]),
            score_count=score_counts[competency.id],
            average_score=mean(values[competency.id]),
        )
        for competency in competencies
        if score_counts.get(competency.id)
    ]
    overview.sort(key=lambda item: (-item.average_score, item.competency.display_order))

    numeric = _numeric(scores)
    return DashboardOverview(
        total_datasets=len(datasets),
        total_employees=await EmployeeRepository(store).count(),
        total_competencies=len(competencies),
        total_scores=len(scores),
        average_score=mean(numeric),
        score_distribution=score_distribution(numeric),
        top_datasets=top,
        recent_datasets=recent,
        competency_overview=overview[:top_n],
    )

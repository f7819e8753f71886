"""Pre-import validation.

``validate_import_data`` never touches the store and never raises for data
problems: every finding is returned in the report and the caller decides
whether to go ahead with the import.

Rating values are compared trimmed and case-insensitively, the same way the
importer resolves them: "Cukup" and " cukup" are one unmapped rating, reported
with the first spelling seen and the combined number of occurrences.
"""
from typing import Dict, List, Sequence

from perfstore.schemas.employee import EmployeeRow
from perfstore.schemas.imports import (
    BlankEmployeeNameIssue,
    DuplicateEmployeeGroup,
    ImportValidationSummary,
    OrphanScoreIssue,
    RatingMappingIn,
    ScoreRow,
    UnmappedRatingIssue,
    ValidationStats,
)


def _fold(value: str) -> str:
    return value.strip().lower()


def validate_import_data(
    employees: Sequence[EmployeeRow],
    scores: Sequence[ScoreRow],
    rating_mappings: Sequence[RatingMappingIn],
) -> ImportValidationSummary:
    blank_names: List[BlankEmployeeNameIssue] = []
    groups: Dict[str, List[int]] = {}
    display: Dict[str, str] = {}

    for index, employee in enumerate(employees):
        trimmed = employee.name.strip()
        if not trimmed:
            blank_names.append(BlankEmployeeNameIssue(employee_index=index))
            continue
        key = trimmed.lower()
        groups.setdefault(key, []).append(index)
        display.setdefault(key, trimmed)

    duplicates = [
        DuplicateEmployeeGroup(name=display[key], employee_indices=indices)
        for key, indices in groups.items()
        if len(indices) > 1
    ]

    known_ratings = {_fold(m.text_value) for m in rating_mappings if m.text_value.strip()}

    orphans: List[OrphanScoreIssue] = []
    unmapped: Dict[str, UnmappedRatingIssue] = {}
    for index, score in enumerate(scores):
        if _fold(score.employee_name) not in groups:
            orphans.append(OrphanScoreIssue(
                score_index=index,
                employee_name=score.employee_name,
                competency=score.competency,
            ))

        value = score.value.strip()
        if not value:
            continue
        key = value.lower()
        if key in known_ratings:
            continue
        if key in unmapped:
            unmapped[key].occurrences += 1
        else:
            unmapped[key] = UnmappedRatingIssue(value=value, occurrences=1)

    error_count = len(duplicates) + len(orphans) + len(unmapped) + len(blank_names)
    warning_count = 0
    stats = ValidationStats(
        error_count=error_count,
        warning_count=warning_count,
        total_issues=error_count + warning_count,
        can_import=error_count == 0,
    )
    return ImportValidationSummary(
        stats=stats,
        duplicate_employees=duplicates,
        orphan_scores=orphans,
        unmapped_ratings=list(unmapped.values()),
        blank_employee_names=blank_names,
    )

from pydantic import BaseModel
from typing import List, Optional
from .dataset import DatasetResponse
from .employee import EmployeeRow

class ScoreRow(BaseModel):
    employee_name: str
    competency: str
    value: str

class RatingMappingIn(BaseModel):
    text_value: str
    numeric_value: float

class RatingMappingResponse(RatingMappingIn):
    id: int
    dataset_id: int

    model_config = {"from_attributes": True}

class PerformanceImportRequest(BaseModel):
    dataset_name: str
    dataset_description: Optional[str] = None
    source_file: Optional[str] = None
    employee_names: List[str] = []
    scores: List[ScoreRow] = []
    rating_mappings: List[RatingMappingIn] = []

class PerformanceAppendRequest(BaseModel):
    employee_names: List[str] = []
    scores: List[ScoreRow] = []
    rating_mappings: List[RatingMappingIn] = []

class PerformanceImportResult(BaseModel):
    dataset: DatasetResponse
    employee_count: int
    competency_count: int
    score_count: int


# Validation report: business-rule findings are values, never exceptions.

class ImportValidationPayload(BaseModel):
    employees: List[EmployeeRow] = []
    scores: List[ScoreRow] = []
    rating_mappings: List[RatingMappingIn] = []

class DuplicateEmployeeGroup(BaseModel):
    name: str
    employee_indices: List[int]

class OrphanScoreIssue(BaseModel):
    score_index: int
    employee_name: str
    competency: str

class UnmappedRatingIssue(BaseModel):
    value: str
    occurrences: int

class BlankEmployeeNameIssue(BaseModel):
    employee_index: int

class ValidationStats(BaseModel):
    error_count: int
    warning_count: int
    total_issues: int
    can_import: bool

class ImportValidationSummary(BaseModel):
    stats: ValidationStats
    duplicate_employees: List[DuplicateEmployeeGroup]
    orphan_scores: List[OrphanScoreIssue]
    unmapped_ratings: List[UnmappedRatingIssue]
    blank_employee_names: List[BlankEmployeeNameIssue]

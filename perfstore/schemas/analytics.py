from pydantic import BaseModel
from datetime import datetime
from typing import List, Optional
from .dataset import DatasetResponse
from .employee import EmployeeResponse

class CompetencyResponse(BaseModel):
    id: int
    name: str
    description: Optional[str]
    display_order: int

    model_config = {"from_attributes": True}

class ScoreResponse(BaseModel):
    id: int
    employee_id: int
    dataset_id: Optional[int]
    competency_id: int
    raw_value: str
    numeric_value: Optional[float]
    created_at: datetime

    model_config = {"from_attributes": True}

class ScoreDistribution(BaseModel):
    range: str  # "0-1", "1-2", "2-3", "3-4", "4+"
    count: int

class CompetencyStats(BaseModel):
    competency: CompetencyResponse
    average_score: float
    employee_count: int

class DatasetStats(BaseModel):
    dataset: DatasetResponse
    total_employees: int
    total_competencies: int
    total_scores: int
    average_score: float
    score_distribution: List[ScoreDistribution]
    competency_stats: List[CompetencyStats]

class ScoreWithCompetency(BaseModel):
    score: ScoreResponse
    competency: CompetencyResponse

class EmployeePerformance(BaseModel):
    employee: EmployeeResponse
    scores: List[ScoreWithCompetency]
    average_score: float
    strengths: List[str]
    gaps: List[str]

class CompetencyDelta(BaseModel):
    competency: CompetencyResponse
    base_average: float
    comparison_average: float
    delta: float

class DatasetComparison(BaseModel):
    base: DatasetStats
    comparison: DatasetStats
    competency_deltas: List[CompetencyDelta]
    average_delta: float

class DatasetOverviewItem(BaseModel):
    dataset: DatasetResponse
    total_employees: int
    total_scores: int
    average_score: float

class CompetencyOverviewItem(BaseModel):
    competency: CompetencyResponse
    dataset_count: int
    score_count: int
    average_score: float

class DashboardOverview(BaseModel):
    total_datasets: int
    total_employees: int
    total_competencies: int
    total_scores: int
    average_score: float
    score_distribution: List[ScoreDistribution]
    top_datasets: List[DatasetOverviewItem]
    recent_datasets: List[DatasetOverviewItem]
    competency_overview: List[CompetencyOverviewItem]

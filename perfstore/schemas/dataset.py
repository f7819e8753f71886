from pydantic import BaseModel, Field
from datetime import datetime
from typing import List, Optional

class DatasetCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    source_file: Optional[str] = None

class DatasetUpdate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None

class DatasetResponse(BaseModel):
    id: int
    name: str
    description: Optional[str]
    source_file: Optional[str]
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

class MergeDatasetsRequest(BaseModel):
    source_dataset_ids: List[int]
    target_name: str
    target_description: Optional[str] = None

class MergeDatasetsResult(BaseModel):
    dataset: DatasetResponse
    employee_count: int
    score_count: int
    rating_mapping_count: int
    source_dataset_ids: List[int]

from pydantic import BaseModel, Field
from datetime import datetime

class SummarySave(BaseModel):
    content: str = Field(..., min_length=1)

class SummaryResponse(BaseModel):
    id: int
    employee_id: int
    content: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

class GeneratedSummary(BaseModel):
    content: str

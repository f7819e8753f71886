from pydantic import BaseModel, Field
from datetime import datetime
from typing import List, Optional

class EmployeeRow(BaseModel):
    """One parsed employee row as handed over by the CSV importer."""
    name: str
    nip: Optional[str] = None
    gol: Optional[str] = None
    jabatan: Optional[str] = None
    sub_jabatan: Optional[str] = None

class EmployeeResponse(BaseModel):
    id: int
    name: str
    nip: Optional[str]
    gol: Optional[str]
    jabatan: Optional[str]
    sub_jabatan: Optional[str]
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

class EmployeeUpdate(BaseModel):
    # Fields left out are ignored; fields sent as null are cleared.
    id: int
    name: Optional[str] = Field(None, min_length=1)
    nip: Optional[str] = None
    gol: Optional[str] = None
    jabatan: Optional[str] = None
    sub_jabatan: Optional[str] = None

class EmployeeImportRequest(BaseModel):
    employees: List[EmployeeRow]

class EmployeeImportResult(BaseModel):
    inserted: int
    updated: int
    total: int

class DatasetEmployeeAppendRequest(BaseModel):
    employees: List[EmployeeRow]

class DatasetEmployeeAppendResult(BaseModel):
    created: int
    updated: int
    linked: int

class BulkDeleteRequest(BaseModel):
    ids: List[int]

class EmployeeWithStats(EmployeeResponse):
    position_status: str  # "Staff" or "Eselon"
    average_score: float
    score_count: int

class EmployeeListResult(BaseModel):
    employees: List[EmployeeWithStats]
    total_count: int

from typing import Optional

from fastapi import APIRouter, Depends

from perfstore.core.deps import get_store
from perfstore.database import Store
from perfstore.schemas.summary import GeneratedSummary, SummaryResponse, SummarySave
from perfstore.services import summaries

router = APIRouter(tags=["summaries"])

@router.get("/employees/{employee_id}/summary", response_model=Optional[SummaryResponse])
async def get_summary(employee_id: int, store: Store = Depends(get_store)):
    return await summaries.get_employee_summary(store, employee_id)

@router.put("/employees/{employee_id}/summary", response_model=SummaryResponse)
async def save_summary(employee_id: int, summary_in: SummarySave, store: Store = Depends(get_store)):
    return await summaries.save_employee_summary(store, employee_id, summary_in.content)

@router.post("/datasets/{dataset_id}/employees/{employee_id}/summary", response_model=GeneratedSummary)
async def generate_summary(dataset_id: int, employee_id: int, store: Store = Depends(get_store)):
    return await summaries.generate_employee_summary(store, dataset_id, employee_id)

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from perfstore.core.deps import get_store
from perfstore.database import Store
from perfstore.repositories.datasets import DatasetRepository
from perfstore.schemas.analytics import DatasetStats, EmployeePerformance
from perfstore.schemas.dataset import (
    DatasetCreate, DatasetResponse, DatasetUpdate, MergeDatasetsRequest, MergeDatasetsResult
)
from perfstore.schemas.employee import (
    DatasetEmployeeAppendRequest, DatasetEmployeeAppendResult, EmployeeListResult
)
from perfstore.schemas.imports import PerformanceAppendRequest, PerformanceImportResult
from perfstore.services import analytics, importer

router = APIRouter(prefix="/datasets", tags=["datasets"])

@router.post("", response_model=DatasetResponse)
async def create_dataset(dataset_in: DatasetCreate, store: Store = Depends(get_store)):
    return await DatasetRepository(store).create(dataset_in.name, dataset_in.description, dataset_in.source_file)

@router.get("", response_model=List[DatasetResponse])
async def list_datasets(store: Store = Depends(get_store)):
    return await DatasetRepository(store).list_all()

@router.post("/merge", response_model=MergeDatasetsResult)
async def merge_datasets(request: MergeDatasetsRequest, store: Store = Depends(get_store)):
    return await importer.merge_datasets(store, request)

@router.get("/{dataset_id}", response_model=DatasetResponse)
async def get_dataset(dataset_id: int, store: Store = Depends(get_store)):
    return await DatasetRepository(store).get(dataset_id)

@router.put("/{dataset_id}", response_model=DatasetResponse)
async def update_dataset(dataset_id: int, dataset_in: DatasetUpdate, store: Store = Depends(get_store)):
    return await DatasetRepository(store).update(dataset_id, dataset_in.name, dataset_in.description)

@router.delete("/{dataset_id}")
async def delete_dataset(dataset_id: int, store: Store = Depends(get_store)):
    await DatasetRepository(store).delete(dataset_id)
    return {"message": "Dataset deleted"}

@router.post("/{dataset_id}/employees", response_model=DatasetEmployeeAppendResult)
async def append_employees(
    dataset_id: int,
    request: DatasetEmployeeAppendRequest,
    store: Store = Depends(get_store)
):
    return await importer.append_dataset_employees(store, dataset_id, request.employees)

@router.post("/{dataset_id}/scores", response_model=PerformanceImportResult)
async def append_scores(
    dataset_id: int,
    request: PerformanceAppendRequest,
    store: Store = Depends(get_store)
):
    return await importer.append_performance_scores(store, dataset_id, request)

@router.get("/{dataset_id}/employees", response_model=EmployeeListResult)
async def list_dataset_employees(
    dataset_id: int,
    search: Optional[str] = None,
    limit: Optional[int] = None,
    offset: int = Query(0, ge=0),
    sort_by: Optional[str] = None,
    sort_direction: Optional[str] = Query(None, pattern="^(asc|desc)$"),
    store: Store = Depends(get_store)
):
    return await analytics.list_employees(store, dataset_id, search, limit, offset, sort_by, sort_direction)

@router.get("/{dataset_id}/employees/{employee_id}/performance", response_model=EmployeePerformance)
async def get_employee_performance(dataset_id: int, employee_id: int, store: Store = Depends(get_store)):
    return await analytics.employee_performance(store, dataset_id, employee_id)

@router.get("/{dataset_id}/stats", response_model=DatasetStats)
async def get_dataset_stats(dataset_id: int, store: Store = Depends(get_store)):
    return await analytics.dataset_stats(store, dataset_id)

from typing import List

from fastapi import APIRouter, Depends

from perfstore.core.deps import get_store
from perfstore.database import Store
from perfstore.repositories.employees import EmployeeRepository
from perfstore.schemas.employee import (
    BulkDeleteRequest, EmployeeImportRequest, EmployeeImportResult, EmployeeResponse, EmployeeUpdate
)
from perfstore.services import importer

router = APIRouter(prefix="/employees", tags=["employees"])

@router.post("/import", response_model=EmployeeImportResult)
async def import_employees(request: EmployeeImportRequest, store: Store = Depends(get_store)):
    return await importer.import_employees(store, request.employees)

@router.get("", response_model=List[EmployeeResponse])
async def list_employees(store: Store = Depends(get_store)):
    return await EmployeeRepository(store).list_all()

@router.patch("")
async def bulk_update_employees(updates: List[EmployeeUpdate], store: Store = Depends(get_store)):
    updated = await EmployeeRepository(store).bulk_update(updates)
    return {"updated": updated}

@router.post("/bulk-delete")
async def bulk_delete_employees(request: BulkDeleteRequest, store: Store = Depends(get_store)):
    # removes their scores, dataset links and summary too
    deleted = await EmployeeRepository(store).bulk_delete(request.ids)
    return {"deleted": deleted}

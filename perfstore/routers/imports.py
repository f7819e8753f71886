from typing import List

from fastapi import APIRouter, Depends

from perfstore.core.deps import get_store
from perfstore.database import Store
from perfstore.schemas.imports import (
    ImportValidationPayload, ImportValidationSummary, PerformanceImportRequest,
    PerformanceImportResult, RatingMappingIn
)
from perfstore.services import importer
from perfstore.services.validation import validate_import_data

router = APIRouter(prefix="/imports", tags=["imports"])

@router.post("/performance", response_model=PerformanceImportResult)
async def import_performance(request: PerformanceImportRequest, store: Store = Depends(get_store)):
    return await importer.import_performance_dataset(store, request)

@router.post("/validate", response_model=ImportValidationSummary)
async def validate_import(payload: ImportValidationPayload):
    # No store access: findings are returned, never raised.
    return validate_import_data(payload.employees, payload.scores, payload.rating_mappings)

@router.get("/rating-mappings/default", response_model=List[RatingMappingIn])
async def default_rating_mappings():
    return importer.default_rating_mappings()

from fastapi import APIRouter, Depends

from perfstore.core.deps import get_store
from perfstore.database import Store
from perfstore.schemas.analytics import DashboardOverview, DatasetComparison
from perfstore.services import analytics

router = APIRouter(prefix="/analytics", tags=["analytics"])

@router.get("/dashboard", response_model=DashboardOverview)
async def get_dashboard(store: Store = Depends(get_store)):
    return await analytics.dashboard_overview(store)

@router.get("/compare", response_model=DatasetComparison)
async def compare_datasets(base_id: int, comparison_id: int, store: Store = Depends(get_store)):
    return await analytics.compare_datasets(store, base_id, comparison_id)

"""
Back Office — Dashboard routes
"""
from fastapi import APIRouter, Depends

from backoffice.api.deps import STAFF, get_dashboard_service, require_roles
from backoffice.schemas.dashboard import DashboardNotification, DashboardStatistics
from backoffice.services.dashboard_service import DashboardService

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"], dependencies=[Depends(require_roles(*STAFF))])


@router.get("/statistics", response_model=DashboardStatistics)
async def statistics(dashboard: DashboardService = Depends(get_dashboard_service)):
    return await dashboard.statistics()


@router.get("/notifications", response_model=list[DashboardNotification])
async def notifications(dashboard: DashboardService = Depends(get_dashboard_service)):
    """Latest activity across sales, orders, stock and customers (max 20)."""
    return await dashboard.notifications()

"""
Back Office — Point-of-sale API routes
"""
from datetime import date

from fastapi import APIRouter, Depends, Query, status

from backoffice.api.deps import STAFF, get_sale_service, require_roles
from backoffice.core.security import Identity
from backoffice.schemas.sale import (
    DailyTotalResponse,
    SaleCreateRequest,
    SaleResponse,
    SalesStatsResponse,
    SaleTopProduct,
)
from backoffice.services.sale_service import SaleService

router = APIRouter(prefix="/api/sales", tags=["sales"])


@router.post("", response_model=SaleResponse, status_code=status.HTTP_201_CREATED)
async def create_sale(
    payload: SaleCreateRequest,
    identity: Identity = Depends(require_roles(*STAFF)),
    sales: SaleService = Depends(get_sale_service),
):
    """Record a till sale and take the items out of stock immediately."""
    return await sales.create_sale(payload, identity.username)


@router.get("", response_model=list[SaleResponse])
async def list_sales(
    identity: Identity = Depends(require_roles(*STAFF)),
    sales: SaleService = Depends(get_sale_service),
):
    return await sales.list_all()


@router.get("/today", response_model=list[SaleResponse])
async def todays_sales(
    identity: Identity = Depends(require_roles(*STAFF)),
    sales: SaleService = Depends(get_sale_service),
):
    return await sales.today()


@router.get("/date/{day}", response_model=list[SaleResponse])
async def sales_on_date(
    day: date,
    identity: Identity = Depends(require_roles(*STAFF)),
    sales: SaleService = Depends(get_sale_service),
):
    return await sales.on_date(day)


@router.get("/date-range", response_model=list[SaleResponse])
async def sales_in_range(
    start: date,
    end: date,
    identity: Identity = Depends(require_roles(*STAFF)),
    sales: SaleService = Depends(get_sale_service),
):
    return await sales.in_range(start, end)


@router.get("/daily-total/{day}", response_model=DailyTotalResponse)
async def daily_total(
    day: date,
    identity: Identity = Depends(require_roles(*STAFF)),
    sales: SaleService = Depends(get_sale_service),
):
    return DailyTotalResponse(date=day, total=await sales.daily_total(day))


@router.get("/stats", response_model=SalesStatsResponse)
async def sales_stats(
    start: date,
    end: date,
    identity: Identity = Depends(require_roles(*STAFF)),
    sales: SaleService = Depends(get_sale_service),
):
    return await sales.stats_for_range(start, end)


@router.get("/top-products", response_model=list[SaleTopProduct])
async def top_products(
    limit: int = Query(10, ge=1, le=100),
    identity: Identity = Depends(require_roles(*STAFF)),
    sales: SaleService = Depends(get_sale_service),
):
    return await sales.top_selling_products(limit)


@router.get("/{sale_id}", response_model=SaleResponse)
async def get_sale(
    sale_id: str,
    identity: Identity = Depends(require_roles(*STAFF)),
    sales: SaleService = Depends(get_sale_service),
):
    return await sales.get(sale_id)

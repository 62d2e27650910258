"""
Back Office — Order API routes
"""
import logging
from datetime import date

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from backoffice.api.deps import ANY_ROLE, STAFF, get_invoice_dispatcher, get_order_service, require_roles
from backoffice.core.config import get_settings
from backoffice.core.security import Identity
from backoffice.db.database import get_session_factory
from backoffice.events.invoice import InvoiceDispatcher
from backoffice.events.order_completed import OrderCompletedPipeline
from backoffice.models.common import utcnow
from backoffice.models.order import OrderStatus
from backoffice.schemas.common import Page
from backoffice.schemas.order import (
    DailySellingResponse,
    OrderCancelRequest,
    OrderCreateRequest,
    OrderResponse,
    OrderStatusUpdate,
    PaymentCaptureRequest,
    TopSellingProduct,
)
from backoffice.services.order_service import OrderService

settings = get_settings()
logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/orders", tags=["orders"])


@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def create_order(
    payload: OrderCreateRequest,
    identity: Identity = Depends(require_roles(*ANY_ROLE)),
    orders: OrderService = Depends(get_order_service),
):
    """
    Price and validate the basket against current stock, then record the
    order as PENDING. Stock is only taken when the order completes.
    """
    return await orders.create_order(payload, identity)


@router.get("/my-orders", response_model=list[OrderResponse])
async def my_orders(
    identity: Identity = Depends(require_roles(*ANY_ROLE)),
    orders: OrderService = Depends(get_order_service),
):
    return await orders.list_for_customer(identity.username)


@router.get("", response_model=Page[OrderResponse])
async def search_orders(
    search: str | None = None,
    status: OrderStatus | None = None,
    period: str | None = Query(None, pattern="^(today|week|month|quarter)$"),
    page: int = Query(0, ge=0),
    size: int = Query(settings.ORDER_PAGE_SIZE, ge=1, le=200),
    identity: Identity = Depends(require_roles(*STAFF)),
    orders: OrderService = Depends(get_order_service),
):
    return await orders.search(search, status, period, page, size)


@router.get("/top-products", response_model=list[TopSellingProduct])
async def top_products(
    limit: int = Query(5, ge=1, le=100),
    identity: Identity = Depends(require_roles(*STAFF)),
    orders: OrderService = Depends(get_order_service),
):
    return await orders.top_selling_products(limit)


@router.get("/analytics/daily-selling", response_model=DailySellingResponse)
async def daily_selling(
    day: date | None = Query(None, alias="date"),
    identity: Identity = Depends(require_roles(*STAFF)),
    orders: OrderService = Depends(get_order_service),
):
    """Revenue from orders created or updated on the given UTC day (default today)."""
    day = day or utcnow().date()
    return DailySellingResponse(date=day, value=await orders.daily_sales_summary(day))


@router.post("/capture", response_model=OrderResponse)
async def capture_payment(
    payload: PaymentCaptureRequest,
    identity: Identity = Depends(require_roles(*ANY_ROLE)),
    orders: OrderService = Depends(get_order_service),
    invoices: InvoiceDispatcher = Depends(get_invoice_dispatcher),
):
    """Capture the PayPal payment, confirm the order and mail the invoice."""
    order = await orders.capture_payment(payload, identity)
    await invoices.send(order)
    return order


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: str,
    identity: Identity = Depends(require_roles(*ANY_ROLE)),
    orders: OrderService = Depends(get_order_service),
):
    return await orders.get_for(order_id, identity)


@router.patch("/{order_id}/status", response_model=OrderResponse)
async def update_order_status(
    order_id: str,
    payload: OrderStatusUpdate,
    background_tasks: BackgroundTasks,
    identity: Identity = Depends(require_roles(*STAFF)),
    orders: OrderService = Depends(get_order_service),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
):
    if payload.status == OrderStatus.CANCELLED:
        return await orders.cancel(order_id, identity, payload.reason)
    pipeline = OrderCompletedPipeline(
        db=orders.db,
        actor=identity.username,
        schedule=background_tasks.add_task,
        session_factory=session_factory,
        stock_mode=settings.STOCK_ADJUSTMENT_MODE,
    )
    return await orders.update_status(order_id, payload.status, identity.username, on_completed=pipeline)


@router.post("/{order_id}/cancel", response_model=OrderResponse)
async def cancel_order(
    order_id: str,
    payload: OrderCancelRequest | None = None,
    identity: Identity = Depends(require_roles(*ANY_ROLE)),
    orders: OrderService = Depends(get_order_service),
):
    """Customers may cancel their own orders; staff may cancel any."""
    return await orders.cancel(order_id, identity, payload.reason if payload else None)

"""
Back Office — Orders: creation, status machine, payment capture, analytics
"""
import logging
import uuid
from collections import defaultdict
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Awaitable, Callable

from sqlalchemy import and_, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.config import Settings, get_settings
from backoffice.core.exceptions import (
    Forbidden,
    InsufficientStock,
    InvalidOperation,
    NotFound,
    PaymentError,
)
from backoffice.core.security import Identity
from backoffice.db.pagination import PageResult, paginate
from backoffice.events.order_completed import OrderCompleted
from backoffice.integrations.paypal import PayPalClient
from backoffice.models.audit import AuditAction
from backoffice.models.common import LifecycleStatus, utcnow
from backoffice.models.inventory import Product
from backoffice.models.order import (
    ALLOWED_TRANSITIONS,
    SALES_STATUSES,
    Order,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
)
from backoffice.models.user import Role, User
from backoffice.schemas.order import OrderCreateRequest, OrderResponse, PaymentCaptureRequest
from backoffice.services.audit_service import AuditService, snapshot
from backoffice.services.pricing import order_totals, round_down

logger = logging.getLogger(__name__)

CompletionHandler = Callable[[OrderCompleted], Awaitable[None]]

PERIODS = {
    "week": timedelta(days=7),
    "month": timedelta(days=30),
    "quarter": timedelta(days=90),
}


def period_start(period: str, now: datetime | None = None) -> datetime:
    now = now or utcnow()
    if period == "today":
        return now.replace(hour=0, minute=0, second=0, microsecond=0)
    if period not in PERIODS:
        raise InvalidOperation(f"Unknown period '{period}'. Use today, week, month or quarter.")
    return now - PERIODS[period]


def default_cancel_reason(actor: str) -> str:
    return f"Cancelled by user {actor}"


async def orders_revenue_between(db: AsyncSession, start: datetime, end: datetime) -> Decimal:
    """Sum of revenue-status orders created or last updated in [start, end)."""
    result = await db.execute(
        select(Order.total).where(
            Order.status.in_(SALES_STATUSES),
            or_(
                and_(Order.created_at >= start, Order.created_at < end),
                and_(Order.updated_at >= start, Order.updated_at < end),
            ),
        )
    )
    return round_down(sum(result.scalars(), Decimal("0")))


class OrderService:
    def __init__(
        self,
        db: AsyncSession,
        audit: AuditService,
        payments: PayPalClient | None = None,
        settings: Settings | None = None,
    ):
        self.db = db
        self.audit = audit
        self.payments = payments
        self.settings = settings or get_settings()

    # ─── Creation ─────────────────────────────────────────────────────────────

    async def _reserve_lines(self, payload: OrderCreateRequest) -> list[dict]:
        """Check every line against current stock; nothing is written here."""
        requested: dict[str, int] = defaultdict(int)
        for item in payload.items:
            requested[item.product_id] += item.quantity

        products: dict[str, Product] = {}
        for product_id, quantity in requested.items():
            product = await self.db.get(Product, product_id)
            if product is None:
                raise NotFound.entity("Product", product_id)
            if product.status != LifecycleStatus.ACTIVE:
                raise InvalidOperation(f"Product '{product.name}' is not available.")
            if quantity > product.stock_quantity:
                raise InsufficientStock(product.name, quantity, product.stock_quantity)
            products[product_id] = product

        lines = []
        for item in payload.items:
            product = products[item.product_id]
            unit_price = round_down(product.effective_price)
            lines.append({
                "product_id": product.id,
                "product_name": product.name,
                "quantity": item.quantity,
                "unit_price": str(unit_price),
                "line_total": str(round_down(unit_price * item.quantity)),
                "image": product.images[0] if product.images else None,
            })
        return lines

    async def create_order(self, payload: OrderCreateRequest, customer: Identity) -> Order:
        lines = await self._reserve_lines(payload)
        totals = order_totals(sum((Decimal(line["line_total"]) for line in lines), Decimal("0")), self.settings)
        email = await self.db.scalar(select(User.email).where(User.username == customer.username))

        order = Order(
            order_number=f"ORD-{uuid.uuid4()}",
            customer_username=customer.username,
            customer_email=email,
            items=lines,
            status=OrderStatus.PENDING,
            payment_method=payload.payment_method,
            payment_status=PaymentStatus.PENDING,
            subtotal=totals.subtotal,
            tax=totals.tax,
            shipping=totals.shipping,
            total=totals.total,
            shipping_address=payload.shipping_address.model_dump() if payload.shipping_address else None,
            billing_address=payload.billing_address.model_dump() if payload.billing_address else None,
            notes=payload.notes,
            estimated_delivery_date=utcnow() + timedelta(days=self.settings.ESTIMATED_DELIVERY_DAYS),
        )

        if payload.payment_method == PaymentMethod.PAYPAL:
            if self.payments is None:
                raise PaymentError("PayPal payments are not configured.")
            paypal_order = await self.payments.create_order(order.order_number, totals.total)
            order.payment_order_id = paypal_order.id

        self.db.add(order)
        await self.db.flush()
        self.audit.record(
            customer.username, AuditAction.CREATE, "Order", order.id,
            f"Order {order.order_number} created for {order.total}",
            new_data=snapshot(order, OrderResponse),
        )
        await self.db.commit()
        logger.info(
            "Order %s created by %s: subtotal=%s tax=%s shipping=%s total=%s",
            order.order_number, customer.username, order.subtotal, order.tax, order.shipping, order.total,
        )
        return order

    # ─── Lookup ───────────────────────────────────────────────────────────────

    async def get(self, order_id: str) -> Order:
        order = await self.db.get(Order, order_id)
        if order is None:
            raise NotFound.entity("Order", order_id)
        return order

    async def get_for(self, order_id: str, identity: Identity) -> Order:
        """Staff see every order; customers only their own."""
        order = await self.get(order_id)
        self._check_owner(order, identity)
        return order

    @staticmethod
    def _check_owner(order: Order, identity: Identity) -> None:
        if identity.has_any_role(Role.ADMIN.value, Role.EMPLOYEE.value):
            return
        if order.customer_username != identity.username:
            raise Forbidden("You can only access your own orders.")

    async def list_for_customer(self, customer_username: str) -> list[Order]:
        result = await self.db.execute(
            select(Order)
            .where(Order.customer_username == customer_username)
            .order_by(Order.created_at.desc())
        )
        return list(result.scalars().all())

    async def search(
        self,
        text: str | None = None,
        status: OrderStatus | None = None,
        period: str | None = None,
        page: int = 0,
        size: int | None = None,
    ) -> PageResult:
        stmt = select(Order).order_by(Order.created_at.desc())
        if text:
            pattern = f"%{text}%"
            stmt = stmt.where(or_(Order.order_number.ilike(pattern), Order.customer_username.ilike(pattern)))
        if status is not None:
            stmt = stmt.where(Order.status == status)
        if period:
            stmt = stmt.where(Order.created_at >= period_start(period))
        return await paginate(self.db, stmt, page, size or self.settings.ORDER_PAGE_SIZE)

    # ─── Status machine ───────────────────────────────────────────────────────

    @staticmethod
    def _check_transition(order: Order, new_status: OrderStatus) -> None:
        if new_status not in ALLOWED_TRANSITIONS[order.status]:
            raise InvalidOperation(
                f"Order {order.order_number} cannot move from {order.status.value} to {new_status.value}."
            )

    async def _transition(self, order: Order, new_status: OrderStatus, actor: str, **values) -> OrderStatus:
        """
        Move the order only if its status is still the one we read. A
        concurrent request that got there first leaves zero matched rows.
        """
        self._check_transition(order, new_status)
        old_status, order_number = order.status, order.order_number
        result = await self.db.execute(
            update(Order)
            .where(Order.id == order.id, Order.status == old_status)
            .values(status=new_status, processed_by=actor, updated_at=utcnow(), **values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await self.db.rollback()
            raise InvalidOperation(
                f"Order {order_number} was changed by another request; reload it and retry."
            )
        await self.db.refresh(order)
        return old_status

    async def update_status(
        self,
        order_id: str,
        new_status: OrderStatus,
        actor: str,
        on_completed: CompletionHandler | None = None,
    ) -> Order:
        order = await self.get(order_id)
        if new_status == OrderStatus.CANCELLED:
            return await self._cancel(order, actor, None)

        values = {}
        if new_status == OrderStatus.COMPLETED and order.payment_method == PaymentMethod.CASH_ON_DELIVERY:
            values["payment_status"] = PaymentStatus.COMPLETED
        old_status = await self._transition(order, new_status, actor, **values)

        self.audit.record(
            actor, AuditAction.STATUS_UPDATE, "Order", order.id,
            f"Order {order.order_number} status changed from {old_status.value} to {new_status.value}",
            old_data={"status": old_status.value}, new_data={"status": new_status.value},
        )
        if new_status == OrderStatus.COMPLETED and on_completed is not None:
            await on_completed(OrderCompleted.from_order(order))

        await self.db.commit()
        logger.info("Order %s: %s -> %s by %s", order.order_number, old_status.value, new_status.value, actor)
        return order

    async def cancel(self, order_id: str, identity: Identity, reason: str | None = None) -> Order:
        order = await self.get(order_id)
        self._check_owner(order, identity)
        return await self._cancel(order, identity.username, reason)

    async def _cancel(self, order: Order, actor: str, reason: str | None) -> Order:
        cancellation_reason = reason or default_cancel_reason(actor)
        old_status = await self._transition(
            order, OrderStatus.CANCELLED, actor, cancellation_reason=cancellation_reason
        )
        self.audit.record(
            actor, AuditAction.STATUS_UPDATE, "Order", order.id,
            f"Order {order.order_number} cancelled: {cancellation_reason}",
            old_data={"status": old_status.value},
            new_data={"status": OrderStatus.CANCELLED.value, "reason": cancellation_reason},
        )
        await self.db.commit()
        logger.info("Order %s: %s -> CANCELLED by %s", order.order_number, old_status.value, actor)
        return order

    # ─── Payment ──────────────────────────────────────────────────────────────

    async def capture_payment(self, payload: PaymentCaptureRequest, identity: Identity) -> Order:
        if self.payments is None:
            raise PaymentError("PayPal payments are not configured.")

        result = await self.db.execute(select(Order).where(Order.payment_order_id == payload.payment_order_id))
        order = result.scalar_one_or_none()
        if order is None:
            raise NotFound(f"No order for payment '{payload.payment_order_id}'.")
        self._check_owner(order, identity)
        self._check_transition(order, OrderStatus.CONFIRMED)

        capture = await self.payments.capture_order(payload.payment_order_id)
        if capture.status != "COMPLETED":
            order.payment_status = PaymentStatus.FAILED
            self.audit.record(
                identity.username, AuditAction.PAYMENT_CAPTURED, "Order", order.id,
                f"Payment capture for {order.order_number} returned {capture.status}",
            )
            await self.db.commit()
            raise PaymentError(f"Payment capture returned status {capture.status}.")

        order.status = OrderStatus.CONFIRMED
        order.payment_status = PaymentStatus.COMPLETED
        if payload.shipping_address:
            order.shipping_address = payload.shipping_address.model_dump()
        if payload.billing_address:
            order.billing_address = payload.billing_address.model_dump()
        self.audit.record(
            identity.username, AuditAction.PAYMENT_CAPTURED, "Order", order.id,
            f"Payment {payload.payment_order_id} captured for {order.order_number}",
            new_data={"status": order.status.value, "payment_status": order.payment_status.value},
        )
        await self.db.commit()
        logger.info("Order %s: payment %s captured", order.order_number, payload.payment_order_id)
        return order

    # ─── Analytics ────────────────────────────────────────────────────────────

    async def top_selling_products(self, limit: int = 5) -> list[dict]:
        result = await self.db.execute(select(Order.items).where(Order.status.in_(SALES_STATUSES)))
        stats: dict[str, dict] = {}
        for items in result.scalars():
            seen_in_order: set[str] = set()
            for item in items:
                entry = stats.setdefault(item["product_id"], {
                    "product_id": item["product_id"],
                    "product_name": item["product_name"],
                    "total_quantity_sold": 0,
                    "total_revenue": Decimal("0"),
                    "number_of_orders": 0,
                })
                entry["total_quantity_sold"] += int(item["quantity"])
                entry["total_revenue"] += Decimal(item["line_total"])
                if item["product_id"] not in seen_in_order:
                    entry["number_of_orders"] += 1
                    seen_in_order.add(item["product_id"])
        ranked = sorted(stats.values(), key=lambda e: e["total_quantity_sold"], reverse=True)
        return ranked[:limit]

    async def daily_sales_summary(self, day: date) -> Decimal:
        start = datetime.combine(day, time.min, tzinfo=timezone.utc)
        total = await orders_revenue_between(self.db, start, start + timedelta(days=1))
        logger.info("Daily order sales for %s: %s", day, total)
        return total

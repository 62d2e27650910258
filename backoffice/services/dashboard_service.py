"""
Back Office — Dashboard statistics and activity feed
"""
import calendar
from datetime import datetime, timedelta
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.models.common import LifecycleStatus, as_utc, utcnow
from backoffice.models.inventory import Product
from backoffice.models.order import SALES_STATUSES, Order, OrderStatus
from backoffice.models.sale import Sale
from backoffice.models.user import Role, User
from backoffice.schemas.dashboard import DashboardNotification, DashboardStatistics, NotificationType
from backoffice.services.order_service import orders_revenue_between
from backoffice.services.pricing import round_down

ZERO = Decimal("0.00")
NOTIFICATION_LIMIT = 20
PROCESSING_STATUSES = (OrderStatus.CONFIRMED, OrderStatus.PREPARING, OrderStatus.READY_FOR_PICKUP)


def time_ago(moment: datetime, now: datetime | None = None) -> str:
    seconds = int(((now or utcnow()) - as_utc(moment)).total_seconds())
    if seconds < 60:
        return "just now"
    for unit, size in (("day", 86400), ("hour", 3600), ("minute", 60)):
        if seconds >= size:
            count = seconds // size
            return f"{count} {unit}{'s' if count > 1 else ''} ago"
    return "just now"


class DashboardService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _revenue_rows(self, since: datetime) -> list[tuple[datetime, Decimal]]:
        sales = await self.db.execute(
            select(Sale.created_at, Sale.total_amount).where(Sale.created_at >= since)
        )
        orders = await self.db.execute(
            select(Order.created_at, Order.total).where(
                Order.created_at >= since, Order.status.in_(SALES_STATUSES)
            )
        )
        return [(as_utc(row[0]), row[1]) for row in [*sales.all(), *orders.all()]]

    async def statistics(self) -> DashboardStatistics:
        now = utcnow()
        today = now.replace(hour=0, minute=0, second=0, microsecond=0)
        month_start = today.replace(day=1)
        year_start = month_start.replace(month=1)

        till_sales = sum(
            (row for row in (await self.db.execute(
                select(Sale.total_amount).where(Sale.created_at >= today)
            )).scalars()),
            ZERO,
        )
        daily_sales = till_sales + await orders_revenue_between(self.db, today, today + timedelta(days=1))
        processing = await self.db.scalar(
            select(func.count()).select_from(Order).where(Order.status.in_(PROCESSING_STATUSES))
        )
        in_stock = await self.db.scalar(
            select(func.count()).select_from(
                Product.visible().where(
                    Product.status == LifecycleStatus.ACTIVE, Product.stock_quantity > 0
                ).subquery()
            )
        )

        per_month = {calendar.month_name[m]: ZERO for m in range(1, 13)}
        monthly_revenue = ZERO
        for created_at, amount in await self._revenue_rows(year_start):
            per_month[calendar.month_name[created_at.month]] += amount
            if created_at >= month_start:
                monthly_revenue += amount

        order_totals = list((await self.db.execute(
            select(Order.total).where(Order.status.in_(SALES_STATUSES))
        )).scalars())
        average = round_down(sum(order_totals, ZERO) / len(order_totals)) if order_totals else ZERO

        cancelled = await self.db.scalar(
            select(func.count()).select_from(Order).where(
                Order.status == OrderStatus.CANCELLED, Order.updated_at >= month_start
            )
        )
        return DashboardStatistics(
            daily_sales=daily_sales,
            processing_orders=processing or 0,
            products_in_stock=in_stock or 0,
            monthly_revenue=monthly_revenue,
            revenue_per_month_in_current_year=per_month,
            average_order_value=average,
            monthly_cancelled_orders=cancelled or 0,
        )

    async def notifications(self) -> list[DashboardNotification]:
        now = utcnow()
        feed: list[DashboardNotification] = []

        def push(kind: NotificationType, title: str, message: str, moment: datetime) -> None:
            feed.append(DashboardNotification(
                type=kind, title=title, message=message,
                timestamp=as_utc(moment), time_ago=time_ago(moment, now),
            ))

        sales = await self.db.execute(select(Sale).order_by(Sale.created_at.desc()).limit(5))
        for sale in sales.scalars():
            push(NotificationType.SALE, "New sale",
                 f"Sale {sale.sale_number} for {sale.total_amount}€", sale.created_at)

        orders = await self.db.execute(
            select(Order)
            .where(Order.status.in_((OrderStatus.PENDING, OrderStatus.CONFIRMED)))
            .order_by(Order.created_at.desc())
            .limit(5)
        )
        for order in orders.scalars():
            push(NotificationType.ORDER, "New order",
                 f"Order {order.order_number} from {order.customer_username} ({order.status.value})",
                 order.created_at)

        low = await self.db.execute(
            Product.visible()
            .where(Product.status == LifecycleStatus.ACTIVE, Product.stock_quantity <= Product.min_stock)
            .order_by(Product.stock_quantity.asc())
            .limit(5)
        )
        for product in low.scalars():
            push(NotificationType.STOCK, "Low stock",
                 f"{product.name} has {product.stock_quantity} left (minimum {product.min_stock})",
                 product.updated_at)

        week_ago = now - timedelta(days=7)
        users = await self.db.execute(
            select(User).where(User.created_at >= week_ago).order_by(User.created_at.desc())
        )
        for user in users.scalars():
            if Role.CLIENT.value in (user.roles or []):
                push(NotificationType.CUSTOMER, "New customer",
                     f"{user.full_name} joined", user.created_at)

        feed.sort(key=lambda n: n.timestamp, reverse=True)
        return feed[:NOTIFICATION_LIMIT]

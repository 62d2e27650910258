"""
Back Office — Point-of-sale transactions and sales statistics

Sales have no lifecycle: stock leaves the shelf in the same transaction
that records the sale. Aggregations fold over rows in memory.
"""
import logging
import time
import uuid
from collections import Counter, defaultdict
from datetime import date, datetime, time as dtime, timedelta, timezone
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.config import Settings, get_settings
from backoffice.core.exceptions import InsufficientStock, InvalidOperation, NotFound
from backoffice.models.audit import AuditAction
from backoffice.models.common import LifecycleStatus, as_utc
from backoffice.models.inventory import MovementReason, Product
from backoffice.models.sale import Sale, SalePaymentMethod
from backoffice.schemas.sale import SaleCreateRequest, SaleResponse
from backoffice.services.audit_service import AuditService, snapshot
from backoffice.services.pricing import round_down
from backoffice.services.stock_service import apply_stock_change

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


def day_bounds(day: date) -> tuple[datetime, datetime]:
    start = datetime.combine(day, dtime.min, tzinfo=timezone.utc)
    return start, start + timedelta(days=1)


class SaleService:
    def __init__(self, db: AsyncSession, audit: AuditService, settings: Settings | None = None):
        self.db = db
        self.audit = audit
        self.settings = settings or get_settings()

    async def create_sale(self, payload: SaleCreateRequest, actor: str) -> Sale:
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
        subtotal = ZERO
        for item in payload.items:
            product = products[item.product_id]
            unit_price = round_down(product.effective_price)
            gross = round_down(unit_price * item.quantity)
            if item.discount > gross:
                raise InvalidOperation(f"Discount on '{product.name}' exceeds the line amount.")
            line_total = gross - round_down(item.discount)
            subtotal += line_total
            lines.append({
                "product_id": product.id,
                "product_name": product.name,
                "quantity": item.quantity,
                "unit_price": str(unit_price),
                "discount": str(round_down(item.discount)),
                "line_total": str(line_total),
            })

        discount = round_down(payload.discount_amount)
        if discount > subtotal:
            raise InvalidOperation("Sale discount exceeds the subtotal.")
        taxable = subtotal - discount
        tax = round_down(taxable * self.settings.VAT_RATE)
        total = taxable + tax

        cash_received = change = None
        if payload.payment_method == SalePaymentMethod.CASH:
            if payload.cash_received is None or payload.cash_received < total:
                raise InvalidOperation(f"Cash received must cover the total of {total}.")
            cash_received = round_down(payload.cash_received)
            change = cash_received - total

        sale = Sale(
            sale_number=f"SALE-{int(time.time() * 1000)}-{uuid.uuid4().hex[:4].upper()}",
            customer_name=payload.customer_name,
            items=lines,
            subtotal=subtotal,
            discount_amount=discount,
            tax_amount=tax,
            total_amount=total,
            payment_method=payload.payment_method,
            cash_received=cash_received,
            change_amount=change,
            processed_by=actor,
        )
        self.db.add(sale)
        await self.db.flush()

        for product_id, quantity in requested.items():
            product = products[product_id]
            old_quantity = product.stock_quantity
            apply_stock_change(
                self.db, product, old_quantity - quantity, MovementReason.SALE, actor, sale.sale_number
            )
            self.audit.record(
                actor, AuditAction.STOCK_UPDATE, "Product", product.id,
                f"Sale {sale.sale_number}: stock of '{product.name}' {old_quantity} -> {product.stock_quantity}",
                old_data={"stock_quantity": old_quantity},
                new_data={"stock_quantity": product.stock_quantity},
            )
        self.audit.record(
            actor, AuditAction.CREATE, "Sale", sale.id,
            f"Sale {sale.sale_number} recorded for {total}",
            new_data=snapshot(sale, SaleResponse),
        )
        await self.db.commit()
        logger.info("Sale %s by %s: %d line(s), total=%s", sale.sale_number, actor, len(lines), total)
        return sale

    # ─── Queries ──────────────────────────────────────────────────────────────

    async def get(self, sale_id: str) -> Sale:
        sale = await self.db.get(Sale, sale_id)
        if sale is None:
            raise NotFound.entity("Sale", sale_id)
        return sale

    async def list_all(self) -> list[Sale]:
        result = await self.db.execute(select(Sale).order_by(Sale.created_at.desc()))
        return list(result.scalars().all())

    async def between(self, start: datetime, end: datetime) -> list[Sale]:
        """Sales with start <= created_at < end."""
        result = await self.db.execute(
            select(Sale)
            .where(Sale.created_at >= start, Sale.created_at < end)
            .order_by(Sale.created_at.desc())
        )
        return list(result.scalars().all())

    async def on_date(self, day: date) -> list[Sale]:
        return await self.between(*day_bounds(day))

    async def today(self) -> list[Sale]:
        return await self.on_date(datetime.now(tz=timezone.utc).date())

    async def in_range(self, start: date, end: date) -> list[Sale]:
        if end < start:
            raise InvalidOperation("End date must not be before start date.")
        return await self.between(day_bounds(start)[0], day_bounds(end)[1])

    # ─── Aggregations ─────────────────────────────────────────────────────────

    async def daily_total(self, day: date) -> Decimal:
        return sum((sale.total_amount for sale in await self.on_date(day)), ZERO)

    async def top_selling_products(self, limit: int = 10) -> list[dict]:
        stats: dict[str, dict] = {}
        for sale in await self.list_all():
            for item in sale.items:
                entry = stats.setdefault(item["product_id"], {
                    "product_id": item["product_id"],
                    "product_name": item["product_name"],
                    "total_quantity_sold": 0,
                    "total_revenue": ZERO,
                })
                entry["total_quantity_sold"] += int(item["quantity"])
                entry["total_revenue"] += Decimal(item["line_total"])
        ranked = sorted(stats.values(), key=lambda e: e["total_quantity_sold"], reverse=True)
        return ranked[:limit]

    async def stats_for_range(self, start: date, end: date) -> dict:
        sales = await self.in_range(start, end)
        revenue = sum((sale.total_amount for sale in sales), ZERO)
        daily: dict[str, Decimal] = {}
        day = start
        while day <= end:
            daily[day.isoformat()] = ZERO
            day += timedelta(days=1)
        for sale in sales:
            key = as_utc(sale.created_at).date().isoformat()
            daily[key] = daily.get(key, ZERO) + sale.total_amount
        return {
            "start": start,
            "end": end,
            "total_sales": len(sales),
            "total_revenue": revenue,
            "average_sale_amount": round_down(revenue / len(sales)) if sales else ZERO,
            "payment_methods": dict(Counter(sale.payment_method.value for sale in sales)),
            "daily_breakdown": daily,
        }

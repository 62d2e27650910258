"""
Back Office — Products and stock movements
"""
from datetime import date, datetime
from decimal import Decimal
from enum import Enum as PyEnum

from sqlalchemy import JSON, Boolean, Date, DateTime, Enum, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from backoffice.db.database import Base
from backoffice.models.common import (
    AuthorshipMixin,
    LifecycleMixin,
    TimestampMixin,
    as_utc,
    new_id,
    utcnow,
)


class Product(LifecycleMixin, TimestampMixin, AuthorshipMixin, Base):
    __tablename__ = "products"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    sku: Mapped[str] = mapped_column(String(64), unique=True, index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    category_id: Mapped[str | None] = mapped_column(String(36), index=True, nullable=True)
    supplier_id: Mapped[str | None] = mapped_column(String(36), index=True, nullable=True)
    purchase_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    selling_price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    stock_quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    min_stock: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    unit: Mapped[str | None] = mapped_column(String(32), nullable=True)
    expiration_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    images: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    is_on_promotion: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    promotion_price: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    promotion_end_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def promotion_running(self, now: datetime | None = None) -> bool:
        if not self.is_on_promotion or self.promotion_price is None:
            return False
        if self.promotion_end_date is None:
            return True
        return as_utc(self.promotion_end_date) > (now or utcnow())

    @property
    def effective_price(self) -> Decimal:
        """Price a customer pays right now."""
        return self.promotion_price if self.promotion_running() else self.selling_price

    @property
    def is_low_stock(self) -> bool:
        return self.stock_quantity <= self.min_stock


class MovementReason(str, PyEnum):
    SALE = "SALE"
    ORDER = "ORDER"
    MANUAL = "MANUAL"


class StockMovement(Base):
    """Append-only ledger of stock changes."""

    __tablename__ = "stock_movements"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    product_id: Mapped[str] = mapped_column(String(36), index=True, nullable=False)
    quantity_delta: Mapped[int] = mapped_column(Integer, nullable=False)
    stock_after: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[MovementReason] = mapped_column(Enum(MovementReason, name="movement_reason"), nullable=False)
    reference_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    actor: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

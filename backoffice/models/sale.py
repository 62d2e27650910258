"""
Back Office — Point-of-sale transactions
"""
from datetime import datetime
from decimal import Decimal
from enum import Enum as PyEnum

from sqlalchemy import JSON, DateTime, Enum, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from backoffice.db.database import Base
from backoffice.models.common import new_id, utcnow


class SalePaymentMethod(str, PyEnum):
    CASH = "CASH"
    CARD = "CARD"
    MOBILE = "MOBILE"


class Sale(Base):
    __tablename__ = "sales"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    sale_number: Mapped[str] = mapped_column(String(48), unique=True, index=True, nullable=False)
    customer_name: Mapped[str | None] = mapped_column(String(150), nullable=True)
    items: Mapped[list[dict]] = mapped_column(JSON, default=list, nullable=False)
    subtotal: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    discount_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"), nullable=False)
    tax_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    payment_method: Mapped[SalePaymentMethod] = mapped_column(
        Enum(SalePaymentMethod, name="sale_payment_method"), nullable=False
    )
    cash_received: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    change_amount: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    processed_by: Mapped[str] = mapped_column(String(64), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)

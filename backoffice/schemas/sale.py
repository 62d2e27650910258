"""
Back Office — Point-of-sale schemas
"""
from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from backoffice.models.sale import SalePaymentMethod


class SaleItemRequest(BaseModel):
    product_id: str
    quantity: int = Field(..., ge=1)
    discount: Decimal = Field(Decimal("0"), ge=0, decimal_places=2)


class SaleCreateRequest(BaseModel):
    customer_name: str | None = Field(None, max_length=150)
    items: list[SaleItemRequest] = Field(..., min_length=1)
    payment_method: SalePaymentMethod
    discount_amount: Decimal = Field(Decimal("0"), ge=0, decimal_places=2)
    cash_received: Decimal | None = Field(None, ge=0, decimal_places=2)


class SaleItemResponse(BaseModel):
    product_id: str
    product_name: str
    quantity: int
    unit_price: Decimal
    discount: Decimal
    line_total: Decimal


class SaleResponse(BaseModel):
    id: str
    sale_number: str
    customer_name: str | None
    items: list[SaleItemResponse]
    subtotal: Decimal
    discount_amount: Decimal
    tax_amount: Decimal
    total_amount: Decimal
    payment_method: SalePaymentMethod
    cash_received: Decimal | None
    change_amount: Decimal | None
    processed_by: str
    created_at: datetime

    model_config = {"from_attributes": True}


class DailyTotalResponse(BaseModel):
    date: date
    total: Decimal


class SalesStatsResponse(BaseModel):
    start: date
    end: date
    total_sales: int
    total_revenue: Decimal
    average_sale_amount: Decimal
    payment_methods: dict[str, int]
    daily_breakdown: dict[str, Decimal]


class SaleTopProduct(BaseModel):
    product_id: str
    product_name: str
    total_quantity_sold: int
    total_revenue: Decimal

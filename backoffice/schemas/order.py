"""
Back Office — Order schemas
"""
from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from backoffice.models.order import OrderStatus, PaymentMethod, PaymentStatus


class OrderAddress(BaseModel):
    full_name: str | None = None
    street: str
    city: str
    postal_code: str
    country: str = "France"


class OrderItemRequest(BaseModel):
    product_id: str
    quantity: int = Field(..., ge=1)


class OrderCreateRequest(BaseModel):
    items: list[OrderItemRequest] = Field(..., min_length=1)
    payment_method: PaymentMethod = PaymentMethod.PAYPAL
    shipping_address: OrderAddress | None = None
    billing_address: OrderAddress | None = None
    notes: str | None = Field(None, max_length=1000)


class OrderStatusUpdate(BaseModel):
    status: OrderStatus
    reason: str | None = Field(None, max_length=500)


class OrderCancelRequest(BaseModel):
    reason: str | None = Field(None, max_length=500)


class PaymentCaptureRequest(BaseModel):
    payment_order_id: str
    shipping_address: OrderAddress | None = None
    billing_address: OrderAddress | None = None


class OrderItemResponse(BaseModel):
    product_id: str
    product_name: str
    quantity: int
    unit_price: Decimal
    line_total: Decimal
    image: str | None = None


class OrderResponse(BaseModel):
    id: str
    order_number: str
    customer_username: str
    customer_email: str | None
    items: list[OrderItemResponse]
    status: OrderStatus
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    payment_order_id: str | None
    subtotal: Decimal
    tax: Decimal
    shipping: Decimal
    total: Decimal
    shipping_address: OrderAddress | None
    billing_address: OrderAddress | None
    notes: str | None
    cancellation_reason: str | None
    processed_by: str | None
    estimated_delivery_date: datetime | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class TopSellingProduct(BaseModel):
    product_id: str
    product_name: str
    total_quantity_sold: int
    total_revenue: Decimal
    number_of_orders: int


class DailySellingResponse(BaseModel):
    date: date
    value: Decimal

"""
Back Office — Dashboard schemas
"""
from datetime import datetime
from decimal import Decimal
from enum import Enum as PyEnum

from pydantic import BaseModel


class DashboardStatistics(BaseModel):
    daily_sales: Decimal
    processing_orders: int
    products_in_stock: int
    monthly_revenue: Decimal
    revenue_per_month_in_current_year: dict[str, Decimal]
    average_order_value: Decimal
    monthly_cancelled_orders: int


class NotificationType(str, PyEnum):
    SALE = "SALE"
    ORDER = "ORDER"
    STOCK = "STOCK"
    CUSTOMER = "CUSTOMER"


class DashboardNotification(BaseModel):
    type: NotificationType
    title: str
    message: str
    timestamp: datetime
    time_ago: str

"""
Back Office — Category, supplier and product schemas
"""
from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, EmailStr, Field

from backoffice.models.common import LifecycleStatus


# ─── Categories ───────────────────────────────────────────────────────────────

class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: str | None = None


class CategoryUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=100)
    description: str | None = None


class CategoryResponse(BaseModel):
    id: str
    name: str
    description: str | None
    status: LifecycleStatus
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


# ─── Suppliers ────────────────────────────────────────────────────────────────

class SupplierCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=150)
    contact_person_name: str | None = Field(None, max_length=150)
    category: str | None = Field(None, max_length=100)
    email: EmailStr | None = None
    phone: str | None = Field(None, max_length=32)
    address: str | None = None


class SupplierUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=150)
    contact_person_name: str | None = Field(None, max_length=150)
    category: str | None = Field(None, max_length=100)
    email: EmailStr | None = None
    phone: str | None = Field(None, max_length=32)
    address: str | None = None


class SupplierResponse(BaseModel):
    id: str
    name: str
    contact_person_name: str | None
    category: str | None
    email: str | None
    phone: str | None
    address: str | None
    status: LifecycleStatus
    created_by: str | None
    updated_by: str | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


# ─── Products ─────────────────────────────────────────────────────────────────

class ProductCreate(BaseModel):
    sku: str = Field(..., min_length=1, max_length=64, examples=["SKU-1"])
    name: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    category_id: str | None = None
    supplier_id: str | None = None
    purchase_price: Decimal = Field(..., gt=0, decimal_places=2)
    selling_price: Decimal = Field(..., gt=0, decimal_places=2)
    stock_quantity: int = Field(0, ge=0)
    min_stock: int = Field(0, ge=0)
    unit: str | None = Field(None, max_length=32)
    expiration_date: date | None = None
    is_on_promotion: bool = False
    promotion_price: Decimal | None = Field(None, gt=0, decimal_places=2)
    promotion_end_date: datetime | None = None


class ProductUpdate(BaseModel):
    sku: str | None = Field(None, min_length=1, max_length=64)
    name: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = None
    category_id: str | None = None
    supplier_id: str | None = None
    purchase_price: Decimal | None = Field(None, gt=0, decimal_places=2)
    selling_price: Decimal | None = Field(None, gt=0, decimal_places=2)
    min_stock: int | None = Field(None, ge=0)
    unit: str | None = Field(None, max_length=32)
    expiration_date: date | None = None
    is_on_promotion: bool | None = None
    promotion_price: Decimal | None = Field(None, gt=0, decimal_places=2)
    promotion_end_date: datetime | None = None


class StockUpdate(BaseModel):
    quantity: int = Field(..., ge=0)


class ProductResponse(BaseModel):
    id: str
    sku: str
    name: str
    description: str | None
    category_id: str | None
    supplier_id: str | None
    purchase_price: Decimal
    selling_price: Decimal
    effective_price: Decimal
    stock_quantity: int
    min_stock: int
    is_low_stock: bool
    unit: str | None
    expiration_date: date | None
    images: list[str]
    is_on_promotion: bool
    promotion_price: Decimal | None
    promotion_end_date: datetime | None
    status: LifecycleStatus
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class CatalogEntry(BaseModel):
    product: ProductResponse
    category_name: str | None


class ProductImage(BaseModel):
    name: str
    url: str


class ProductImagesResponse(BaseModel):
    product_id: str
    images: list[ProductImage]

"""
Back Office — Product API routes
"""
from decimal import Decimal

from fastapi import APIRouter, Depends, Query, status

from backoffice.api.deps import ANY_ROLE, STAFF, get_product_service, require_roles
from backoffice.core.security import Identity
from backoffice.models.common import LifecycleStatus
from backoffice.models.user import Role
from backoffice.schemas.catalog import ProductCreate, ProductResponse, ProductUpdate, StockUpdate
from backoffice.schemas.common import LifecycleUpdate, Page
from backoffice.services.product_service import ProductFilter, ProductService

router = APIRouter(prefix="/api/products", tags=["products"])


@router.get("", response_model=Page[ProductResponse])
async def search_products(
    search: str | None = None,
    status: LifecycleStatus | None = None,
    category_id: str | None = None,
    supplier_id: str | None = None,
    is_on_promotion: bool | None = None,
    min_price: Decimal | None = Query(None, ge=0),
    max_price: Decimal | None = Query(None, ge=0),
    is_low_stock: bool = False,
    is_in_stock: bool = False,
    is_out_of_stock: bool = False,
    page: int = Query(0, ge=0),
    size: int = Query(20, ge=1, le=200),
    identity: Identity = Depends(require_roles(*ANY_ROLE)),
    products: ProductService = Depends(get_product_service),
):
    filters = ProductFilter(
        text=search,
        status=status,
        category_id=category_id,
        supplier_id=supplier_id,
        on_promotion=is_on_promotion,
        min_price=min_price,
        max_price=max_price,
        low_stock=is_low_stock,
        in_stock=is_in_stock,
        out_of_stock=is_out_of_stock,
    )
    return await products.search(filters, page, size)


@router.get("/low-stock", response_model=list[ProductResponse])
async def low_stock_products(
    identity: Identity = Depends(require_roles(*STAFF)),
    products: ProductService = Depends(get_product_service),
):
    return await products.low_stock()


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(
    product_id: str,
    identity: Identity = Depends(require_roles(*ANY_ROLE)),
    products: ProductService = Depends(get_product_service),
):
    return await products.get(product_id)


@router.post("", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def create_product(
    payload: ProductCreate,
    identity: Identity = Depends(require_roles(*STAFF)),
    products: ProductService = Depends(get_product_service),
):
    return await products.create(payload, identity.username)


@router.put("/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: str,
    payload: ProductUpdate,
    identity: Identity = Depends(require_roles(*STAFF)),
    products: ProductService = Depends(get_product_service),
):
    return await products.update(product_id, payload, identity.username)


@router.patch("/{product_id}/stock", response_model=ProductResponse)
async def update_stock(
    product_id: str,
    payload: StockUpdate,
    identity: Identity = Depends(require_roles(*STAFF)),
    products: ProductService = Depends(get_product_service),
):
    return await products.update_stock(product_id, payload.quantity, identity.username)


@router.patch("/{product_id}/status", response_model=ProductResponse)
async def update_product_status(
    product_id: str,
    payload: LifecycleUpdate,
    identity: Identity = Depends(require_roles(*STAFF)),
    products: ProductService = Depends(get_product_service),
):
    return await products.update_status(product_id, payload.status, identity.username)


@router.delete("/{product_id}", response_model=ProductResponse)
async def delete_product(
    product_id: str,
    identity: Identity = Depends(require_roles(Role.ADMIN)),
    products: ProductService = Depends(get_product_service),
):
    """Archive the product; it stays readable by id."""
    return await products.archive(product_id, identity.username)

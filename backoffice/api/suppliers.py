"""
Back Office — Supplier API routes
"""
from fastapi import APIRouter, Depends, Query, status

from backoffice.api.deps import STAFF, get_supplier_service, require_roles
from backoffice.core.security import Identity
from backoffice.models.common import LifecycleStatus
from backoffice.models.user import Role
from backoffice.schemas.catalog import SupplierCreate, SupplierResponse, SupplierUpdate
from backoffice.schemas.common import LifecycleUpdate, Page
from backoffice.services.supplier_service import SupplierService

router = APIRouter(prefix="/api/suppliers", tags=["suppliers"])


@router.get("", response_model=Page[SupplierResponse])
async def search_suppliers(
    search: str | None = None,
    status: LifecycleStatus | None = None,
    category: str | None = None,
    page: int = Query(0, ge=0),
    size: int = Query(20, ge=1, le=200),
    identity: Identity = Depends(require_roles(*STAFF)),
    suppliers: SupplierService = Depends(get_supplier_service),
):
    return await suppliers.search(search, status, category, page, size)


@router.get("/{supplier_id}", response_model=SupplierResponse)
async def get_supplier(
    supplier_id: str,
    identity: Identity = Depends(require_roles(*STAFF)),
    suppliers: SupplierService = Depends(get_supplier_service),
):
    return await suppliers.get(supplier_id)


@router.post("", response_model=SupplierResponse, status_code=status.HTTP_201_CREATED)
async def create_supplier(
    payload: SupplierCreate,
    identity: Identity = Depends(require_roles(*STAFF)),
    suppliers: SupplierService = Depends(get_supplier_service),
):
    return await suppliers.create(payload, identity.username)


@router.put("/{supplier_id}", response_model=SupplierResponse)
async def update_supplier(
    supplier_id: str,
    payload: SupplierUpdate,
    identity: Identity = Depends(require_roles(*STAFF)),
    suppliers: SupplierService = Depends(get_supplier_service),
):
    return await suppliers.update(supplier_id, payload, identity.username)


@router.patch("/{supplier_id}/status", response_model=SupplierResponse)
async def update_supplier_status(
    supplier_id: str,
    payload: LifecycleUpdate,
    identity: Identity = Depends(require_roles(*STAFF)),
    suppliers: SupplierService = Depends(get_supplier_service),
):
    return await suppliers.update_status(supplier_id, payload.status, identity.username)


@router.delete("/{supplier_id}", response_model=SupplierResponse)
async def delete_supplier(
    supplier_id: str,
    identity: Identity = Depends(require_roles(Role.ADMIN)),
    suppliers: SupplierService = Depends(get_supplier_service),
):
    return await suppliers.archive(supplier_id, identity.username)

"""
Back Office — Category API routes
"""
from fastapi import APIRouter, Depends, status

from backoffice.api.deps import ANY_ROLE, STAFF, get_category_service, require_roles
from backoffice.core.security import Identity
from backoffice.models.common import LifecycleStatus
from backoffice.models.user import Role
from backoffice.schemas.catalog import CategoryCreate, CategoryResponse, CategoryUpdate
from backoffice.schemas.common import LifecycleUpdate
from backoffice.services.category_service import CategoryService

router = APIRouter(prefix="/api/categories", tags=["categories"])


@router.get("", response_model=list[CategoryResponse])
async def list_categories(
    status: LifecycleStatus | None = None,
    identity: Identity = Depends(require_roles(*ANY_ROLE)),
    categories: CategoryService = Depends(get_category_service),
):
    return await categories.list_all(status)


@router.get("/{category_id}", response_model=CategoryResponse)
async def get_category(
    category_id: str,
    identity: Identity = Depends(require_roles(*ANY_ROLE)),
    categories: CategoryService = Depends(get_category_service),
):
    return await categories.get(category_id)


@router.post("", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
async def create_category(
    payload: CategoryCreate,
    identity: Identity = Depends(require_roles(*STAFF)),
    categories: CategoryService = Depends(get_category_service),
):
    return await categories.create(payload, identity.username)


@router.put("/{category_id}", response_model=CategoryResponse)
async def update_category(
    category_id: str,
    payload: CategoryUpdate,
    identity: Identity = Depends(require_roles(*STAFF)),
    categories: CategoryService = Depends(get_category_service),
):
    return await categories.update(category_id, payload, identity.username)


@router.patch("/{category_id}/status", response_model=CategoryResponse)
async def update_category_status(
    category_id: str,
    payload: LifecycleUpdate,
    identity: Identity = Depends(require_roles(*STAFF)),
    categories: CategoryService = Depends(get_category_service),
):
    return await categories.update_status(category_id, payload.status, identity.username)


@router.delete("/{category_id}", response_model=CategoryResponse)
async def delete_category(
    category_id: str,
    identity: Identity = Depends(require_roles(Role.ADMIN)),
    categories: CategoryService = Depends(get_category_service),
):
    """Archive the category; it stays readable by id."""
    return await categories.archive(category_id, identity.username)

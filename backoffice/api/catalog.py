"""
Back Office — Public catalog routes (anonymous access allowed)
"""
from fastapi import APIRouter, Depends

from backoffice.api.deps import get_catalog_service
from backoffice.schemas.catalog import CatalogEntry, ProductResponse
from backoffice.services.catalog_service import CatalogService

router = APIRouter(prefix="/api/catalog", tags=["catalog"])


def _entry(product, category_name) -> CatalogEntry:
    return CatalogEntry(product=ProductResponse.model_validate(product), category_name=category_name)


@router.get("", response_model=list[CatalogEntry])
async def list_catalog(category_id: str | None = None, catalog: CatalogService = Depends(get_catalog_service)):
    """Active products with their category names."""
    return [_entry(p, name) for p, name in await catalog.products_with_categories(category_id)]


@router.get("/{product_id}", response_model=CatalogEntry)
async def get_catalog_entry(product_id: str, catalog: CatalogService = Depends(get_catalog_service)):
    return _entry(*await catalog.product_with_category(product_id))

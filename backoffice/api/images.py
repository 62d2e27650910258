"""
Back Office — Product image routes (MinIO-backed)
"""
import logging

from fastapi import APIRouter, Depends, File, UploadFile

from backoffice.api.deps import ANY_ROLE, STAFF, get_image_storage, get_product_service, require_roles
from backoffice.core.exceptions import InvalidOperation, NotFound
from backoffice.core.security import Identity
from backoffice.integrations.storage import ImageStorage
from backoffice.schemas.catalog import ProductImage, ProductImagesResponse
from backoffice.services.product_service import ProductService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/images", tags=["images"])


async def _describe(product_id: str, names: list[str], storage: ImageStorage) -> ProductImagesResponse:
    return ProductImagesResponse(
        product_id=product_id,
        images=[ProductImage(name=name, url=await storage.presigned_url(name)) for name in names],
    )


@router.post("/products/{product_id}", response_model=ProductImagesResponse)
async def upload_product_images(
    product_id: str,
    files: list[UploadFile] = File(...),
    identity: Identity = Depends(require_roles(*STAFF)),
    products: ProductService = Depends(get_product_service),
    storage: ImageStorage = Depends(get_image_storage),
):
    """Validate every file, then store them all and append them to the product's image list."""
    product = await products.get(product_id)
    if not files:
        raise InvalidOperation("No files uploaded.")
    batch = [(upload.filename or "image", upload.content_type, await upload.read()) for upload in files]
    stored = await storage.upload_all(product.name, batch)
    product = await products.set_images(product_id, [*product.images, *stored], identity.username)
    return await _describe(product.id, product.images, storage)


@router.get("/products/{product_id}", response_model=ProductImagesResponse)
async def list_product_images(
    product_id: str,
    identity: Identity = Depends(require_roles(*ANY_ROLE)),
    products: ProductService = Depends(get_product_service),
    storage: ImageStorage = Depends(get_image_storage),
):
    product = await products.get(product_id)
    return await _describe(product.id, product.images, storage)


@router.delete("/products/{product_id}/{object_name:path}", response_model=ProductImagesResponse)
async def delete_product_image(
    product_id: str,
    object_name: str,
    identity: Identity = Depends(require_roles(*STAFF)),
    products: ProductService = Depends(get_product_service),
    storage: ImageStorage = Depends(get_image_storage),
):
    product = await products.get(product_id)
    if object_name not in product.images:
        raise NotFound(f"Image '{object_name}' is not attached to product {product_id}.")
    await storage.delete(object_name)
    remaining = [name for name in product.images if name != object_name]
    product = await products.set_images(product_id, remaining, identity.username)
    return await _describe(product.id, product.images, storage)

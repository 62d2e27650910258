"""
Back Office — Product management, search and stock updates
"""
import logging
from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy import and_, or_, select

from backoffice.core.config import get_settings
from backoffice.core.exceptions import DuplicateEntity, InvalidOperation, NotFound
from backoffice.db.pagination import PageResult, paginate
from backoffice.models.audit import AuditAction
from backoffice.models.catalog import Category, Supplier
from backoffice.models.common import LifecycleStatus, utcnow
from backoffice.models.inventory import MovementReason, Product
from backoffice.schemas.catalog import ProductCreate, ProductResponse, ProductUpdate
from backoffice.services.audit_service import snapshot
from backoffice.services.lifecycle import LifecycleService
from backoffice.services.stock_service import apply_stock_change

logger = logging.getLogger(__name__)


@dataclass
class ProductFilter:
    text: str | None = None
    status: LifecycleStatus | None = None
    category_id: str | None = None
    supplier_id: str | None = None
    on_promotion: bool | None = None
    min_price: Decimal | None = None
    max_price: Decimal | None = None
    low_stock: bool = False
    in_stock: bool = False
    out_of_stock: bool = False


def check_pricing(
    purchase_price: Decimal,
    selling_price: Decimal,
    is_on_promotion: bool,
    promotion_price: Decimal | None,
) -> None:
    if selling_price <= purchase_price:
        raise InvalidOperation(
            f"Selling price {selling_price} must be greater than purchase price {purchase_price}."
        )
    if is_on_promotion:
        if promotion_price is None:
            raise InvalidOperation("A promotion needs a promotion price.")
        if promotion_price >= selling_price:
            raise InvalidOperation("Promotion price must be lower than the selling price.")


class ProductService(LifecycleService[Product]):
    model = Product
    entity_type = "Product"
    schema = ProductResponse

    async def _ensure_unique_sku(self, sku: str, exclude_id: str | None = None) -> None:
        stmt = select(Product.id).where(Product.sku == sku)
        if exclude_id:
            stmt = stmt.where(Product.id != exclude_id)
        if await self.db.scalar(stmt):
            raise DuplicateEntity(f"A product with SKU '{sku}' already exists.")

    async def _ensure_references(self, category_id: str | None, supplier_id: str | None) -> None:
        if category_id and await self.db.get(Category, category_id) is None:
            raise NotFound.entity("Category", category_id)
        if supplier_id and await self.db.get(Supplier, supplier_id) is None:
            raise NotFound.entity("Supplier", supplier_id)

    async def create(self, payload: ProductCreate, actor: str) -> Product:
        check_pricing(
            payload.purchase_price, payload.selling_price,
            payload.is_on_promotion, payload.promotion_price,
        )
        await self._ensure_unique_sku(payload.sku)
        await self._ensure_references(payload.category_id, payload.supplier_id)

        data = payload.model_dump()
        if "min_stock" not in payload.model_fields_set:
            data["min_stock"] = get_settings().LOW_STOCK_DEFAULT
        product = Product(**data, images=[], created_by=actor, updated_by=actor)
        self.db.add(product)
        await self.db.flush()
        self.audit.record(
            actor, AuditAction.CREATE, self.entity_type, product.id,
            f"Product '{product.name}' ({product.sku}) created",
            new_data=snapshot(product, ProductResponse),
        )
        await self.db.commit()
        return product

    async def update(self, product_id: str, payload: ProductUpdate, actor: str) -> Product:
        product = await self.get(product_id)
        before = snapshot(product, ProductResponse)
        changes = payload.model_dump(exclude_unset=True)

        check_pricing(
            changes.get("purchase_price", product.purchase_price),
            changes.get("selling_price", product.selling_price),
            changes.get("is_on_promotion", product.is_on_promotion),
            changes.get("promotion_price", product.promotion_price),
        )
        if "sku" in changes and changes["sku"] != product.sku:
            await self._ensure_unique_sku(changes["sku"], exclude_id=product.id)
        await self._ensure_references(changes.get("category_id"), changes.get("supplier_id"))

        for field, value in changes.items():
            setattr(product, field, value)
        product.updated_by = actor
        await self.db.flush()
        self.audit.record(
            actor, AuditAction.UPDATE, self.entity_type, product.id,
            f"Product '{product.name}' updated",
            old_data=before, new_data=snapshot(product, ProductResponse),
        )
        await self.db.commit()
        return product

    async def update_stock(self, product_id: str, quantity: int, actor: str) -> Product:
        product = await self.get(product_id)
        old_quantity = product.stock_quantity
        apply_stock_change(self.db, product, quantity, MovementReason.MANUAL, actor)
        self.audit.record(
            actor, AuditAction.STOCK_UPDATE, self.entity_type, product.id,
            f"Stock of '{product.name}' changed from {old_quantity} to {quantity}",
            old_data={"stock_quantity": old_quantity}, new_data={"stock_quantity": quantity},
        )
        await self.db.commit()
        logger.info("Product %s stock %d -> %d by %s", product.sku, old_quantity, quantity, actor)
        return product

    async def set_images(self, product_id: str, images: list[str], actor: str) -> Product:
        product = await self.get(product_id)
        old_images = list(product.images or [])
        product.images = list(images)
        product.updated_by = actor
        self.audit.record(
            actor, AuditAction.UPDATE, self.entity_type, product.id,
            f"Images of '{product.name}' updated",
            old_data={"images": old_images}, new_data={"images": product.images},
        )
        await self.db.commit()
        return product

    async def search(self, filters: ProductFilter, page: int = 0, size: int = 20) -> PageResult:
        stmt = Product.visible().order_by(Product.name)
        if filters.text:
            pattern = f"%{filters.text}%"
            stmt = stmt.where(
                or_(
                    Product.name.ilike(pattern),
                    Product.sku.ilike(pattern),
                    Product.description.ilike(pattern),
                )
            )
        if filters.status is not None:
            stmt = stmt.where(Product.status == filters.status)
        if filters.category_id:
            stmt = stmt.where(Product.category_id == filters.category_id)
        if filters.supplier_id:
            stmt = stmt.where(Product.supplier_id == filters.supplier_id)
        if filters.on_promotion is not None:
            running = and_(
                Product.is_on_promotion.is_(True),
                or_(Product.promotion_end_date.is_(None), Product.promotion_end_date > utcnow()),
            )
            stmt = stmt.where(running if filters.on_promotion else ~running)
        if filters.min_price is not None:
            stmt = stmt.where(Product.selling_price >= filters.min_price)
        if filters.max_price is not None:
            stmt = stmt.where(Product.selling_price <= filters.max_price)
        if filters.low_stock:
            stmt = stmt.where(Product.stock_quantity <= Product.min_stock)
        if filters.in_stock:
            stmt = stmt.where(Product.stock_quantity > 0)
        if filters.out_of_stock:
            stmt = stmt.where(Product.stock_quantity == 0)
        return await paginate(self.db, stmt, page, size)

    async def low_stock(self) -> list[Product]:
        result = await self.db.execute(
            Product.visible()
            .where(Product.status == LifecycleStatus.ACTIVE, Product.stock_quantity <= Product.min_stock)
            .order_by(Product.stock_quantity.asc())
        )
        return list(result.scalars().all())

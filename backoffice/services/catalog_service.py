"""
Back Office — Storefront catalog: active products with their category names
"""
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.exceptions import NotFound
from backoffice.models.catalog import Category
from backoffice.models.common import LifecycleStatus
from backoffice.models.inventory import Product


class CatalogService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _category_names(self, category_ids: set[str]) -> dict[str, str]:
        if not category_ids:
            return {}
        result = await self.db.execute(
            select(Category.id, Category.name).where(Category.id.in_(category_ids))
        )
        return {row.id: row.name for row in result}

    async def products_with_categories(self, category_id: str | None = None) -> list[tuple[Product, str | None]]:
        stmt = (
            Product.visible()
            .where(Product.status == LifecycleStatus.ACTIVE)
            .order_by(Product.name)
        )
        if category_id:
            stmt = stmt.where(Product.category_id == category_id)
        products = list((await self.db.execute(stmt)).scalars().all())
        names = await self._category_names({p.category_id for p in products if p.category_id})
        return [(p, names.get(p.category_id)) for p in products]

    async def product_with_category(self, product_id: str) -> tuple[Product, str | None]:
        product = await self.db.get(Product, product_id)
        if product is None or product.status != LifecycleStatus.ACTIVE:
            raise NotFound.entity("Product", product_id)
        names = await self._category_names({product.category_id} if product.category_id else set())
        return product, names.get(product.category_id)

"""
Back Office — Category management
"""
from sqlalchemy import select

from backoffice.core.exceptions import DuplicateEntity
from backoffice.models.audit import AuditAction
from backoffice.models.catalog import Category
from backoffice.models.common import LifecycleStatus
from backoffice.schemas.catalog import CategoryCreate, CategoryResponse, CategoryUpdate
from backoffice.services.audit_service import snapshot
from backoffice.services.lifecycle import LifecycleService


class CategoryService(LifecycleService[Category]):
    model = Category
    entity_type = "Category"
    schema = CategoryResponse

    async def _ensure_unique_name(self, name: str, exclude_id: str | None = None) -> None:
        stmt = select(Category.id).where(Category.name == name)
        if exclude_id:
            stmt = stmt.where(Category.id != exclude_id)
        if await self.db.scalar(stmt):
            raise DuplicateEntity(f"Category '{name}' already exists.")

    async def create(self, payload: CategoryCreate, actor: str) -> Category:
        await self._ensure_unique_name(payload.name)
        category = Category(name=payload.name, description=payload.description)
        self.db.add(category)
        await self.db.flush()
        self.audit.record(
            actor, AuditAction.CREATE, self.entity_type, category.id,
            f"Category '{category.name}' created", new_data=snapshot(category, CategoryResponse),
        )
        await self.db.commit()
        return category

    async def list_all(self, status: LifecycleStatus | None = None) -> list[Category]:
        stmt = Category.visible().order_by(Category.name)
        if status is not None:
            stmt = stmt.where(Category.status == status)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def update(self, category_id: str, payload: CategoryUpdate, actor: str) -> Category:
        category = await self.get(category_id)
        before = snapshot(category, CategoryResponse)
        changes = payload.model_dump(exclude_unset=True)
        if "name" in changes and changes["name"] != category.name:
            await self._ensure_unique_name(changes["name"], exclude_id=category.id)
        for field, value in changes.items():
            setattr(category, field, value)
        await self.db.flush()
        self.audit.record(
            actor, AuditAction.UPDATE, self.entity_type, category.id,
            f"Category '{category.name}' updated",
            old_data=before, new_data=snapshot(category, CategoryResponse),
        )
        await self.db.commit()
        return category

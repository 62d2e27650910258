"""
Back Office — Supplier management
"""
from sqlalchemy import or_, select

from backoffice.core.exceptions import DuplicateEntity
from backoffice.db.pagination import PageResult, paginate
from backoffice.models.audit import AuditAction
from backoffice.models.catalog import Supplier
from backoffice.models.common import LifecycleStatus
from backoffice.schemas.catalog import SupplierCreate, SupplierResponse, SupplierUpdate
from backoffice.services.audit_service import snapshot
from backoffice.services.lifecycle import LifecycleService


class SupplierService(LifecycleService[Supplier]):
    model = Supplier
    entity_type = "Supplier"
    schema = SupplierResponse

    async def _ensure_unique_name(self, name: str, exclude_id: str | None = None) -> None:
        stmt = select(Supplier.id).where(Supplier.name == name)
        if exclude_id:
            stmt = stmt.where(Supplier.id != exclude_id)
        if await self.db.scalar(stmt):
            raise DuplicateEntity(f"Supplier '{name}' already exists.")

    async def create(self, payload: SupplierCreate, actor: str) -> Supplier:
        await self._ensure_unique_name(payload.name)
        supplier = Supplier(**payload.model_dump(), created_by=actor, updated_by=actor)
        self.db.add(supplier)
        await self.db.flush()
        self.audit.record(
            actor, AuditAction.CREATE, self.entity_type, supplier.id,
            f"Supplier '{supplier.name}' created", new_data=snapshot(supplier, SupplierResponse),
        )
        await self.db.commit()
        return supplier

    async def search(
        self,
        text: str | None = None,
        status: LifecycleStatus | None = None,
        category: str | None = None,
        page: int = 0,
        size: int = 20,
    ) -> PageResult:
        stmt = Supplier.visible().order_by(Supplier.name)
        if text:
            pattern = f"%{text}%"
            stmt = stmt.where(
                or_(
                    Supplier.name.ilike(pattern),
                    Supplier.contact_person_name.ilike(pattern),
                    Supplier.email.ilike(pattern),
                    Supplier.phone.ilike(pattern),
                )
            )
        if status is not None:
            stmt = stmt.where(Supplier.status == status)
        if category:
            stmt = stmt.where(Supplier.category == category)
        return await paginate(self.db, stmt, page, size)

    async def update(self, supplier_id: str, payload: SupplierUpdate, actor: str) -> Supplier:
        supplier = await self.get(supplier_id)
        before = snapshot(supplier, SupplierResponse)
        changes = payload.model_dump(exclude_unset=True)
        if "name" in changes and changes["name"] != supplier.name:
            await self._ensure_unique_name(changes["name"], exclude_id=supplier.id)
        for field, value in changes.items():
            setattr(supplier, field, value)
        supplier.updated_by = actor
        await self.db.flush()
        self.audit.record(
            actor, AuditAction.UPDATE, self.entity_type, supplier.id,
            f"Supplier '{supplier.name}' updated",
            old_data=before, new_data=snapshot(supplier, SupplierResponse),
        )
        await self.db.commit()
        return supplier

"""
Back Office — Shared get / status / archive logic for catalog entities
"""
import logging
from typing import Generic, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.exceptions import InvalidOperation, NotFound
from backoffice.models.audit import AuditAction
from backoffice.models.common import LifecycleStatus
from backoffice.services.audit_service import AuditService, snapshot

logger = logging.getLogger(__name__)

E = TypeVar("E")


class LifecycleService(Generic[E]):
    model: type
    entity_type: str
    schema: type

    def __init__(self, db: AsyncSession, audit: AuditService):
        self.db = db
        self.audit = audit

    async def get(self, entity_id: str) -> E:
        """Fetch by id, archived rows included."""
        entity = await self.db.get(self.model, entity_id)
        if entity is None:
            raise NotFound.entity(self.entity_type, entity_id)
        return entity

    def _touch(self, entity: E, actor: str) -> None:
        if hasattr(entity, "updated_by"):
            entity.updated_by = actor

    async def update_status(self, entity_id: str, status: LifecycleStatus, actor: str) -> E:
        if status == LifecycleStatus.ARCHIVED:
            raise InvalidOperation(f"Use DELETE to archive a {self.entity_type.lower()}.")
        entity = await self.get(entity_id)
        old = entity.status
        entity.status = status
        self._touch(entity, actor)
        self.audit.record(
            actor, AuditAction.UPDATE_STATUS, self.entity_type, entity.id,
            f"{self.entity_type} status changed from {old.value} to {status.value}",
            old_data={"status": old.value}, new_data={"status": status.value},
        )
        await self.db.commit()
        return entity

    async def archive(self, entity_id: str, actor: str) -> E:
        entity = await self.get(entity_id)
        if entity.is_archived:
            return entity
        before = snapshot(entity, self.schema)
        entity.status = LifecycleStatus.ARCHIVED
        self._touch(entity, actor)
        self.audit.record(
            actor, AuditAction.DELETE, self.entity_type, entity.id,
            f"{self.entity_type} archived", old_data=before,
        )
        await self.db.commit()
        logger.info("%s %s archived by %s", self.entity_type, entity.id, actor)
        return entity

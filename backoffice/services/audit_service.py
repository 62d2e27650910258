"""
Back Office — Audit trail writer and queries
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from fastapi.encoders import jsonable_encoder
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.db.pagination import PageResult, paginate
from backoffice.models.audit import AuditAction, AuditLog

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RequestMeta:
    ip_address: str | None = None
    user_agent: str | None = None


def snapshot(entity: Any, schema: type) -> dict[str, Any]:
    """JSON-safe copy of an entity, taken through its response schema."""
    return jsonable_encoder(schema.model_validate(entity))


class AuditService:
    """
    Entries are added to the caller's session and committed with the change
    they describe. Recording never raises: a broken audit entry is logged and
    dropped so the business operation still goes through.
    """

    def __init__(self, db: AsyncSession, meta: RequestMeta | None = None):
        self.db = db
        self.meta = meta or RequestMeta()

    def record(
        self,
        actor: str | None,
        action: AuditAction,
        entity_type: str,
        entity_id: str | None = None,
        description: str | None = None,
        old_data: dict[str, Any] | None = None,
        new_data: dict[str, Any] | None = None,
    ) -> None:
        try:
            self.db.add(
                AuditLog(
                    actor=actor or "system",
                    action=action,
                    entity_type=entity_type,
                    entity_id=entity_id,
                    description=description,
                    old_data=jsonable_encoder(old_data) if old_data is not None else None,
                    new_data=jsonable_encoder(new_data) if new_data is not None else None,
                    ip_address=self.meta.ip_address,
                    user_agent=(self.meta.user_agent or "")[:255] or None,
                )
            )
        except Exception:
            logger.exception(
                "Failed to record audit entry %s %s/%s by %s",
                action.value, entity_type, entity_id, actor,
            )

    async def list_entries(self, page: int, size: int) -> PageResult:
        stmt = select(AuditLog).order_by(AuditLog.timestamp.desc())
        return await paginate(self.db, stmt, page, size)

    async def by_actor(self, actor: str, page: int, size: int) -> PageResult:
        stmt = select(AuditLog).where(AuditLog.actor == actor).order_by(AuditLog.timestamp.desc())
        return await paginate(self.db, stmt, page, size)

    async def by_entity(self, entity_type: str, entity_id: str) -> list[AuditLog]:
        result = await self.db.execute(
            select(AuditLog)
            .where(AuditLog.entity_type == entity_type, AuditLog.entity_id == entity_id)
            .order_by(AuditLog.timestamp.asc())
        )
        return list(result.scalars().all())

    async def between(self, start: datetime, end: datetime) -> list[AuditLog]:
        result = await self.db.execute(
            select(AuditLog)
            .where(AuditLog.timestamp >= start, AuditLog.timestamp <= end)
            .order_by(AuditLog.timestamp.desc())
        )
        return list(result.scalars().all())

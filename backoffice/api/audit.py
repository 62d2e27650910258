"""
Back Office — Audit trail routes (administrators only)
"""
from datetime import datetime

from fastapi import APIRouter, Depends, Query

from backoffice.api.deps import get_audit, require_roles
from backoffice.core.exceptions import InvalidOperation
from backoffice.core.security import Identity
from backoffice.models.user import Role
from backoffice.schemas.audit import AuditLogResponse
from backoffice.schemas.common import Page
from backoffice.services.audit_service import AuditService

router = APIRouter(prefix="/api/audit", tags=["audit"], dependencies=[Depends(require_roles(Role.ADMIN))])


@router.get("", response_model=Page[AuditLogResponse])
async def list_audit_logs(
    page: int = Query(0, ge=0),
    size: int = Query(50, ge=1, le=500),
    audit: AuditService = Depends(get_audit),
):
    return await audit.list_entries(page, size)


@router.get("/user/{actor}", response_model=Page[AuditLogResponse])
async def audit_by_user(
    actor: str,
    page: int = Query(0, ge=0),
    size: int = Query(50, ge=1, le=500),
    audit: AuditService = Depends(get_audit),
):
    return await audit.by_actor(actor, page, size)


@router.get("/entity/{entity_type}/{entity_id}", response_model=list[AuditLogResponse])
async def audit_by_entity(entity_type: str, entity_id: str, audit: AuditService = Depends(get_audit)):
    return await audit.by_entity(entity_type, entity_id)


@router.get("/date-range", response_model=list[AuditLogResponse])
async def audit_by_date_range(start: datetime, end: datetime, audit: AuditService = Depends(get_audit)):
    if end < start:
        raise InvalidOperation("End must not be before start.")
    return await audit.between(start, end)

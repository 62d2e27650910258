"""
Back Office — Audit schemas
"""
from datetime import datetime
from typing import Any

from pydantic import BaseModel

from backoffice.models.audit import AuditAction


class AuditLogResponse(BaseModel):
    id: str
    actor: str
    action: AuditAction
    entity_type: str
    entity_id: str | None
    description: str | None
    old_data: dict[str, Any] | None
    new_data: dict[str, Any] | None
    ip_address: str | None
    user_agent: str | None
    timestamp: datetime

    model_config = {"from_attributes": True}

"""
Back Office — Shared column helpers and the catalog lifecycle state
"""
import uuid
from datetime import datetime, timezone
from enum import Enum as PyEnum

from sqlalchemy import DateTime, Enum, Select, String, select
from sqlalchemy.orm import Mapped, mapped_column


def utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


def as_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def new_id() -> str:
    return str(uuid.uuid4())


class LifecycleStatus(str, PyEnum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    ARCHIVED = "ARCHIVED"


class LifecycleMixin:
    """
    Soft delete as an explicit state. ACTIVE/INACTIVE is the user-facing
    status toggle; ARCHIVED replaces deletion. Listings must start from
    visible() so archived rows never leak into them.
    """

    status: Mapped[LifecycleStatus] = mapped_column(
        Enum(LifecycleStatus, name="lifecycle_status"),
        default=LifecycleStatus.ACTIVE,
        nullable=False,
        index=True,
    )

    @property
    def is_active(self) -> bool:
        return self.status == LifecycleStatus.ACTIVE

    @property
    def is_archived(self) -> bool:
        return self.status == LifecycleStatus.ARCHIVED

    @classmethod
    def visible(cls, stmt: Select | None = None) -> Select:
        stmt = stmt if stmt is not None else select(cls)
        return stmt.where(cls.status != LifecycleStatus.ARCHIVED)


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )


class AuthorshipMixin:
    created_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    updated_by: Mapped[str | None] = mapped_column(String(64), nullable=True)

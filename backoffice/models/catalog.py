"""
Back Office — Catalog reference data: categories and suppliers
"""
from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from backoffice.db.database import Base
from backoffice.models.common import AuthorshipMixin, LifecycleMixin, TimestampMixin, new_id


class Category(LifecycleMixin, TimestampMixin, Base):
    __tablename__ = "categories"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(100), unique=True, index=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)


class Supplier(LifecycleMixin, TimestampMixin, AuthorshipMixin, Base):
    __tablename__ = "suppliers"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(150), unique=True, index=True, nullable=False)
    contact_person_name: Mapped[str | None] = mapped_column(String(150), nullable=True)
    category: Mapped[str | None] = mapped_column(String(100), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(32), nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)

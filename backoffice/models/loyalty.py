"""
Back Office — Customer loyalty records
"""
from enum import Enum as PyEnum

from sqlalchemy import Enum, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from backoffice.db.database import Base
from backoffice.models.common import TimestampMixin, new_id


class LoyaltyTier(str, PyEnum):
    BRONZE = "BRONZE"
    SILVER = "SILVER"
    GOLD = "GOLD"


class UserLoyalty(TimestampMixin, Base):
    """
    One row per customer. `version` is the optimistic-lock counter: every
    write is an UPDATE ... WHERE version = <read version>.
    """

    __tablename__ = "user_loyalty"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    customer_username: Mapped[str] = mapped_column(String(64), unique=True, index=True, nullable=False)
    points: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    tier: Mapped[LoyaltyTier] = mapped_column(
        Enum(LoyaltyTier, name="loyalty_tier"), default=LoyaltyTier.BRONZE, nullable=False
    )
    version: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

"""
Back Office — Loyalty points and tiers

One point per 5 currency units spent; tiers are a fixed ascending table.
"""
import logging
import math
from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.optimistic_lock import StaleDataError, with_optimistic_retry
from backoffice.models.common import utcnow
from backoffice.models.loyalty import LoyaltyTier, UserLoyalty

logger = logging.getLogger(__name__)

POINTS_DIVISOR = Decimal("5")


@dataclass(frozen=True)
class TierInfo:
    tier: LoyaltyTier
    display_name: str
    min_points: int
    benefits: tuple[str, ...]


# Ascending by min_points.
TIERS: tuple[TierInfo, ...] = (
    TierInfo(LoyaltyTier.BRONZE, "Bronze", 0, (
        "1 point per 5€ spent",
        "Birthday offer",
    )),
    TierInfo(LoyaltyTier.SILVER, "Silver", 100, (
        "1 point per 5€ spent",
        "Birthday offer",
        "5% off selected products",
        "Free delivery from 50€",
    )),
    TierInfo(LoyaltyTier.GOLD, "Gold", 500, (
        "1 point per 5€ spent",
        "Birthday offer",
        "10% off selected products",
        "Free delivery on every order",
        "Early access to promotions",
    )),
)
TIER_INFO = {info.tier: info for info in TIERS}


def points_for(amount: Decimal) -> int:
    if amount <= 0:
        return 0
    return math.floor(Decimal(amount) / POINTS_DIVISOR)


def tier_for(points: int) -> LoyaltyTier:
    current = TIERS[0]
    for info in TIERS:
        if points >= info.min_points:
            current = info
    return current.tier


def next_tier(tier: LoyaltyTier) -> TierInfo | None:
    index = TIERS.index(TIER_INFO[tier])
    return TIERS[index + 1] if index + 1 < len(TIERS) else None


def tier_progress(points: int) -> float:
    """Percent of the way to the next tier's threshold; 100 at the top tier."""
    upcoming = next_tier(tier_for(points))
    if upcoming is None:
        return 100.0
    return min(100.0, round(points / upcoming.min_points * 100, 2))


@dataclass(frozen=True)
class LoyaltyProgram:
    customer_username: str
    level: LoyaltyTier
    level_display_name: str
    points: int
    next_level_points: int | None
    benefits: list[str]
    progress: float


class LoyaltyService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _find(self, customer_username: str) -> UserLoyalty | None:
        result = await self.db.execute(
            select(UserLoyalty).where(UserLoyalty.customer_username == customer_username)
        )
        return result.scalar_one_or_none()

    async def _load_or_create(self, customer_username: str) -> UserLoyalty:
        record = await self._find(customer_username)
        if record is not None:
            return record
        record = UserLoyalty(customer_username=customer_username, points=0, tier=LoyaltyTier.BRONZE, version=0)
        self.db.add(record)
        try:
            await self.db.flush()
        except IntegrityError:
            # Someone else created the row first; retry against theirs.
            await self.db.rollback()
            raise StaleDataError(f"Loyalty record for {customer_username} created concurrently.")
        return record

    @with_optimistic_retry()
    async def accrue(self, customer_username: str, amount: Decimal) -> UserLoyalty | None:
        earned = points_for(amount)
        if earned == 0:
            logger.debug("No loyalty points for %s on amount %s", customer_username, amount)
            return None

        record = await self._load_or_create(customer_username)
        expected_version = record.version
        new_points = record.points + earned
        result = await self.db.execute(
            update(UserLoyalty)
            .where(UserLoyalty.id == record.id, UserLoyalty.version == expected_version)
            .values(
                points=new_points,
                tier=tier_for(new_points),
                version=expected_version + 1,
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await self.db.rollback()
            raise StaleDataError("Optimistic lock conflict: loyalty version changed concurrently.")

        await self.db.commit()
        await self.db.refresh(record)
        logger.info(
            "Loyalty: %s earned %d point(s), now %d (%s)",
            customer_username, earned, record.points, record.tier.value,
        )
        return record

    async def get_program(self, customer_username: str) -> LoyaltyProgram:
        record = await self._find(customer_username)
        points = record.points if record else 0
        info = TIER_INFO[tier_for(points)]
        upcoming = next_tier(info.tier)
        return LoyaltyProgram(
            customer_username=customer_username,
            level=info.tier,
            level_display_name=info.display_name,
            points=points,
            next_level_points=upcoming.min_points if upcoming else None,
            benefits=list(info.benefits),
            progress=tier_progress(points),
        )

"""
Back Office — Loyalty schemas
"""
from pydantic import BaseModel

from backoffice.models.loyalty import LoyaltyTier


class LoyaltyProgramResponse(BaseModel):
    customer_username: str
    level: LoyaltyTier
    level_display_name: str
    points: int
    next_level_points: int | None
    benefits: list[str]
    progress: float

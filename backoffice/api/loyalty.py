"""
Back Office — Loyalty program routes
"""
from fastapi import APIRouter, Depends

from backoffice.api.deps import ANY_ROLE, STAFF, get_loyalty_service, require_roles
from backoffice.core.security import Identity
from backoffice.schemas.loyalty import LoyaltyProgramResponse
from backoffice.services.loyalty_service import LoyaltyService

router = APIRouter(prefix="/api/loyalty", tags=["loyalty"])


@router.get("/my-program", response_model=LoyaltyProgramResponse)
async def my_program(
    identity: Identity = Depends(require_roles(*ANY_ROLE)),
    loyalty: LoyaltyService = Depends(get_loyalty_service),
):
    return await loyalty.get_program(identity.username)


@router.get("/{customer_username}", response_model=LoyaltyProgramResponse)
async def customer_program(
    customer_username: str,
    identity: Identity = Depends(require_roles(*STAFF)),
    loyalty: LoyaltyService = Depends(get_loyalty_service),
):
    return await loyalty.get_program(customer_username)

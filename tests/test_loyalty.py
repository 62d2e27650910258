"""
Back Office loyalty tests

Tests:
  1. Points and tier rules
  2. Accrual through LoyaltyService (create, accumulate, promote)
  3. Optimistic-lock retry decorator
  4. Loyalty API
"""
from decimal import Decimal

import pytest

from backoffice.core.optimistic_lock import StaleDataError, with_optimistic_retry
from backoffice.models.loyalty import LoyaltyTier
from backoffice.services.loyalty_service import (
    LoyaltyService,
    next_tier,
    points_for,
    tier_for,
    tier_progress,
)


# ─── Rules ─────────────────────────────────────────────────────────────────────
@pytest.mark.parametrize(
    "amount, points",
    [("37.00", 7), ("4.99", 0), ("5.00", 1), ("0", 0), ("-10", 0), ("500.00", 100)],
)
def test_points_are_one_per_five_units(amount, points):
    assert points_for(Decimal(amount)) == points


@pytest.mark.parametrize(
    "points, tier",
    [(0, LoyaltyTier.BRONZE), (99, LoyaltyTier.BRONZE), (100, LoyaltyTier.SILVER),
     (499, LoyaltyTier.SILVER), (500, LoyaltyTier.GOLD), (10_000, LoyaltyTier.GOLD)],
)
def test_tier_thresholds(points, tier):
    assert tier_for(points) == tier


def test_progress_towards_next_tier():
    assert tier_progress(0) == 0.0
    assert tier_progress(50) == 50.0
    assert tier_progress(250) == 50.0
    assert tier_progress(600) == 100.0
    assert next_tier(LoyaltyTier.GOLD) is None


# ─── Service ───────────────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_first_accrual_creates_bronze_record(db):
    record = await LoyaltyService(db).accrue("alice", Decimal("37.00"))
    assert record.points == 7
    assert record.tier == LoyaltyTier.BRONZE
    assert record.version == 1


@pytest.mark.asyncio
async def test_accruals_accumulate_and_promote(db):
    service = LoyaltyService(db)
    await service.accrue("alice", Decimal("400.00"))
    record = await service.accrue("alice", Decimal("100.00"))
    assert record.points == 100
    assert record.tier == LoyaltyTier.SILVER
    assert record.version == 2


@pytest.mark.asyncio
async def test_zero_point_purchase_writes_nothing(db):
    service = LoyaltyService(db)
    assert await service.accrue("alice", Decimal("4.99")) is None
    program = await service.get_program("alice")
    assert program.points == 0
    assert program.level == LoyaltyTier.BRONZE


@pytest.mark.asyncio
async def test_program_for_unknown_customer_is_empty_bronze(db):
    program = await LoyaltyService(db).get_program("nobody")
    assert program.points == 0
    assert program.level_display_name == "Bronze"
    assert program.next_level_points == 100
    assert program.progress == 0.0
    assert program.benefits


# ─── Optimistic retry ──────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_retry_recovers_from_transient_conflicts():
    calls = []

    @with_optimistic_retry(max_retries=3)
    async def write():
        calls.append(1)
        if len(calls) < 3:
            raise StaleDataError("conflict")
        return "ok"

    assert await write() == "ok"
    assert len(calls) == 3


@pytest.mark.asyncio
async def test_retry_gives_up_after_max_attempts():
    calls = []

    @with_optimistic_retry(max_retries=2)
    async def write():
        calls.append(1)
        raise StaleDataError("conflict")

    with pytest.raises(StaleDataError):
        await write()
    assert len(calls) == 2


# ─── API ───────────────────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_my_program_endpoint(client, db, customer_headers):
    await LoyaltyService(db).accrue("alice", Decimal("600.00"))
    r = await client.get("/api/loyalty/my-program", headers=customer_headers)
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["customer_username"] == "alice"
    assert body["points"] == 120
    assert body["level"] == "SILVER"
    assert body["next_level_points"] == 500


@pytest.mark.asyncio
async def test_customer_cannot_read_other_programs(client, customer_headers):
    r = await client.get("/api/loyalty/bob", headers=customer_headers)
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_staff_can_read_any_program(client, employee_headers):
    r = await client.get("/api/loyalty/bob", headers=employee_headers)
    assert r.status_code == 200
    assert r.json()["customer_username"] == "bob"

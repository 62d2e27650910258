"""
Back Office — What happens when an order reaches COMPLETED

The order service hands an OrderCompleted message to OrderCompletedPipeline,
which runs the side effects in a fixed order:

  1. stock adjustment, inside the request's transaction (strict mode can
     abort the completion);
  2. loyalty accrual, handed to `schedule` (FastAPI BackgroundTasks in the
     HTTP layer) and run after the response with its own session.

The two writes are independent; a crash between them leaves stock adjusted
without points.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Callable

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from backoffice.models.order import Order
from backoffice.services.loyalty_service import LoyaltyService
from backoffice.services.stock_service import LENIENT, adjust_stock_for_order

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OrderCompleted:
    order_id: str
    order_number: str
    customer_username: str
    amount: Decimal
    lines: tuple[tuple[str, int], ...]  # (product_id, quantity)

    @classmethod
    def from_order(cls, order: Order) -> "OrderCompleted":
        return cls(
            order_id=order.id,
            order_number=order.order_number,
            customer_username=order.customer_username,
            amount=order.total,
            lines=tuple((item["product_id"], int(item["quantity"])) for item in order.items),
        )


async def accrue_loyalty_points(session_factory: async_sessionmaker[AsyncSession], event: OrderCompleted) -> None:
    """Background step: credit the customer; failures are logged, not raised."""
    try:
        async with session_factory() as db:
            await LoyaltyService(db).accrue(event.customer_username, event.amount)
    except Exception:
        logger.exception(
            "Loyalty accrual failed for order %s (customer %s)",
            event.order_number, event.customer_username,
        )


class OrderCompletedPipeline:
    def __init__(
        self,
        db: AsyncSession,
        actor: str,
        schedule: Callable[..., Any],
        session_factory: async_sessionmaker[AsyncSession],
        stock_mode: str = LENIENT,
    ):
        self.db = db
        self.actor = actor
        self.schedule = schedule
        self.session_factory = session_factory
        self.stock_mode = stock_mode

    async def __call__(self, event: OrderCompleted) -> None:
        await adjust_stock_for_order(
            self.db, event.order_number, list(event.lines), self.actor, self.stock_mode
        )
        self.schedule(accrue_loyalty_points, self.session_factory, event)
        logger.info("Order %s: loyalty accrual scheduled for %s", event.order_number, event.customer_username)

"""
Back Office — Stock movements and the order-completion stock adjustment
"""
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.core.exceptions import NotFound
from backoffice.models.inventory import MovementReason, Product, StockMovement

logger = logging.getLogger(__name__)

LENIENT = "lenient"
STRICT = "strict"


def apply_stock_change(
    db: AsyncSession,
    product: Product,
    new_quantity: int,
    reason: MovementReason,
    actor: str | None,
    reference_id: str | None = None,
) -> StockMovement:
    """Set a product's stock and append the matching movement to the ledger."""
    movement = StockMovement(
        product_id=product.id,
        quantity_delta=new_quantity - product.stock_quantity,
        stock_after=new_quantity,
        reason=reason,
        reference_id=reference_id,
        actor=actor,
    )
    product.stock_quantity = new_quantity
    product.updated_by = actor
    db.add(movement)
    return movement


async def adjust_stock_for_order(
    db: AsyncSession,
    order_number: str,
    lines: list[tuple[str, int]],
    actor: str | None,
    mode: str = LENIENT,
) -> list[StockMovement]:
    """
    Decrement stock for each (product_id, quantity) of a completed order.

    lenient: unknown products are skipped and any failure is logged, never raised.
    strict:  an unknown product raises NotFound before anything is changed.
    Runs inside the caller's transaction; nothing is committed here.
    """
    if mode == STRICT:
        return await _adjust(db, order_number, lines, actor, strict=True)
    try:
        return await _adjust(db, order_number, lines, actor, strict=False)
    except Exception:
        logger.exception("Stock adjustment failed for order %s", order_number)
        return []


async def _adjust(
    db: AsyncSession,
    order_number: str,
    lines: list[tuple[str, int]],
    actor: str | None,
    strict: bool,
) -> list[StockMovement]:
    products: dict[str, Product] = {}
    for product_id, _ in lines:
        product = await db.get(Product, product_id)
        if product is None:
            if strict:
                raise NotFound.entity("Product", product_id)
            logger.info("Order %s: product %s no longer exists, stock not adjusted", order_number, product_id)
            continue
        products[product_id] = product

    movements = []
    for product_id, quantity in lines:
        product = products.get(product_id)
        if product is None:
            continue
        remaining = product.stock_quantity - quantity
        if remaining < 0:
            logger.warning(
                "Order %s: stock for %s would go negative (%d), clamping to 0",
                order_number, product.sku, remaining,
            )
            remaining = 0
        movements.append(
            apply_stock_change(db, product, remaining, MovementReason.ORDER, actor, order_number)
        )
    logger.info("Order %s: stock adjusted for %d product(s)", order_number, len(movements))
    return movements

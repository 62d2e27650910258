"""
Back Office — Money arithmetic shared by orders and sales

Every computed amount is truncated (ROUND_DOWN) to cents.
"""
from dataclasses import dataclass
from decimal import ROUND_DOWN, Decimal

from backoffice.core.config import Settings

CENT = Decimal("0.01")


def round_down(amount: Decimal) -> Decimal:
    return Decimal(amount).quantize(CENT, rounding=ROUND_DOWN)


@dataclass(frozen=True)
class OrderTotals:
    subtotal: Decimal
    tax: Decimal
    shipping: Decimal
    total: Decimal


def order_totals(subtotal: Decimal, settings: Settings) -> OrderTotals:
    subtotal = round_down(subtotal)
    tax = round_down(subtotal * settings.VAT_RATE)
    shipping = Decimal("0.00") if subtotal >= settings.FREE_SHIPPING_THRESHOLD else round_down(settings.SHIPPING_FEE)
    return OrderTotals(subtotal=subtotal, tax=tax, shipping=shipping, total=subtotal + tax + shipping)

"""Monetary helpers shared by the cart, coupon, and order packages.

Amounts are stored as floats on aggregates; every computed amount passes
through :func:`round_money` so that totals are always whole cents.
"""

from decimal import ROUND_HALF_UP, Decimal

CENT = Decimal("0.01")


def round_money(amount: float | int | None) -> float:
    """Round to two decimal places using half-up rounding on cents."""
    if amount is None:
        return 0.0
    return float(Decimal(str(amount)).quantize(CENT, rounding=ROUND_HALF_UP))


def effective_price(price: float, sale_price: float | None) -> float:
    """Sale price if one is set, else the list price."""
    if sale_price:
        return round_money(sale_price)
    return round_money(price)

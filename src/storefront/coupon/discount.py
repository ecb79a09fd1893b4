"""Coupon discount arithmetic.

Kept free of aggregates and side effects: the cart uses it to cache a display
discount and the checkout uses it to price the order, and both must agree.
"""

from enum import Enum

from storefront.shared.money import round_money


class CouponType(Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


def calculate_discount(coupon_type, value, max_discount, order_amount):
    """Discount for ``order_amount``, capped by ``max_discount`` and by the amount itself."""
    order_amount = order_amount or 0.0

    if CouponType(coupon_type) == CouponType.PERCENTAGE:
        discount = order_amount * value / 100
    else:
        discount = value

    # A zero cap counts as "no cap"
    if max_discount and discount > max_discount:
        discount = max_discount

    if discount > order_amount:
        discount = order_amount

    return round_money(discount)

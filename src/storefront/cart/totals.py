"""Cart totals, derived from the cart's lines on every read."""

from storefront.shared.money import round_money


def subtotal(items) -> float:
    return round_money(sum(item.price * item.quantity for item in items))


def total_items(items) -> int:
    return sum(item.quantity for item in items)


def shipping_cost(shipping_method) -> float:
    if shipping_method is None:
        return 0.0
    return round_money(shipping_method.price or 0.0)


def total(items, shipping_method, coupon_discount) -> float:
    """Subtotal plus shipping minus the cached coupon discount. May be negative."""
    return round_money(subtotal(items) + shipping_cost(shipping_method) - (coupon_discount or 0.0))

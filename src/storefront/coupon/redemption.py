"""Coupon resolution shared by cart coupon application and order placement."""

from protean.utils.globals import current_domain

from storefront.coupon.coupon import Coupon
from storefront.errors import InvalidCoupon, NotFound
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def resolve_coupon(code, user_id, order_amount) -> Coupon:
    """Look up ``code`` and validate it for ``user_id`` at ``order_amount``.

    Every failure, including an unknown code, surfaces as InvalidCoupon
    carrying the coupon engine's reason.
    """
    try:
        coupon = current_domain.repository_for(Coupon).find_valid_coupon(code)
    except NotFound:
        logger.info("coupon_rejected", code=code, user_id=str(user_id), reason="not_found")
        raise InvalidCoupon({"coupon_code": ["Coupon not found"]}) from None

    check = coupon.validate_for_order(user_id, order_amount)
    if not check.valid:
        logger.info("coupon_rejected", code=coupon.code, user_id=str(user_id), reason=check.message)
        raise InvalidCoupon({"coupon_code": [check.message]})

    return coupon

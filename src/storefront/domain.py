"""Storefront bounded context — catalog, reviews, coupons, carts, and orders.

Handles product stock and ratings, customer reviews, coupon validation and
redemption, the per-user shopping cart, and the checkout pipeline that turns a
cart into an immutable order with a status timeline.
"""

import logging

from protean.domain import Domain

from storefront.utils.logging import configure_logging, get_logger

configure_logging()

# Suppress noisy library loggers
logging.getLogger("protean").setLevel(logging.WARNING)

logger = get_logger(__name__)

storefront = Domain(name="storefront")

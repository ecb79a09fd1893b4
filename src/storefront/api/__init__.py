"""Storefront API package."""

from storefront.api.routes import (
    cart_router,
    catalog_router,
    coupon_router,
    order_router,
    payment_router,
    product_router,
    review_router,
)

__all__ = [
    "cart_router",
    "order_router",
    "payment_router",
    "catalog_router",
    "product_router",
    "review_router",
    "coupon_router",
]

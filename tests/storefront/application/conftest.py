import json

import pytest
from protean import current_domain


@pytest.fixture()
def checkout(address):
    """Add ``lines`` of (product, quantity) to ``user_id``'s cart and place the order."""
    from storefront.cart.items import AddToCart
    from storefront.order.placement import PlaceOrder

    def _checkout(user_id, lines, coupon_code=None, payment_method="stripe"):
        for product, quantity in lines:
            current_domain.process(
                AddToCart(user_id=user_id, product_id=product.id, quantity=quantity),
                asynchronous=False,
            )
        return current_domain.process(
            PlaceOrder(
                user_id=user_id,
                shipping_address=json.dumps(address),
                payment_method=payment_method,
                coupon_code=coupon_code,
            ),
            asynchronous=False,
        )

    return _checkout

"""Cart coupon management — commands and handler."""

from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from storefront.cart.cart import ShoppingCart
from storefront.coupon.redemption import resolve_coupon
from storefront.domain import storefront
from storefront.errors import EmptyCart, NotFound
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


@storefront.command(part_of="ShoppingCart")
class ApplyCouponToCart:
    """Validate a coupon code against the cart subtotal and attach it."""

    user_id = Identifier(required=True)
    coupon_code = String(required=True, max_length=50)


@storefront.command(part_of="ShoppingCart")
class RemoveCouponFromCart:
    user_id = Identifier(required=True)


@storefront.command_handler(part_of=ShoppingCart)
class CartCouponHandler:
    @handle(ApplyCouponToCart)
    def apply_coupon(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.for_user(command.user_id)
        if cart is None or not cart.items:
            raise EmptyCart({"cart": ["Cart is empty"]})

        coupon = resolve_coupon(command.coupon_code, command.user_id, cart.subtotal)
        cart.apply_coupon(coupon)
        repo.add(cart)

        logger.info("coupon_applied", user_id=str(command.user_id), code=coupon.code, discount=cart.coupon_discount)
        return cart

    @handle(RemoveCouponFromCart)
    def remove_coupon(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.for_user(command.user_id)
        if cart is None:
            raise NotFound({"cart": ["Cart not found"]})

        cart.remove_coupon()
        repo.add(cart)
        return cart

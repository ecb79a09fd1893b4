"""Order cancellation — command, handler, and the reversal of placement side effects."""

from protean import handle
from protean.fields import Boolean, Identifier
from protean.utils.globals import current_domain

from storefront.coupon.coupon import Coupon
from storefront.domain import storefront
from storefront.errors import NotFound, Unauthorized
from storefront.order.order import Order
from storefront.product.product import Product
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


@storefront.command(part_of="Order")
class CancelOrder:
    order_id = Identifier(required=True)
    requested_by = Identifier(required=True)
    is_admin = Boolean(default=False)


def load_order(order_id) -> Order:
    order = current_domain.repository_for(Order).get_or_none(order_id)
    if order is None:
        raise NotFound({"order_id": ["Order not found"]})
    return order


def cancel_and_reverse(order, message=None):
    """Cancel ``order`` and hand back its stock and coupon redemption."""
    order.cancel(message=message)
    current_domain.repository_for(Order).add(order)

    product_repo = current_domain.repository_for(Product)
    for item in order.items:
        if product_repo.get_or_none(item.product_id) is None:
            logger.warning("stock_restore_skipped", order_number=order.order_number, product_id=str(item.product_id))
            continue
        product_repo.restore_stock(item.product_id, item.quantity)

    if order.coupon_id:
        coupon_repo = current_domain.repository_for(Coupon)
        coupon = coupon_repo.get_or_none(order.coupon_id)
        if coupon is not None:
            coupon.release_usage(order.user_id, order_number=order.order_number)
            coupon_repo.add(coupon)

    logger.info("order_cancelled", order_number=order.order_number, user_id=str(order.user_id))


@storefront.command_handler(part_of=Order)
class CancelOrderHandler:
    @handle(CancelOrder)
    def cancel_order(self, command):
        order = load_order(command.order_id)
        if not command.is_admin and not order.belongs_to(command.requested_by):
            raise Unauthorized({"order_id": ["Not authorized to cancel this order"]})

        cancel_and_reverse(order)
        return order

"""Order status administration — commands and handler."""

from protean import handle
from protean.fields import Boolean, Identifier, String
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.errors import Unauthorized
from storefront.order.cancellation import cancel_and_reverse, load_order
from storefront.order.order import Order, OrderStatus
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


@storefront.command(part_of="Order")
class UpdateOrderStatus:
    order_id = Identifier(required=True)
    status = String(required=True, choices=OrderStatus)
    tracking_number = String(min_length=3, max_length=100)
    message = String(max_length=500)
    is_admin = Boolean(default=False)


@storefront.command(part_of="Order")
class AddTracking:
    order_id = Identifier(required=True)
    tracking_number = String(required=True, min_length=3, max_length=100)
    carrier = String(required=True, max_length=100)
    is_admin = Boolean(default=False)


def _require_admin(command):
    if not command.is_admin:
        raise Unauthorized({"role": ["Admin access required"]})


@storefront.command_handler(part_of=Order)
class OrderStatusHandler:
    @handle(UpdateOrderStatus)
    def update_status(self, command):
        _require_admin(command)
        order = load_order(command.order_id)

        if command.status == OrderStatus.CANCELLED.value:
            cancel_and_reverse(order, message=command.message)
            return order

        previous = order.status
        order.update_status(command.status, tracking_number=command.tracking_number, message=command.message)
        current_domain.repository_for(Order).add(order)

        logger.info("order_status_updated", order_number=order.order_number, previous=previous, status=order.status)
        return order

    @handle(AddTracking)
    def add_tracking(self, command):
        _require_admin(command)
        order = load_order(command.order_id)
        order.add_tracking(command.tracking_number, command.carrier)
        current_domain.repository_for(Order).add(order)
        return order

"""Payment confirmation and refunds, backed by the payment gateway port."""

from enum import Enum

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Boolean, Float, Identifier, String
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.errors import NotFound, Unauthorized
from storefront.order.cancellation import load_order
from storefront.order.order import Order
from storefront.payment.gateway import get_gateway
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class RefundReason(Enum):
    DUPLICATE = "duplicate"
    FRAUDULENT = "fraudulent"
    REQUESTED_BY_CUSTOMER = "requested_by_customer"


@storefront.command(part_of="Order")
class ConfirmPayment:
    """Record the provider's result for a transaction the customer completed."""

    order_id = Identifier(required=True)
    transaction_id = String(required=True, max_length=255)
    requested_by = Identifier(required=True)


@storefront.command(part_of="Order")
class RefundOrder:
    order_id = Identifier(required=True)
    amount = Float(min_value=0.01)  # Defaults to the grand total
    reason = String(choices=RefundReason, default=RefundReason.REQUESTED_BY_CUSTOMER.value)
    is_admin = Boolean(default=False)


@storefront.command_handler(part_of=Order)
class OrderPaymentHandler:
    @handle(ConfirmPayment)
    def confirm_payment(self, command):
        lookup = get_gateway().retrieve_payment(command.transaction_id)
        if not lookup.found:
            raise NotFound({"transaction_id": ["Payment not found"]})
        if lookup.user_id != str(command.requested_by):
            raise Unauthorized({"transaction_id": ["Not authorized to confirm this payment"]})

        order = load_order(command.order_id)
        if not order.belongs_to(command.requested_by):
            raise Unauthorized({"order_id": ["Not authorized to pay for this order"]})

        order.record_payment(lookup.transaction_id, lookup.status)
        current_domain.repository_for(Order).add(order)

        logger.info("payment_confirmed", order_number=order.order_number, payment_status=lookup.status)
        return {"status": lookup.status, "amount": lookup.amount, "currency": lookup.currency}

    @handle(RefundOrder)
    def refund_order(self, command):
        if not command.is_admin:
            raise Unauthorized({"role": ["Admin access required"]})

        order = load_order(command.order_id)
        if not order.payment or not order.payment.transaction_id:
            raise ValidationError({"payment": ["Order has no payment transaction"]})
        if not order.can_transition_to("refunded"):
            raise ValidationError({"status": [f"Cannot refund an order that is {order.status}"]})

        amount = command.amount or order.totals.grand_total
        result = get_gateway().create_refund(order.payment.transaction_id, amount, command.reason)
        if not result.success:
            logger.warning("refund_declined", order_number=order.order_number, reason=result.failure_reason)
            raise ValidationError({"refund": [result.failure_reason or "Refund failed"]})

        order.refund(result.refund_id, amount)
        current_domain.repository_for(Order).add(order)

        logger.info("order_refunded", order_number=order.order_number, refund_id=result.refund_id, amount=amount)
        return {"refund_id": result.refund_id, "status": result.status, "amount": amount}

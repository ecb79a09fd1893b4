"""Order aggregate (CQRS) — an immutable snapshot of a checked-out cart.

Line items, addresses, and totals are copied at placement and never recomputed
from the catalog again. After placement only the status, the payment record,
the tracking details, and the append-only timeline change.

State Machine:
    PENDING → PROCESSING → SHIPPED → DELIVERED
    PENDING/PROCESSING → CANCELLED → REFUNDED
    PROCESSING/DELIVERED → REFUNDED

Orders are never deleted. Cancellation keeps the order and its timeline; the
stock and coupon side effects are reversed by the cancellation handler.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.fields import (
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)

from storefront.domain import storefront
from storefront.errors import InvalidTransition
from storefront.order.events import (
    OrderCancelled,
    OrderPlaced,
    OrderRefunded,
    OrderStatusChanged,
    PaymentConfirmed,
    TrackingAdded,
)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class PaymentProvider(Enum):
    STRIPE = "stripe"
    PAYPAL = "paypal"
    CASH_ON_DELIVERY = "cash_on_delivery"


class PaymentStatus(Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    REFUNDED = "refunded"


ORDER_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.PROCESSING, OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.CANCELLED, OrderStatus.REFUNDED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: {OrderStatus.REFUNDED},
    OrderStatus.CANCELLED: {OrderStatus.REFUNDED},
    OrderStatus.REFUNDED: set(),  # Terminal
}

CANCELLABLE_STATES = {OrderStatus.PENDING, OrderStatus.PROCESSING}


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@storefront.value_object(part_of="Order")
class Address:
    """A shipping or billing address as entered at checkout."""

    first_name = String(required=True, max_length=100)
    last_name = String(required=True, max_length=100)
    address = String(required=True, max_length=255)
    city = String(required=True, max_length=100)
    state = String(required=True, max_length=100)
    zip_code = String(required=True, max_length=20)
    country = String(required=True, max_length=100)
    phone = String(required=True, max_length=30)


@storefront.value_object(part_of="Order")
class Payment:
    provider = String(required=True, choices=PaymentProvider)
    status = String(default=PaymentStatus.PENDING.value, max_length=30)
    amount = Float(required=True, min_value=0.0)
    currency = String(default="USD", max_length=3)
    transaction_id = String(max_length=255)
    refund_id = String(max_length=255)


@storefront.value_object(part_of="Order")
class OrderTotals:
    subtotal = Float(required=True, min_value=0.0)
    shipping = Float(default=0.0, min_value=0.0)
    tax = Float(default=0.0, min_value=0.0)
    discount = Float(default=0.0, min_value=0.0)
    grand_total = Float(required=True)


@storefront.value_object(part_of="Order")
class ShippingDetails:
    """The cart's shipping method at checkout, later extended with tracking info."""

    name = String(max_length=100)
    price = Float(default=0.0)
    estimated_days = String(max_length=100)
    tracking_number = String(max_length=100)
    carrier = String(max_length=100)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@storefront.entity(part_of="Order")
class OrderItem:
    product_id = Identifier(required=True)
    name = String(required=True, max_length=100)
    image = String(max_length=500)
    price = Float(required=True, min_value=0.0)
    quantity = Integer(required=True, min_value=1)
    variant_key = String(max_length=100)

    @property
    def line_total(self):
        return self.price * self.quantity


@storefront.entity(part_of="Order")
class TimelineEntry:
    status = String(required=True, max_length=20)
    message = String(required=True, max_length=500)
    timestamp = DateTime(required=True)
    position = Integer(required=True, min_value=0)


# ---------------------------------------------------------------------------
# Aggregate
# ---------------------------------------------------------------------------
@storefront.aggregate
class Order:
    order_number = String(required=True, max_length=20, unique=True)
    user_id = Identifier(required=True)
    items = HasMany(OrderItem)
    shipping_address = ValueObject(Address)
    billing_address = ValueObject(Address)
    payment = ValueObject(Payment)
    totals = ValueObject(OrderTotals)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    shipping = ValueObject(ShippingDetails)
    coupon_id = Identifier()
    coupon_code = String(max_length=50)
    notes = Text()
    timeline = HasMany(TimelineEntry)
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        order_number,
        user_id,
        items,
        shipping_address,
        totals,
        payment_provider,
        currency,
        billing_address=None,
        shipping=None,
        coupon=None,
        notes=None,
    ):
        """Create a pending order from already validated, priced line snapshots.

        ``items`` is a list of dicts with product_id, name, image, price,
        quantity, and variant_key.
        """
        now = datetime.now(UTC)
        order = cls(
            order_number=order_number,
            user_id=str(user_id),
            shipping_address=shipping_address,
            billing_address=billing_address or shipping_address,
            payment=Payment(
                provider=PaymentProvider(payment_provider).value,
                status=PaymentStatus.PENDING.value,
                amount=totals.grand_total,
                currency=currency,
            ),
            totals=totals,
            status=OrderStatus.PENDING.value,
            shipping=shipping or ShippingDetails(),
            coupon_id=str(coupon.id) if coupon else None,
            coupon_code=coupon.code if coupon else None,
            notes=notes,
            created_at=now,
            updated_at=now,
        )
        for item in items:
            order.add_items(OrderItem(**item))
        order._record(OrderStatus.PENDING, "Order created", now)

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                order_number=order.order_number,
                user_id=str(order.user_id),
                item_count=sum(item["quantity"] for item in items),
                grand_total=totals.grand_total,
                coupon_code=order.coupon_code,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def belongs_to(self, user_id):
        return str(self.user_id) == str(user_id)

    def can_transition_to(self, new_status):
        return OrderStatus(new_status) in ORDER_TRANSITIONS[OrderStatus(self.status)]

    def sorted_timeline(self):
        return sorted(self.timeline, key=lambda entry: entry.position)

    # -------------------------------------------------------------------
    # Status changes
    # -------------------------------------------------------------------
    def update_status(self, new_status, tracking_number=None, message=None):
        """Move to ``new_status`` and append a timeline entry.

        Cancellation is routed through :meth:`cancel` by the caller so that its
        side effects are reversed as well.
        """
        target = OrderStatus(new_status)
        self._ensure_transition(target)

        previous = self.status
        self.status = target.value
        if tracking_number:
            self.shipping = self._shipping_with(tracking_number=tracking_number)

        now = datetime.now(UTC)
        self.updated_at = now
        self._record(target, message or f"Order status updated to {target.value}", now)

        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                order_number=self.order_number,
                previous_status=previous,
                new_status=target.value,
                changed_at=now,
            )
        )

    def cancel(self, message=None):
        if OrderStatus(self.status) not in CANCELLABLE_STATES:
            raise InvalidTransition({"status": ["Order cannot be cancelled at this stage"]})

        now = datetime.now(UTC)
        self.status = OrderStatus.CANCELLED.value
        self.updated_at = now
        self._record(OrderStatus.CANCELLED, message or "Order cancelled by user", now)

        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                order_number=self.order_number,
                user_id=str(self.user_id),
                coupon_code=self.coupon_code,
                cancelled_at=now,
            )
        )

    def add_tracking(self, tracking_number, carrier):
        """Record tracking details. A pending or processing order moves to shipped."""
        current = OrderStatus(self.status)
        if current != OrderStatus.SHIPPED:
            self._ensure_transition(OrderStatus.SHIPPED)

        now = datetime.now(UTC)
        self.status = OrderStatus.SHIPPED.value
        self.shipping = self._shipping_with(tracking_number=tracking_number, carrier=carrier)
        self.updated_at = now
        self._record(OrderStatus.SHIPPED, f"Tracking number added: {tracking_number} ({carrier})", now)

        self.raise_(
            TrackingAdded(
                order_id=str(self.id),
                order_number=self.order_number,
                tracking_number=tracking_number,
                carrier=carrier,
            )
        )

    # -------------------------------------------------------------------
    # Payment
    # -------------------------------------------------------------------
    def record_payment(self, transaction_id, payment_status):
        """Store the provider's verdict. A succeeded payment starts processing a pending order."""
        self.payment = self._payment_with(transaction_id=transaction_id, status=payment_status)
        now = datetime.now(UTC)
        self.updated_at = now

        succeeded = payment_status == PaymentStatus.SUCCEEDED.value
        if succeeded and OrderStatus(self.status) == OrderStatus.PENDING:
            self.status = OrderStatus.PROCESSING.value
            self._record(OrderStatus.PROCESSING, "Payment confirmed", now)

        self.raise_(
            PaymentConfirmed(
                order_id=str(self.id),
                order_number=self.order_number,
                transaction_id=transaction_id,
                payment_status=payment_status,
            )
        )

    def refund(self, refund_id, amount):
        self._ensure_transition(OrderStatus.REFUNDED)

        now = datetime.now(UTC)
        self.payment = self._payment_with(refund_id=refund_id, status=PaymentStatus.REFUNDED.value)
        self.status = OrderStatus.REFUNDED.value
        self.updated_at = now
        self._record(OrderStatus.REFUNDED, "Payment refunded", now)

        self.raise_(
            OrderRefunded(
                order_id=str(self.id),
                order_number=self.order_number,
                refund_id=refund_id,
                amount=amount,
            )
        )

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    def _ensure_transition(self, target):
        if not self.can_transition_to(target):
            raise InvalidTransition({"status": [f"Cannot transition from {self.status} to {target.value}"]})

    def _record(self, status, message, timestamp):
        self.add_timeline(
            TimelineEntry(
                status=status.value,
                message=message,
                timestamp=timestamp,
                position=len(self.timeline),
            )
        )

    def _shipping_with(self, **changes):
        current = self.shipping.to_dict() if self.shipping else {}
        return ShippingDetails(**{**current, **changes})

    def _payment_with(self, **changes):
        return Payment(**{**self.payment.to_dict(), **changes})

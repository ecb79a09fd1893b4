"""Order placement — converts the user's cart into a pending order.

The handler runs the whole checkout inside one unit of work: validation, the
order record, stock decrements, coupon redemption, and clearing the cart
either all commit or none of them do. Only the order number is drawn
outside it, so a failed checkout leaves a gap in the day's sequence.
"""

import json
from collections import defaultdict

from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from storefront.cart.cart import ShoppingCart
from storefront.coupon.coupon import Coupon
from storefront.coupon.redemption import resolve_coupon
from storefront.domain import storefront
from storefront.errors import EmptyCart, InsufficientStock, ProductGone
from storefront.order.numbering import next_order_number
from storefront.order.order import Address, Order, OrderTotals, PaymentProvider, ShippingDetails
from storefront.product.product import Product
from storefront.shared.money import round_money
from storefront.utils.logging import get_logger
from storefront.utils.settings import setting

logger = get_logger(__name__)


@storefront.command(part_of="Order")
class PlaceOrder:
    user_id = Identifier(required=True)
    shipping_address = Text(required=True)  # JSON: address dict
    billing_address = Text()  # JSON: address dict, defaults to shipping
    payment_method = String(required=True, choices=PaymentProvider)
    coupon_code = String(max_length=50)
    notes = String(max_length=500)


def _as_dict(value):
    return json.loads(value) if isinstance(value, str) else value


def snapshot_lines(cart, products):
    """Validate every cart line against the live catalog and copy it into an order line.

    Variant lines of one product draw on the same stock count, so the check is
    made against the total quantity requested per product.
    """
    requested = defaultdict(int)
    for item in cart.items:
        requested[str(item.product_id)] += item.quantity

    for product_id, quantity in requested.items():
        product = products.get(product_id)
        if product is None:
            raise ProductGone({"items": [f"Product {product_id} no longer exists"]})
        if product.count_in_stock < quantity:
            raise InsufficientStock(
                {"items": [f"Insufficient stock for {product.name}. Available: {product.count_in_stock}"]}
            )

    lines = []
    for item in cart.items:
        product = products[str(item.product_id)]
        lines.append(
            {
                "product_id": str(product.id),
                "name": product.name,
                "image": product.primary_image,
                "price": product.current_price,
                "quantity": item.quantity,
                "variant_key": item.variant_key,
            }
        )
    return lines


def price_lines(lines, shipping_cost, coupon=None):
    subtotal = round_money(sum(line["price"] * line["quantity"] for line in lines))
    discount = coupon.calculate_discount(subtotal) if coupon else 0.0
    shipping = round_money(shipping_cost)

    return OrderTotals(
        subtotal=subtotal,
        shipping=shipping,
        tax=0.0,
        discount=discount,
        grand_total=round_money(subtotal + shipping - discount),
    )


@storefront.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        cart_repo = current_domain.repository_for(ShoppingCart)
        product_repo = current_domain.repository_for(Product)

        cart = cart_repo.for_user(command.user_id)
        if cart is None or not cart.items:
            raise EmptyCart({"cart": ["Cart is empty"]})

        products = {str(item.product_id): product_repo.get_or_none(item.product_id) for item in cart.items}
        lines = snapshot_lines(cart, products)

        coupon = None
        coupon_code = command.coupon_code or cart.coupon_code
        if coupon_code:
            coupon = resolve_coupon(coupon_code, command.user_id, cart.subtotal)

        totals = price_lines(lines, cart.shipping_cost, coupon)

        shipping = None
        if cart.shipping_method:
            shipping = ShippingDetails(
                name=cart.shipping_method.name,
                price=cart.shipping_method.price,
                estimated_days=cart.shipping_method.estimated_days,
            )

        shipping_address = Address(**_as_dict(command.shipping_address))
        billing_address = Address(**_as_dict(command.billing_address)) if command.billing_address else None

        order = Order.place(
            order_number=next_order_number(),
            user_id=command.user_id,
            items=lines,
            shipping_address=shipping_address,
            billing_address=billing_address,
            totals=totals,
            payment_provider=command.payment_method,
            currency=setting("DEFAULT_CURRENCY"),
            shipping=shipping,
            coupon=coupon,
            notes=command.notes,
        )
        current_domain.repository_for(Order).add(order)

        for line in lines:
            product_repo.decrement_stock(line["product_id"], line["quantity"])

        if coupon:
            coupon.use_coupon(command.user_id, order_number=order.order_number)
            current_domain.repository_for(Coupon).add(coupon)

        cart.clear()
        cart_repo.add(cart)

        logger.info(
            "order_placed",
            order_number=order.order_number,
            user_id=str(command.user_id),
            grand_total=totals.grand_total,
            coupon_code=order.coupon_code,
        )
        return order

"""Shopping Cart aggregate (CQRS) — one cart per user, converted to an Order at checkout.

Lines capture the product's effective price when they are added. Totals are
never stored: ``subtotal``, ``total_items``, ``shipping_cost`` and ``total``
are recomputed from the lines on every read (see ``cart/totals.py``).

When a coupon is attached the cart keeps a copy of its discount terms so the
cached ``coupon_discount`` can be recomputed after every line mutation without
reloading the coupon. Checkout re-validates the coupon from scratch.
"""

from datetime import UTC, datetime

from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String, ValueObject

from storefront.cart import totals
from storefront.cart.events import (
    CartCleared,
    CartCouponApplied,
    CartCouponRemoved,
    CartItemAdded,
    CartItemRemoved,
    CartItemsPruned,
    CartQuantityUpdated,
    CartShippingMethodSet,
)
from storefront.coupon.discount import calculate_discount
from storefront.domain import storefront
from storefront.errors import InsufficientStock, NotFound


@storefront.value_object(part_of="ShoppingCart")
class ShippingMethod:
    name = String(required=True, max_length=100)
    price = Float(default=0.0, min_value=0.0)
    estimated_days = String(max_length=100)


@storefront.entity(part_of="ShoppingCart")
class CartItem:
    product_id = Identifier(required=True)
    variant_key = String(max_length=100)
    quantity = Integer(required=True, min_value=1)
    price = Float(required=True, min_value=0.0)  # Effective price when added
    added_at = DateTime()

    def matches(self, product_id, variant_key=None):
        return str(self.product_id) == str(product_id) and (self.variant_key or None) == (variant_key or None)


@storefront.aggregate
class ShoppingCart:
    user_id = Identifier(required=True)
    items = HasMany(CartItem)
    coupon_id = Identifier()
    coupon_code = String(max_length=50)
    coupon_discount_type = String(max_length=20)
    coupon_value = Float()
    coupon_max_discount = Float()
    coupon_discount = Float(default=0.0)
    shipping_method = ValueObject(ShippingMethod)
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, user_id):
        now = datetime.now(UTC)
        return cls(user_id=str(user_id), coupon_discount=0.0, created_at=now, updated_at=now)

    # -------------------------------------------------------------------
    # Derived totals
    # -------------------------------------------------------------------
    @property
    def subtotal(self):
        return totals.subtotal(self.items)

    @property
    def total_items(self):
        return totals.total_items(self.items)

    @property
    def shipping_cost(self):
        return totals.shipping_cost(self.shipping_method)

    @property
    def total(self):
        return totals.total(self.items, self.shipping_method, self.coupon_discount)

    def find_item(self, product_id, variant_key=None):
        return next((item for item in self.items if item.matches(product_id, variant_key)), None)

    # -------------------------------------------------------------------
    # Item management
    # -------------------------------------------------------------------
    def add_item(self, product, quantity, variant_key=None):
        """Add ``quantity`` of ``product``, merging into an existing line for the same variant.

        A merged line takes the product's current effective price.
        """
        if product is None or not product.is_active:
            raise NotFound({"product_id": ["Product not found or unavailable"]})

        if product.count_in_stock < quantity:
            raise InsufficientStock({"quantity": ["Insufficient stock"]})

        now = datetime.now(UTC)
        price = product.current_price
        existing = self.find_item(product.id, variant_key)

        if existing:
            new_quantity = existing.quantity + quantity
            if new_quantity > product.count_in_stock:
                raise InsufficientStock({"quantity": ["Insufficient stock"]})
            existing.quantity = new_quantity
            existing.price = price
        else:
            self.add_items(
                CartItem(
                    product_id=str(product.id),
                    variant_key=variant_key,
                    quantity=quantity,
                    price=price,
                    added_at=now,
                )
            )

        self.updated_at = now
        self.refresh_discount()

        self.raise_(
            CartItemAdded(
                cart_id=str(self.id),
                user_id=str(self.user_id),
                product_id=str(product.id),
                variant_key=variant_key,
                quantity=quantity,
                price=price,
            )
        )

    def update_item_quantity(self, product_id, quantity, variant_key=None, available=0):
        """Overwrite a line's quantity. A quantity of zero or less removes the line.

        ``available`` is the product's current stock count.
        """
        item = self.find_item(product_id, variant_key)
        if item is None:
            raise NotFound({"product_id": ["Item not found in cart"]})

        if quantity <= 0:
            self.remove_item(product_id, variant_key)
            return

        if available < quantity:
            raise InsufficientStock({"quantity": ["Insufficient stock"]})

        previous_quantity = item.quantity
        item.quantity = quantity
        self.updated_at = datetime.now(UTC)
        self.refresh_discount()

        self.raise_(
            CartQuantityUpdated(
                cart_id=str(self.id),
                product_id=str(product_id),
                variant_key=variant_key,
                previous_quantity=previous_quantity,
                new_quantity=quantity,
            )
        )

    def remove_item(self, product_id, variant_key=None):
        """Drop the matching line. Removing a line that is not there is a no-op."""
        item = self.find_item(product_id, variant_key)
        if item is None:
            return

        self.remove_items(item)
        self.updated_at = datetime.now(UTC)
        self.refresh_discount()

        self.raise_(CartItemRemoved(cart_id=str(self.id), product_id=str(product_id), variant_key=variant_key))

    def prune(self, products):
        """Remove lines whose product is missing, inactive, or out of stock.

        ``products`` maps product id to the loaded Product, or None when the
        product no longer exists. Returns the number of lines removed.
        """
        stale = []
        for item in self.items:
            product = products.get(str(item.product_id))
            if product is None or not product.is_active or product.count_in_stock <= 0:
                stale.append(item)

        if not stale:
            return 0

        for item in stale:
            self.remove_items(item)

        self.updated_at = datetime.now(UTC)
        self.refresh_discount()
        self.raise_(CartItemsPruned(cart_id=str(self.id), removed_count=len(stale)))
        return len(stale)

    def clear(self):
        """Empty the cart and detach any coupon."""
        for item in list(self.items):
            self.remove_items(item)

        self._detach_coupon()
        self.updated_at = datetime.now(UTC)
        self.raise_(CartCleared(cart_id=str(self.id), user_id=str(self.user_id)))

    # -------------------------------------------------------------------
    # Coupon management
    # -------------------------------------------------------------------
    def apply_coupon(self, coupon):
        """Attach an already validated coupon and cache its discount on the subtotal."""
        self.coupon_id = str(coupon.id)
        self.coupon_code = coupon.code
        self.coupon_discount_type = coupon.discount_type
        self.coupon_value = coupon.value
        self.coupon_max_discount = coupon.max_discount
        self.updated_at = datetime.now(UTC)
        self.refresh_discount()

        self.raise_(
            CartCouponApplied(
                cart_id=str(self.id),
                coupon_id=str(coupon.id),
                coupon_code=coupon.code,
                discount=self.coupon_discount,
            )
        )

    def remove_coupon(self):
        code = self.coupon_code
        self._detach_coupon()
        self.updated_at = datetime.now(UTC)

        if code:
            self.raise_(CartCouponRemoved(cart_id=str(self.id), coupon_code=code))

    def refresh_discount(self):
        """Recompute the cached discount from the attached coupon terms."""
        if not self.coupon_id:
            self.coupon_discount = 0.0
            return

        self.coupon_discount = calculate_discount(
            self.coupon_discount_type,
            self.coupon_value or 0.0,
            self.coupon_max_discount,
            self.subtotal,
        )

    def _detach_coupon(self):
        self.coupon_id = None
        self.coupon_code = None
        self.coupon_discount_type = None
        self.coupon_value = None
        self.coupon_max_discount = None
        self.coupon_discount = 0.0

    # -------------------------------------------------------------------
    # Shipping
    # -------------------------------------------------------------------
    def set_shipping_method(self, name, price=None, estimated_days=None, default_estimated_days=None):
        self.shipping_method = ShippingMethod(
            name=name,
            price=price or 0.0,
            estimated_days=estimated_days or default_estimated_days,
        )
        self.updated_at = datetime.now(UTC)

        self.raise_(CartShippingMethodSet(cart_id=str(self.id), name=name, price=self.shipping_method.price))

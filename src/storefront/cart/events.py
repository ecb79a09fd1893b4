"""Domain events for the ShoppingCart aggregate."""

from protean.fields import Float, Identifier, Integer, String

from storefront.domain import storefront


@storefront.event(part_of="ShoppingCart")
class CartItemAdded:
    __version__ = 1

    cart_id = Identifier(required=True)
    user_id = Identifier(required=True)
    product_id = Identifier(required=True)
    variant_key = String()
    quantity = Integer(required=True)
    price = Float(required=True)


@storefront.event(part_of="ShoppingCart")
class CartQuantityUpdated:
    __version__ = 1

    cart_id = Identifier(required=True)
    product_id = Identifier(required=True)
    variant_key = String()
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)


@storefront.event(part_of="ShoppingCart")
class CartItemRemoved:
    __version__ = 1

    cart_id = Identifier(required=True)
    product_id = Identifier(required=True)
    variant_key = String()


@storefront.event(part_of="ShoppingCart")
class CartItemsPruned:
    """Lines dropped because their product vanished, was withdrawn, or sold out."""

    __version__ = 1

    cart_id = Identifier(required=True)
    removed_count = Integer(required=True)


@storefront.event(part_of="ShoppingCart")
class CartCleared:
    __version__ = 1

    cart_id = Identifier(required=True)
    user_id = Identifier(required=True)


@storefront.event(part_of="ShoppingCart")
class CartCouponApplied:
    __version__ = 1

    cart_id = Identifier(required=True)
    coupon_id = Identifier(required=True)
    coupon_code = String(required=True)
    discount = Float(required=True)


@storefront.event(part_of="ShoppingCart")
class CartCouponRemoved:
    __version__ = 1

    cart_id = Identifier(required=True)
    coupon_code = String(required=True)


@storefront.event(part_of="ShoppingCart")
class CartShippingMethodSet:
    __version__ = 1

    cart_id = Identifier(required=True)
    name = String(required=True)
    price = Float(required=True)

"""Domain events for the Coupon aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String

from storefront.domain import storefront


@storefront.event(part_of="Coupon")
class CouponCreated:
    __version__ = 1

    coupon_id = Identifier(required=True)
    code = String(required=True)
    discount_type = String(required=True)
    value = Float(required=True)
    end_date = DateTime(required=True)


@storefront.event(part_of="Coupon")
class CouponRedeemed:
    """A coupon was consumed by a placed order."""

    __version__ = 1

    coupon_id = Identifier(required=True)
    code = String(required=True)
    user_id = Identifier(required=True)
    order_number = String()
    current_uses = Integer(required=True)
    redeemed_at = DateTime(required=True)


@storefront.event(part_of="Coupon")
class CouponRedemptionReleased:
    """A redemption was reversed because its order was cancelled."""

    __version__ = 1

    coupon_id = Identifier(required=True)
    code = String(required=True)
    user_id = Identifier(required=True)
    order_number = String()
    current_uses = Integer(required=True)


@storefront.event(part_of="Coupon")
class CouponDeactivated:
    __version__ = 1

    coupon_id = Identifier(required=True)
    code = String(required=True)

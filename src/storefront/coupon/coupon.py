"""Coupon aggregate — a discount rule with a validity window and usage caps.

Validation answers "may this user apply this code to this amount right now?"
and never mutates the coupon. Recording a use (and reversing it when an order
is cancelled) are separate, explicit operations invoked by the checkout and
cancellation handlers.

Checks run in a fixed order and the first failure wins:

1. the coupon is inactive, outside its date window, or out of uses
2. the order amount is below ``min_amount``
3. the user already reached ``user_limit`` redemptions
"""

import json
from dataclasses import dataclass
from datetime import UTC, datetime

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, HasMany, Identifier, Integer, String, Text

from storefront.coupon.discount import CouponType, calculate_discount
from storefront.coupon.events import (
    CouponCreated,
    CouponDeactivated,
    CouponRedeemed,
    CouponRedemptionReleased,
)
from storefront.domain import storefront


def as_utc(value):
    """Treat naive datetimes as UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def format_amount(amount):
    return f"{amount:.2f}".rstrip("0").rstrip(".")


@dataclass(frozen=True)
class CouponCheck:
    """Outcome of validating a coupon for an order."""

    valid: bool
    message: str | None = None


@storefront.entity(part_of="Coupon")
class CouponRedemption:
    """One use of a coupon by a user."""

    user_id = Identifier(required=True)
    used_at = DateTime(required=True)


@storefront.aggregate
class Coupon:
    code = String(required=True, max_length=50, unique=True)
    name = String(required=True, max_length=100)
    description = String(max_length=500)
    discount_type = String(required=True, choices=CouponType)
    value = Float(required=True, min_value=0.0)
    min_amount = Float(default=0.0, min_value=0.0)
    max_discount = Float(min_value=0.0)
    is_active = Boolean(default=True)
    start_date = DateTime(required=True)
    end_date = DateTime(required=True)
    max_uses = Integer(min_value=1)  # None means unlimited
    current_uses = Integer(default=0, min_value=0)
    used_by = HasMany(CouponRedemption)
    user_limit = Integer(default=1, min_value=1)
    # Scoping fields are stored but not enforced by validate_for_order
    categories = Text()  # JSON array of category names
    products = Text()  # JSON array of product ids
    exclude_products = Text()  # JSON array of product ids
    is_first_time_only = Boolean(default=False)
    created_at = DateTime()

    @invariant.post
    def window_must_be_ordered(self):
        if self.start_date and self.end_date and as_utc(self.start_date) > as_utc(self.end_date):
            raise ValidationError({"end_date": ["End date must be after start date"]})

    @invariant.post
    def percentage_cannot_exceed_hundred(self):
        if self.discount_type == CouponType.PERCENTAGE.value and self.value is not None and self.value > 100:
            raise ValidationError({"value": ["Percentage discount cannot exceed 100"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        code,
        name,
        discount_type,
        value,
        end_date,
        start_date=None,
        description=None,
        min_amount=0.0,
        max_discount=None,
        max_uses=None,
        user_limit=1,
        categories=None,
        products=None,
        exclude_products=None,
        is_first_time_only=False,
    ):
        now = datetime.now(UTC)
        coupon = cls(
            code=code.strip().upper(),
            name=name,
            description=description,
            discount_type=CouponType(discount_type).value,
            value=value,
            min_amount=min_amount or 0.0,
            max_discount=max_discount,
            is_active=True,
            start_date=as_utc(start_date) or now,
            end_date=as_utc(end_date),
            max_uses=max_uses,
            current_uses=0,
            user_limit=user_limit or 1,
            categories=json.dumps(list(categories or [])),
            products=json.dumps(list(products or [])),
            exclude_products=json.dumps(list(exclude_products or [])),
            is_first_time_only=is_first_time_only,
            created_at=now,
        )
        coupon.raise_(
            CouponCreated(
                coupon_id=str(coupon.id),
                code=coupon.code,
                discount_type=coupon.discount_type,
                value=coupon.value,
                end_date=coupon.end_date,
            )
        )
        return coupon

    # -------------------------------------------------------------------
    # Derived state
    # -------------------------------------------------------------------
    def is_expired(self, now=None):
        now = now or datetime.now(UTC)
        return now > as_utc(self.end_date)

    def is_valid(self, now=None):
        now = now or datetime.now(UTC)
        within_window = as_utc(self.start_date) <= now <= as_utc(self.end_date)
        uses_left = self.max_uses is None or self.current_uses < self.max_uses
        return bool(self.is_active) and within_window and uses_left

    def uses_by(self, user_id):
        return sum(1 for redemption in self.used_by if str(redemption.user_id) == str(user_id))

    # -------------------------------------------------------------------
    # Validation and pricing
    # -------------------------------------------------------------------
    def validate_for_order(self, user_id, order_amount, now=None):
        if not self.is_valid(now):
            return CouponCheck(valid=False, message="Coupon is not valid")

        if order_amount < (self.min_amount or 0.0):
            return CouponCheck(
                valid=False,
                message=f"Minimum order amount of ${format_amount(self.min_amount)} required",
            )

        if self.uses_by(user_id) >= self.user_limit:
            return CouponCheck(valid=False, message="You have already used this coupon")

        return CouponCheck(valid=True)

    def calculate_discount(self, order_amount):
        return calculate_discount(self.discount_type, self.value, self.max_discount, order_amount)

    # -------------------------------------------------------------------
    # Usage recording
    # -------------------------------------------------------------------
    def use_coupon(self, user_id, order_number=None):
        """Record one redemption. Call once per placed order, after validation."""
        now = datetime.now(UTC)
        self.current_uses = (self.current_uses or 0) + 1
        self.add_used_by(CouponRedemption(user_id=str(user_id), used_at=now))

        self.raise_(
            CouponRedeemed(
                coupon_id=str(self.id),
                code=self.code,
                user_id=str(user_id),
                order_number=order_number,
                current_uses=self.current_uses,
                redeemed_at=now,
            )
        )

    def release_usage(self, user_id, order_number=None):
        """Undo one redemption by ``user_id`` so the coupon can be used again."""
        self.current_uses = max(0, (self.current_uses or 0) - 1)

        redemption = next((r for r in self.used_by if str(r.user_id) == str(user_id)), None)
        if redemption is not None:
            self.remove_used_by(redemption)

        self.raise_(
            CouponRedemptionReleased(
                coupon_id=str(self.id),
                code=self.code,
                user_id=str(user_id),
                order_number=order_number,
                current_uses=self.current_uses,
            )
        )

    def deactivate(self):
        if not self.is_active:
            raise ValidationError({"is_active": ["Coupon is already inactive"]})

        self.is_active = False
        self.raise_(CouponDeactivated(coupon_id=str(self.id), code=self.code))

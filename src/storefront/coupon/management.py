"""Coupon administration — commands and handler."""

import json

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from storefront.coupon.coupon import Coupon
from storefront.coupon.discount import CouponType
from storefront.domain import storefront
from storefront.errors import NotFound
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


@storefront.command(part_of="Coupon")
class CreateCoupon:
    code = String(required=True, min_length=3, max_length=50)
    name = String(required=True, max_length=100)
    description = String(max_length=500)
    discount_type = String(required=True, choices=CouponType)
    value = Float(required=True, min_value=0.0)
    min_amount = Float(default=0.0, min_value=0.0)
    max_discount = Float(min_value=0.0)
    start_date = DateTime()
    end_date = DateTime(required=True)
    max_uses = Integer(min_value=1)
    user_limit = Integer(default=1, min_value=1)
    categories = Text()  # JSON: list of category names
    products = Text()  # JSON: list of product ids
    exclude_products = Text()  # JSON: list of product ids
    is_first_time_only = Boolean(default=False)


@storefront.command(part_of="Coupon")
class DeactivateCoupon:
    coupon_id = Identifier(required=True)


def _as_list(value):
    return json.loads(value) if isinstance(value, str) else value


@storefront.command_handler(part_of=Coupon)
class ManageCouponHandler:
    @handle(CreateCoupon)
    def create_coupon(self, command):
        repo = current_domain.repository_for(Coupon)
        if repo.find_by_code(command.code) is not None:
            raise ValidationError({"code": ["Coupon code already exists"]})

        coupon = Coupon.create(
            code=command.code,
            name=command.name,
            description=command.description,
            discount_type=command.discount_type,
            value=command.value,
            min_amount=command.min_amount,
            max_discount=command.max_discount,
            start_date=command.start_date,
            end_date=command.end_date,
            max_uses=command.max_uses,
            user_limit=command.user_limit,
            categories=_as_list(command.categories),
            products=_as_list(command.products),
            exclude_products=_as_list(command.exclude_products),
            is_first_time_only=command.is_first_time_only,
        )
        repo.add(coupon)
        logger.info("coupon_created", coupon_id=str(coupon.id), code=coupon.code)
        return str(coupon.id)

    @handle(DeactivateCoupon)
    def deactivate_coupon(self, command):
        repo = current_domain.repository_for(Coupon)
        coupon = repo.get_or_none(command.coupon_id)
        if coupon is None:
            raise NotFound({"coupon_id": ["Coupon not found"]})

        coupon.deactivate()
        repo.add(coupon)

"""Repository for the Coupon aggregate."""

from storefront.coupon.coupon import Coupon
from storefront.domain import storefront
from storefront.errors import NotFound


@storefront.repository(part_of=Coupon)
class CouponRepository:
    def get_or_none(self, coupon_id) -> Coupon | None:
        coupons = self._dao.query.filter(id=str(coupon_id)).all().items
        return coupons[0] if coupons else None

    def find_by_code(self, code) -> Coupon | None:
        """Case-insensitive lookup, active or not."""
        coupons = self._dao.query.filter(code=code.strip().upper()).all().items
        return coupons[0] if coupons else None

    def find_valid_coupon(self, code) -> Coupon:
        """Return the active coupon with this code, or raise NotFound."""
        coupons = self._dao.query.filter(code=code.strip().upper(), is_active=True).all().items
        if not coupons:
            raise NotFound({"coupon_code": ["Coupon not found"]})
        return coupons[0]

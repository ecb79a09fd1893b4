"""Repository for the Order aggregate."""

import math

from storefront.domain import storefront
from storefront.order.order import Order, OrderStatus


@storefront.repository(part_of=Order)
class OrderRepository:
    def get_or_none(self, order_id) -> Order | None:
        orders = self._dao.query.filter(id=str(order_id)).all().items
        return orders[0] if orders else None

    def for_user(self, user_id, page=1, limit=10, status=None):
        """One page of a user's orders, newest first, with pagination details."""
        page = max(1, int(page))
        limit = max(1, int(limit))

        filters = {"user_id": str(user_id)}
        if status:
            filters["status"] = status

        query = self._dao.query.filter(**filters).order_by("-created_at")
        total = query.all().total
        orders = query.offset((page - 1) * limit).limit(limit).all().items

        return orders, {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": math.ceil(total / limit),
        }

    def has_delivered(self, user_id, product_id) -> bool:
        """True when one of the user's delivered orders contains the product."""
        query = self._dao.query.filter(user_id=str(user_id), status=OrderStatus.DELIVERED.value)
        orders = query.limit(None).all().items
        return any(str(item.product_id) == str(product_id) for order in orders for item in order.items)

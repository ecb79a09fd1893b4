"""Order reads for customers and administrators."""

from protean.utils.globals import current_domain

from storefront.errors import Unauthorized
from storefront.order.cancellation import load_order
from storefront.order.order import Order


def get_order(order_id, user_id, is_admin=False) -> Order:
    order = load_order(order_id)
    if not is_admin and not order.belongs_to(user_id):
        raise Unauthorized({"order_id": ["Not authorized to access this order"]})
    return order


def list_orders(user_id, page=1, limit=10, status=None):
    """A page of the user's orders, newest first, and the pagination block."""
    return current_domain.repository_for(Order).for_user(user_id, page=page, limit=limit, status=status)

"""Repository for the ShoppingCart aggregate."""

from storefront.cart.cart import ShoppingCart
from storefront.domain import storefront


@storefront.repository(part_of=ShoppingCart)
class ShoppingCartRepository:
    def for_user(self, user_id) -> ShoppingCart | None:
        carts = self._dao.query.filter(user_id=str(user_id)).all().items
        return carts[0] if carts else None

    def for_user_or_new(self, user_id) -> ShoppingCart:
        """The user's cart, created on first access. The caller persists it."""
        return self.for_user(user_id) or ShoppingCart.create(user_id=user_id)

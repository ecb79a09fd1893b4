"""Cart management — fetching, clearing, and shipping selection."""

from protean import handle
from protean.fields import Float, Identifier, String
from protean.utils.globals import current_domain

from storefront.cart.cart import ShoppingCart
from storefront.domain import storefront
from storefront.errors import NotFound
from storefront.product.product import Product
from storefront.utils.logging import get_logger
from storefront.utils.settings import setting

logger = get_logger(__name__)


@storefront.command(part_of="ShoppingCart")
class FetchCart:
    """Return the user's cart, creating it on first access and dropping unavailable lines."""

    user_id = Identifier(required=True)


@storefront.command(part_of="ShoppingCart")
class ClearCart:
    user_id = Identifier(required=True)


@storefront.command(part_of="ShoppingCart")
class SetShippingMethod:
    user_id = Identifier(required=True)
    name = String(required=True, max_length=100)
    price = Float(min_value=0.0)
    estimated_days = String(max_length=100)


def _existing_cart(repo, user_id):
    cart = repo.for_user(user_id)
    if cart is None:
        raise NotFound({"cart": ["Cart not found"]})
    return cart


@storefront.command_handler(part_of=ShoppingCart)
class ManageCartHandler:
    @handle(FetchCart)
    def fetch_cart(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.for_user_or_new(command.user_id)

        product_repo = current_domain.repository_for(Product)
        products = {str(item.product_id): product_repo.get_or_none(item.product_id) for item in cart.items}

        removed = cart.prune(products)
        if removed:
            logger.info("cart_pruned", user_id=str(command.user_id), removed=removed)

        repo.add(cart)
        return cart

    @handle(ClearCart)
    def clear_cart(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = _existing_cart(repo, command.user_id)
        cart.clear()
        repo.add(cart)
        return cart

    @handle(SetShippingMethod)
    def set_shipping_method(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = _existing_cart(repo, command.user_id)
        cart.set_shipping_method(
            name=command.name,
            price=command.price,
            estimated_days=command.estimated_days,
            default_estimated_days=setting("DEFAULT_ESTIMATED_DAYS"),
        )
        repo.add(cart)
        return cart

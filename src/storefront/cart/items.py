"""Cart item management — commands and handler."""

from protean import handle
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from storefront.cart.cart import ShoppingCart
from storefront.domain import storefront
from storefront.errors import NotFound
from storefront.product.product import Product


@storefront.command(part_of="ShoppingCart")
class AddToCart:
    user_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(default=1, min_value=1)
    variant_key = String(max_length=100)


@storefront.command(part_of="ShoppingCart")
class UpdateCartQuantity:
    """Set a line's quantity; zero or less removes the line."""

    user_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True)
    variant_key = String(max_length=100)


@storefront.command(part_of="ShoppingCart")
class RemoveFromCart:
    user_id = Identifier(required=True)
    product_id = Identifier(required=True)
    variant_key = String(max_length=100)


@storefront.command_handler(part_of=ShoppingCart)
class ManageCartItemsHandler:
    @handle(AddToCart)
    def add_to_cart(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.for_user_or_new(command.user_id)
        product = current_domain.repository_for(Product).get_or_none(command.product_id)

        cart.add_item(product, quantity=command.quantity or 1, variant_key=command.variant_key)
        repo.add(cart)
        return cart

    @handle(UpdateCartQuantity)
    def update_cart_quantity(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.for_user(command.user_id)
        if cart is None:
            raise NotFound({"cart": ["Cart not found"]})

        product = current_domain.repository_for(Product).get_or_none(command.product_id)
        if product is None and command.quantity > 0:
            raise NotFound({"product_id": ["Product not found"]})

        cart.update_item_quantity(
            product_id=command.product_id,
            quantity=command.quantity,
            variant_key=command.variant_key,
            available=product.count_in_stock if product else 0,
        )
        repo.add(cart)
        return cart

    @handle(RemoveFromCart)
    def remove_from_cart(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.for_user(command.user_id)
        if cart is None:
            raise NotFound({"cart": ["Cart not found"]})

        cart.remove_item(product_id=command.product_id, variant_key=command.variant_key)
        repo.add(cart)
        return cart

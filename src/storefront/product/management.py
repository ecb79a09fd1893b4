"""Catalog administration — commands and handler."""

import json

from protean import handle
from protean.fields import Boolean, Float, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.errors import NotFound
from storefront.product.product import Product
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


@storefront.command(part_of="Product")
class CreateProduct:
    name = String(required=True, max_length=100)
    price = Float(required=True, min_value=0.0)
    sale_price = Float(min_value=0.0)
    count_in_stock = Integer(default=0, min_value=0)
    description = Text()
    brand = String(max_length=100)
    category = String(max_length=100)
    sku = String(max_length=50)
    slug = String(max_length=200)
    images = Text()  # JSON: list of image URLs
    is_featured = Boolean(default=False)


@storefront.command(part_of="Product")
class UpdateProductPricing:
    product_id = Identifier(required=True)
    price = Float(required=True, min_value=0.0)
    sale_price = Float(min_value=0.0)


@storefront.command(part_of="Product")
class AdjustStock:
    """Add to (positive) or remove from (negative) a product's stock count."""

    product_id = Identifier(required=True)
    delta = Integer(required=True)


@storefront.command(part_of="Product")
class AddProductVariant:
    product_id = Identifier(required=True)
    name = String(required=True, max_length=100)
    options = Text(required=True)  # JSON: list of {key, value, price, stock}


@storefront.command(part_of="Product")
class DeactivateProduct:
    product_id = Identifier(required=True)


def _load(product_id):
    product = current_domain.repository_for(Product).get_or_none(product_id)
    if product is None:
        raise NotFound({"product_id": ["Product not found"]})
    return product


@storefront.command_handler(part_of=Product)
class ManageProductHandler:
    @handle(CreateProduct)
    def create_product(self, command):
        images = json.loads(command.images) if isinstance(command.images, str) else command.images
        product = Product.create(
            name=command.name,
            price=command.price,
            sale_price=command.sale_price,
            count_in_stock=command.count_in_stock or 0,
            description=command.description,
            brand=command.brand,
            category=command.category,
            sku=command.sku,
            slug=command.slug,
            images=images,
            is_featured=command.is_featured,
        )
        current_domain.repository_for(Product).add(product)
        logger.info("product_created", product_id=str(product.id), name=product.name)
        return str(product.id)

    @handle(UpdateProductPricing)
    def update_pricing(self, command):
        product = _load(command.product_id)
        product.update_pricing(price=command.price, sale_price=command.sale_price)
        current_domain.repository_for(Product).add(product)

    @handle(AdjustStock)
    def adjust_stock(self, command):
        new_count = current_domain.repository_for(Product).adjust_stock(command.product_id, command.delta)
        logger.info("stock_adjusted", product_id=str(command.product_id), delta=command.delta, count=new_count)
        return new_count

    @handle(AddProductVariant)
    def add_variant(self, command):
        product = _load(command.product_id)
        options = json.loads(command.options) if isinstance(command.options, str) else command.options
        product.add_variant(name=command.name, options=options)
        current_domain.repository_for(Product).add(product)

    @handle(DeactivateProduct)
    def deactivate(self, command):
        product = _load(command.product_id)
        product.deactivate()
        current_domain.repository_for(Product).add(product)

"""Domain events for the Product aggregate."""

from protean.fields import Float, Identifier, Integer, String

from storefront.domain import storefront


@storefront.event(part_of="Product")
class ProductCreated:
    """A product was added to the catalog."""

    __version__ = 1

    product_id = Identifier(required=True)
    name = String(required=True)
    price = Float(required=True)
    sale_price = Float()
    count_in_stock = Integer(required=True)


@storefront.event(part_of="Product")
class ProductPricingUpdated:
    """The list or sale price of a product changed."""

    __version__ = 1

    product_id = Identifier(required=True)
    price = Float(required=True)
    sale_price = Float()


@storefront.event(part_of="Product")
class VariantAdded:
    __version__ = 1

    product_id = Identifier(required=True)
    variant_name = String(required=True)
    option_count = Integer(required=True)


@storefront.event(part_of="Product")
class ProductDeactivated:
    """The product was withdrawn from sale."""

    __version__ = 1

    product_id = Identifier(required=True)

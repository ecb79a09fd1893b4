"""Public catalog reads — browsing, search, featured products and product detail.

Only active products are visible here; administrators reach inactive ones
through the catalog management routes.
"""

from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from storefront.errors import NotFound
from storefront.product.product import Product
from storefront.review.review import Review

FEATURED_LIMIT = 8
LATEST_REVIEWS = 5


def browse_products(page=1, limit=12, **filters):
    """A page of active products and its pagination block.

    Accepts the filters of ``ProductRepository.browse``: category, brand,
    min_price, max_price, search and sort.
    """
    return current_domain.repository_for(Product).browse(page=page, limit=limit, **filters)


def search_products(q, page=1, limit=12, sort=None):
    if not q or not q.strip():
        raise ValidationError({"q": ["Search query is required"]})
    return current_domain.repository_for(Product).browse(page=page, limit=limit, search=q, sort=sort)


def featured_products(limit=FEATURED_LIMIT) -> list[Product]:
    products, _ = current_domain.repository_for(Product).browse(page=1, limit=limit, featured=True, sort="newest")
    return products


def _visible(product) -> Product:
    if product is None or not product.is_active:
        raise NotFound({"product_id": ["Product not found"]})
    return product


def get_product(product_id):
    """The product and its most recent reviews."""
    product = _visible(current_domain.repository_for(Product).get_or_none(product_id))
    return product, current_domain.repository_for(Review).latest_for_product(product.id, limit=LATEST_REVIEWS)


def get_product_by_slug(slug):
    product = _visible(current_domain.repository_for(Product).find_by_slug(slug))
    return product, current_domain.repository_for(Review).latest_for_product(product.id, limit=LATEST_REVIEWS)

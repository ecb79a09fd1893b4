"""Keeps a product's rating summary in step with its active reviews."""

from protean.utils.globals import current_domain

from storefront.product.product import Product
from storefront.review.review import Review
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


def refresh_product_rating(product_id):
    """Recompute the product's average rating and review count.

    Runs inside the review handler's unit of work, so the summary and the
    review change commit together. A product that has since been removed is
    left alone.
    """
    product = current_domain.repository_for(Product).get_or_none(product_id)
    if product is None:
        return None

    stats = current_domain.repository_for(Review).rating_stats(product_id)
    product.record_rating(stats["average_rating"], stats["total_reviews"])
    current_domain.repository_for(Product).add(product)

    logger.info(
        "product_rating_refreshed",
        product_id=str(product_id),
        rating=product.rating,
        num_reviews=product.num_reviews,
    )
    return product

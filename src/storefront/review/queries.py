"""Review reads for the product page and the customer's account."""

from protean.utils.globals import current_domain

from storefront.review.review import Review


def product_reviews(product_id, page=1, limit=10, rating=None, sort="newest"):
    """A page of the product's reviews, its pagination block and rating statistics."""
    repo = current_domain.repository_for(Review)
    reviews, pagination = repo.for_product(product_id, page=page, limit=limit, rating=rating, sort=sort)
    return reviews, pagination, repo.rating_stats(product_id)


def user_reviews(user_id, page=1, limit=10):
    return current_domain.repository_for(Review).for_user(user_id, page=page, limit=limit)

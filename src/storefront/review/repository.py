"""Repository for the Review aggregate with per-product listings and rating statistics."""

import math

from storefront.domain import storefront
from storefront.review.review import Review

SORT_ORDERS = {
    "newest": "-created_at",
    "oldest": "created_at",
    "rating_high": "-rating",
    "rating_low": "rating",
    "helpful": "-helpful_count",
}


def _page(query, page, limit):
    page = max(1, int(page))
    limit = max(1, int(limit))
    total = query.all().total
    items = query.offset((page - 1) * limit).limit(limit).all().items
    return items, {"page": page, "limit": limit, "total": total, "pages": math.ceil(total / limit)}


@storefront.repository(part_of=Review)
class ReviewRepository:
    def get_or_none(self, review_id) -> Review | None:
        reviews = self._dao.query.filter(id=str(review_id)).all().items
        return reviews[0] if reviews else None

    def find_active_for(self, user_id, product_id) -> Review | None:
        """The user's live review of the product, if they have one."""
        reviews = (
            self._dao.query.filter(user_id=str(user_id), product_id=str(product_id), is_active=True).all().items
        )
        return reviews[0] if reviews else None

    def for_product(self, product_id, page=1, limit=10, rating=None, sort="newest"):
        """One page of a product's active reviews and the pagination block.

        ``rating`` narrows the page to a single star value. Unknown sort keys
        fall back to newest first.
        """
        filters = {"product_id": str(product_id), "is_active": True}
        if rating:
            filters["rating"] = int(rating)
        query = self._dao.query.filter(**filters).order_by(SORT_ORDERS.get(sort, "-created_at"))
        return _page(query, page, limit)

    def for_user(self, user_id, page=1, limit=10):
        query = self._dao.query.filter(user_id=str(user_id), is_active=True).order_by("-created_at")
        return _page(query, page, limit)

    def latest_for_product(self, product_id, limit=5) -> list[Review]:
        return (
            self._dao.query.filter(product_id=str(product_id), is_active=True)
            .order_by("-created_at")
            .limit(limit)
            .all()
            .items
        )

    def rating_stats(self, product_id) -> dict:
        """Count, mean and per-star distribution over all active reviews of a product."""
        ratings = [
            review.rating
            for review in self._dao.query.filter(product_id=str(product_id), is_active=True).limit(None).all().items
        ]
        total = len(ratings)
        return {
            "total_reviews": total,
            "average_rating": round(sum(ratings) / total, 1) if total else 0.0,
            "rating_distribution": {str(stars): ratings.count(stars) for stars in range(5, 0, -1)},
        }

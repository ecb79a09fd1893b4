"""Repository for the Product aggregate with atomic stock operations and catalog queries."""

import math

from protean.exceptions import ExpectedVersionError

from storefront.domain import storefront
from storefront.errors import InsufficientStock, NotFound
from storefront.product.product import Product
from storefront.utils.logging import get_logger
from storefront.utils.settings import setting

logger = get_logger(__name__)

SORT_ORDERS = {
    "price-asc": "price",
    "price-desc": "-price",
    "name-asc": "name",
    "name-desc": "-name",
    "rating-desc": "-rating",
    "newest": "-created_at",
}


@storefront.repository(part_of=Product)
class ProductRepository:
    """Product persistence.

    Stock changes are optimistic: ``adjust_stock`` reads the product, checks
    the new count and saves it back expecting the version it read. A writer
    that lost the race gets ``ExpectedVersionError`` and starts over from a
    fresh read, so two buyers can never both take the last unit. The save
    runs in the caller's unit of work and rolls back with it.
    """

    def get_or_none(self, product_id) -> Product | None:
        """Return the product, or None when it no longer exists."""
        products = self._dao.query.filter(id=str(product_id)).all().items
        return products[0] if products else None

    def find_by_slug(self, slug) -> Product | None:
        products = self._dao.query.filter(slug=slug).all().items
        return products[0] if products else None

    def browse(
        self,
        page=1,
        limit=12,
        category=None,
        brand=None,
        min_price=None,
        max_price=None,
        search=None,
        featured=None,
        sort=None,
    ):
        """One page of active products matching the filters, with pagination details.

        ``search`` matches case-insensitively against name, brand, category and
        description. Unknown sort keys fall back to newest first.
        """
        page = max(1, int(page))
        limit = max(1, int(limit))

        filters = {"is_active": True}
        if category:
            filters["category"] = category
        if brand:
            filters["brand"] = brand
        if min_price is not None:
            filters["price__gte"] = min_price
        if max_price is not None:
            filters["price__lte"] = max_price
        if search:
            filters["search_text__contains"] = search.strip().lower()
        if featured is not None:
            filters["is_featured"] = featured

        query = self._dao.query.filter(**filters).order_by(SORT_ORDERS.get(sort, "-created_at"))
        total = query.all().total
        products = query.offset((page - 1) * limit).limit(limit).all().items

        return products, {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": math.ceil(total / limit),
        }

    def adjust_stock(self, product_id, delta: int) -> int:
        """Add ``delta`` (negative to decrement) to the stock count and return the new count.

        Raises InsufficientStock when the result would be negative, or when
        every attempt loses to a concurrent writer.
        """
        retries = int(setting("STOCK_CAS_RETRIES"))

        for _ in range(retries):
            product = self.get_or_none(product_id)
            if product is None:
                raise NotFound({"product_id": [f"Product {product_id} not found"]})

            observed = product.count_in_stock or 0
            new_count = observed + delta
            if new_count < 0:
                raise InsufficientStock(
                    {"quantity": [f"Insufficient stock for {product.name}. Available: {observed}"]}
                )

            product.count_in_stock = new_count
            try:
                self.add(product)
            except ExpectedVersionError:
                logger.info("stock_cas_conflict", product_id=str(product_id), observed=observed, delta=delta)
                continue
            return new_count

        raise InsufficientStock({"quantity": [f"Stock for product {product_id} changed concurrently"]})

    def decrement_stock(self, product_id, quantity: int) -> int:
        return self.adjust_stock(product_id, -quantity)

    def restore_stock(self, product_id, quantity: int) -> int:
        return self.adjust_stock(product_id, quantity)

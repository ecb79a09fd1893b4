"""Product aggregate — the catalog record the cart and checkout price against.

Stock lives in ``count_in_stock`` and is only ever changed through the
repository's version-checked stock operations (see ``product/repository.py``),
so concurrent checkouts can never drive it below zero. ``rating`` and
``num_reviews`` summarise the active reviews and are rewritten whenever a
review changes. Variants carry their own option-level price and stock, which
the checkout pipeline does not consult.
"""

import json
import re
from datetime import UTC, datetime

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, HasMany, Integer, String, Text

from storefront.domain import storefront
from storefront.product.events import (
    ProductCreated,
    ProductDeactivated,
    ProductPricingUpdated,
    VariantAdded,
)
from storefront.shared.money import effective_price, round_money


def slugify(name):
    """Lowercase, hyphen-separated slug derived from a product name."""
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")


def searchable_text(*parts):
    """Lowercased text that catalog searches match against."""
    return " ".join(part.strip() for part in parts if part).lower()


@storefront.entity(part_of="Product")
class Variant:
    """A named variant dimension (e.g. "Size") with its selectable options.

    ``options`` is a JSON array of ``{key, value, price, stock}`` objects.
    """

    name = String(required=True, max_length=100)
    options = Text()

    def option_list(self):
        return json.loads(self.options) if self.options else []


@storefront.aggregate
class Product:
    name = String(required=True, max_length=100)
    slug = String(required=True, max_length=200, unique=True)
    description = Text()
    brand = String(max_length=100)
    category = String(max_length=100)
    sku = String(max_length=50)
    price = Float(required=True, min_value=0.0)
    sale_price = Float(min_value=0.0)
    count_in_stock = Integer(default=0, min_value=0)
    is_active = Boolean(default=True)
    is_featured = Boolean(default=False)
    images = Text()  # JSON array of image URLs, primary image first
    rating = Float(default=0.0, min_value=0.0, max_value=5.0)
    num_reviews = Integer(default=0, min_value=0)
    search_text = Text()
    variants = HasMany(Variant)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def images_must_be_a_json_array(self):
        if not self.images:
            return
        try:
            images = json.loads(self.images)
        except (json.JSONDecodeError, TypeError):
            raise ValidationError({"images": ["Images must be valid JSON"]}) from None
        if not isinstance(images, list):
            raise ValidationError({"images": ["Images must be a JSON array"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        name,
        price,
        count_in_stock=0,
        sale_price=None,
        description=None,
        brand=None,
        category=None,
        sku=None,
        slug=None,
        images=None,
        is_featured=False,
    ):
        now = datetime.now(UTC)
        product = cls(
            name=name,
            slug=slug or slugify(name),
            description=description,
            brand=brand,
            category=category,
            sku=sku,
            price=round_money(price),
            sale_price=round_money(sale_price) if sale_price else None,
            count_in_stock=count_in_stock,
            is_active=True,
            is_featured=bool(is_featured),
            images=json.dumps(list(images or [])),
            rating=0.0,
            num_reviews=0,
            search_text=searchable_text(name, brand, category, description),
            created_at=now,
            updated_at=now,
        )
        product.raise_(
            ProductCreated(
                product_id=str(product.id),
                name=product.name,
                price=product.price,
                sale_price=product.sale_price,
                count_in_stock=product.count_in_stock,
            )
        )
        return product

    # -------------------------------------------------------------------
    # Derived values
    # -------------------------------------------------------------------
    @property
    def current_price(self):
        return effective_price(self.price, self.sale_price)

    @property
    def primary_image(self):
        images = json.loads(self.images) if self.images else []
        return images[0] if images else None

    @property
    def discount_percentage(self):
        if self.sale_price and self.price:
            return round((self.price - self.sale_price) / self.price * 100)
        return 0

    def is_purchasable(self):
        return bool(self.is_active) and self.count_in_stock > 0

    # -------------------------------------------------------------------
    # Catalog maintenance
    # -------------------------------------------------------------------
    def update_pricing(self, price, sale_price=None):
        """Replace list and sale price. Carts pick the change up on next touch."""
        self.price = round_money(price)
        self.sale_price = round_money(sale_price) if sale_price else None
        self.updated_at = datetime.now(UTC)

        self.raise_(
            ProductPricingUpdated(
                product_id=str(self.id),
                price=self.price,
                sale_price=self.sale_price,
            )
        )

    def add_variant(self, name, options):
        variant = Variant(name=name, options=json.dumps(options))
        self.add_variants(variant)
        self.updated_at = datetime.now(UTC)

        self.raise_(
            VariantAdded(
                product_id=str(self.id),
                variant_name=name,
                option_count=len(options),
            )
        )

    def deactivate(self):
        if not self.is_active:
            raise ValidationError({"is_active": ["Product is already inactive"]})

        self.is_active = False
        self.updated_at = datetime.now(UTC)
        self.raise_(ProductDeactivated(product_id=str(self.id)))

    def record_rating(self, average, count):
        """Store the rating summary computed from the product's active reviews."""
        self.rating = round(average, 1) if count else 0.0
        self.num_reviews = count
        self.updated_at = datetime.now(UTC)

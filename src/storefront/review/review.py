"""Review aggregate — a customer's rating and write-up of a product.

One active review per customer and product. Deleting a review deactivates
it; only active reviews count towards the product's rating. Other customers
can mark a review helpful, and marking it again takes the mark back.
"""

import json
from datetime import UTC, datetime

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, HasMany, Identifier, Integer, String, Text

from storefront.domain import storefront
from storefront.review.events import ReviewCreated, ReviewDeleted, ReviewHelpfulToggled, ReviewUpdated


@storefront.entity(part_of="Review")
class HelpfulMark:
    user_id = Identifier(required=True)
    marked_at = DateTime(required=True)


@storefront.aggregate
class Review:
    product_id = Identifier(required=True)
    user_id = Identifier(required=True)
    rating = Integer(required=True)
    title = String(required=True, max_length=100)
    comment = Text(required=True)
    images = Text()  # JSON array of image URLs
    is_verified = Boolean(default=False)
    is_active = Boolean(default=True)
    helpful_marks = HasMany(HelpfulMark)
    helpful_count = Integer(default=0, min_value=0)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def rating_must_be_one_to_five(self):
        if self.rating is not None and not 1 <= self.rating <= 5:
            raise ValidationError({"rating": ["Rating must be between 1 and 5"]})

    @invariant.post
    def comment_within_limit(self):
        if self.comment and len(self.comment) > 1000:
            raise ValidationError({"comment": ["Comment cannot be more than 1000 characters"]})

    @invariant.post
    def title_must_not_be_blank(self):
        if self.title is not None and not self.title.strip():
            raise ValidationError({"title": ["Please add a title"]})

    @classmethod
    def create(cls, product_id, user_id, rating, title, comment, images=None, is_verified=False):
        now = datetime.now(UTC)
        review = cls(
            product_id=str(product_id),
            user_id=str(user_id),
            rating=rating,
            title=title.strip(),
            comment=comment,
            images=json.dumps(list(images or [])),
            is_verified=is_verified,
            is_active=True,
            helpful_count=0,
            created_at=now,
            updated_at=now,
        )
        review.raise_(
            ReviewCreated(
                review_id=str(review.id),
                product_id=review.product_id,
                user_id=review.user_id,
                rating=review.rating,
                title=review.title,
                is_verified=is_verified,
            )
        )
        return review

    def belongs_to(self, user_id):
        return str(self.user_id) == str(user_id)

    def image_list(self):
        return json.loads(self.images) if self.images else []

    def revise(self, rating=None, title=None, comment=None, images=None):
        """Replace the fields that were given; the rest keep their values."""
        if not self.is_active:
            raise ValidationError({"review": ["Review has been deleted"]})

        previous_rating = self.rating
        if rating is not None:
            self.rating = rating
        if title:
            self.title = title.strip()
        if comment:
            self.comment = comment
        if images is not None:
            self.images = json.dumps(list(images))
        self.updated_at = datetime.now(UTC)

        self.raise_(
            ReviewUpdated(
                review_id=str(self.id),
                product_id=str(self.product_id),
                rating=self.rating,
                previous_rating=previous_rating,
            )
        )

    def delete(self, deleted_by):
        if not self.is_active:
            raise ValidationError({"review": ["Review has been deleted"]})

        self.is_active = False
        self.updated_at = datetime.now(UTC)
        self.raise_(
            ReviewDeleted(
                review_id=str(self.id),
                product_id=str(self.product_id),
                rating=self.rating,
                deleted_by=str(deleted_by),
            )
        )

    def toggle_helpful(self, user_id):
        """Mark the review helpful for ``user_id``, or take an earlier mark back.

        Returns True when the review is now marked helpful by ``user_id``.
        """
        if self.belongs_to(user_id):
            raise ValidationError({"helpful": ["Cannot mark your own review as helpful"]})

        now = datetime.now(UTC)
        existing = next((mark for mark in self.helpful_marks if str(mark.user_id) == str(user_id)), None)
        if existing:
            self.remove_helpful_marks(existing)
        else:
            self.add_helpful_marks(HelpfulMark(user_id=str(user_id), marked_at=now))

        self.helpful_count = len(self.helpful_marks)
        self.updated_at = now

        self.raise_(
            ReviewHelpfulToggled(
                review_id=str(self.id),
                user_id=str(user_id),
                is_helpful=existing is None,
                helpful_count=self.helpful_count,
            )
        )
        return existing is None

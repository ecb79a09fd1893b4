"""Review lifecycle — commands and handler.

Only customers with a delivered order containing the product may review it,
once per product. Authors revise or withdraw their own reviews; administrators
may withdraw any. Every change that moves the star count refreshes the
product's rating in the same unit of work.
"""

import json

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Boolean, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.errors import NotFound, Unauthorized
from storefront.order.order import Order
from storefront.product.product import Product
from storefront.review.rating import refresh_product_rating
from storefront.review.review import Review
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


@storefront.command(part_of="Review")
class CreateReview:
    user_id = Identifier(required=True)
    product_id = Identifier(required=True)
    rating = Integer(required=True)
    title = String(required=True, max_length=100)
    comment = Text(required=True)
    images = Text()  # JSON: list of image URLs


@storefront.command(part_of="Review")
class UpdateReview:
    review_id = Identifier(required=True)
    user_id = Identifier(required=True)
    rating = Integer()
    title = String(max_length=100)
    comment = Text()
    images = Text()  # JSON: list of image URLs


@storefront.command(part_of="Review")
class DeleteReview:
    review_id = Identifier(required=True)
    requested_by = Identifier(required=True)
    is_admin = Boolean(default=False)


@storefront.command(part_of="Review")
class MarkReviewHelpful:
    review_id = Identifier(required=True)
    user_id = Identifier(required=True)


def _images(value):
    return json.loads(value) if isinstance(value, str) else value


def load_review(review_id) -> Review:
    review = current_domain.repository_for(Review).get_or_none(review_id)
    if review is None or not review.is_active:
        raise NotFound({"review_id": ["Review not found"]})
    return review


@storefront.command_handler(part_of=Review)
class ReviewHandler:
    @handle(CreateReview)
    def create_review(self, command):
        product = current_domain.repository_for(Product).get_or_none(command.product_id)
        if product is None:
            raise NotFound({"product_id": ["Product not found"]})

        repo = current_domain.repository_for(Review)
        if repo.find_active_for(command.user_id, command.product_id):
            raise ValidationError({"review": ["You have already reviewed this product"]})

        if not current_domain.repository_for(Order).has_delivered(command.user_id, command.product_id):
            raise ValidationError({"review": ["You can only review products you have purchased"]})

        review = Review.create(
            product_id=command.product_id,
            user_id=command.user_id,
            rating=command.rating,
            title=command.title,
            comment=command.comment,
            images=_images(command.images),
            is_verified=True,
        )
        repo.add(review)
        refresh_product_rating(command.product_id)

        logger.info("review_created", review_id=str(review.id), product_id=str(command.product_id))
        return review

    @handle(UpdateReview)
    def update_review(self, command):
        review = load_review(command.review_id)
        if not review.belongs_to(command.user_id):
            raise Unauthorized({"review_id": ["Not authorized to update this review"]})

        previous_rating = review.rating
        review.revise(
            rating=command.rating,
            title=command.title,
            comment=command.comment,
            images=_images(command.images),
        )
        current_domain.repository_for(Review).add(review)
        if review.rating != previous_rating:
            refresh_product_rating(review.product_id)
        return review

    @handle(DeleteReview)
    def delete_review(self, command):
        review = load_review(command.review_id)
        if not command.is_admin and not review.belongs_to(command.requested_by):
            raise Unauthorized({"review_id": ["Not authorized to delete this review"]})

        review.delete(deleted_by=command.requested_by)
        current_domain.repository_for(Review).add(review)
        refresh_product_rating(review.product_id)

        logger.info("review_deleted", review_id=str(review.id), by_admin=bool(command.is_admin))
        return review

    @handle(MarkReviewHelpful)
    def mark_helpful(self, command):
        review = load_review(command.review_id)
        is_helpful = review.toggle_helpful(command.user_id)
        current_domain.repository_for(Review).add(review)
        return {"helpful_count": review.helpful_count, "is_helpful": is_helpful}

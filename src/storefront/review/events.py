"""Domain events for the Review aggregate."""

from protean.fields import Boolean, Identifier, Integer, String

from storefront.domain import storefront


@storefront.event(part_of="Review")
class ReviewCreated:
    __version__ = 1

    review_id = Identifier(required=True)
    product_id = Identifier(required=True)
    user_id = Identifier(required=True)
    rating = Integer(required=True)
    title = String(required=True)
    is_verified = Boolean(default=False)


@storefront.event(part_of="Review")
class ReviewUpdated:
    __version__ = 1

    review_id = Identifier(required=True)
    product_id = Identifier(required=True)
    rating = Integer(required=True)
    previous_rating = Integer(required=True)


@storefront.event(part_of="Review")
class ReviewDeleted:
    """The review was withdrawn by its author or an administrator."""

    __version__ = 1

    review_id = Identifier(required=True)
    product_id = Identifier(required=True)
    rating = Integer(required=True)
    deleted_by = Identifier(required=True)


@storefront.event(part_of="Review")
class ReviewHelpfulToggled:
    __version__ = 1

    review_id = Identifier(required=True)
    user_id = Identifier(required=True)
    is_helpful = Boolean(required=True)
    helpful_count = Integer(required=True)

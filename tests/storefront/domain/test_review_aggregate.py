"""Tests for the Review aggregate."""

import pytest
from protean.exceptions import ValidationError
from storefront.review.events import ReviewCreated, ReviewDeleted, ReviewHelpfulToggled, ReviewUpdated
from storefront.review.review import Review

AUTHOR = "user-001"
READER = "user-002"


def _review(**overrides):
    values = {
        "product_id": "prod-001",
        "user_id": AUTHOR,
        "rating": 4,
        "title": "  Solid shoe  ",
        "comment": "Comfortable from the first day.",
    }
    values.update(overrides)
    return Review.create(**values)


class TestReviewCreation:
    def test_defaults(self):
        review = _review(images=["a.jpg"])

        assert review.title == "Solid shoe"
        assert review.is_active is True
        assert review.is_verified is False
        assert review.helpful_count == 0
        assert review.image_list() == ["a.jpg"]

    def test_raises_created_event(self):
        review = _review(is_verified=True)
        event = review._events[0]
        assert isinstance(event, ReviewCreated)
        assert event.rating == 4
        assert event.is_verified is True

    @pytest.mark.parametrize("rating", [0, 6])
    def test_rating_out_of_range(self, rating):
        with pytest.raises(ValidationError) as exc:
            _review(rating=rating)
        assert exc.value.messages["rating"] == ["Rating must be between 1 and 5"]

    def test_comment_too_long(self):
        with pytest.raises(ValidationError):
            _review(comment="x" * 1001)

    def test_title_too_long(self):
        with pytest.raises(ValidationError):
            _review(title="x" * 101)


class TestRevise:
    def test_only_given_fields_change(self):
        review = _review()
        review.revise(rating=2)

        assert review.rating == 2
        assert review.title == "Solid shoe"
        assert review.comment == "Comfortable from the first day."

    def test_raises_updated_event_with_previous_rating(self):
        review = _review()
        review.revise(rating=5, title="Even better now")

        event = review._events[-1]
        assert isinstance(event, ReviewUpdated)
        assert (event.previous_rating, event.rating) == (4, 5)

    def test_invalid_rating_rejected(self):
        review = _review()
        with pytest.raises(ValidationError):
            review.revise(rating=9)

    def test_deleted_review_cannot_be_revised(self):
        review = _review()
        review.delete(deleted_by=AUTHOR)
        with pytest.raises(ValidationError):
            review.revise(rating=1)


class TestDelete:
    def test_deactivates(self):
        review = _review()
        review.delete(deleted_by="admin-001")

        assert review.is_active is False
        event = review._events[-1]
        assert isinstance(event, ReviewDeleted)
        assert event.deleted_by == "admin-001"

    def test_twice_rejected(self):
        review = _review()
        review.delete(deleted_by=AUTHOR)
        with pytest.raises(ValidationError):
            review.delete(deleted_by=AUTHOR)


class TestHelpfulMarks:
    def test_mark_then_unmark(self):
        review = _review()

        assert review.toggle_helpful(READER) is True
        assert review.helpful_count == 1

        assert review.toggle_helpful(READER) is False
        assert review.helpful_count == 0
        assert len(review.helpful_marks) == 0

    def test_marks_from_different_readers_add_up(self):
        review = _review()
        review.toggle_helpful(READER)
        review.toggle_helpful("user-003")

        assert review.helpful_count == 2
        event = review._events[-1]
        assert isinstance(event, ReviewHelpfulToggled)
        assert event.helpful_count == 2

    def test_author_cannot_mark_own_review(self):
        review = _review()
        with pytest.raises(ValidationError) as exc:
            review.toggle_helpful(AUTHOR)
        assert exc.value.messages["helpful"] == ["Cannot mark your own review as helpful"]

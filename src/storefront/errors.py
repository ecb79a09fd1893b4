"""Error taxonomy for the storefront.

Business rule violations subclass Protean's exceptions so that a failing
command handler rolls back its unit of work and the API layer can map each
class to a status code. Every error carries Protean's ``{field: [message]}``
payload in ``messages``.
"""

from protean.exceptions import InvalidOperationError, ObjectNotFoundError, ValidationError


class NotFound(ObjectNotFoundError):
    """An entity the operation depends on does not exist."""


class ProductGone(ValidationError):
    """A product referenced by a cart line was removed from the catalog."""


class InsufficientStock(ValidationError):
    """The requested quantity exceeds the product's available stock."""


class InvalidCoupon(ValidationError):
    """A coupon is unknown, expired, inactive, exhausted, or below its minimum."""


class EmptyCart(ValidationError):
    """Checkout or coupon application was attempted on an empty cart."""


class InvalidTransition(ValidationError):
    """The order cannot move from its current status to the requested one."""


class Unauthorized(InvalidOperationError):
    """The caller does not own the resource and is not an administrator."""


class OrderNumberUnavailable(InvalidOperationError):
    """The daily order sequence kept losing to concurrent checkouts."""


def first_message(exc: Exception) -> str:
    """Flatten an exception payload into the first human readable message."""
    messages = getattr(exc, "messages", None)
    if not isinstance(messages, dict) and exc.args:
        messages = exc.args[0]

    if isinstance(messages, dict):
        for value in messages.values():
            if isinstance(value, list | tuple) and value:
                return str(value[0])
            if value:
                return str(value)
    return str(messages) if messages else exc.__class__.__name__

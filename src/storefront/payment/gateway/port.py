"""Payment provider port.

Checkout never talks to a provider directly: payment confirmation asks the
provider what happened to a transaction, and refunds ask it to reverse one.
Adapters translate those two questions into a concrete provider's API.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class PaymentLookup:
    """The provider's view of a payment transaction."""

    found: bool
    transaction_id: str | None = None
    status: str | None = None  # e.g. "succeeded", "processing", "failed"
    amount: float | None = None
    currency: str | None = None
    user_id: str | None = None


@dataclass(frozen=True)
class RefundResult:
    success: bool
    refund_id: str | None = None
    status: str | None = None
    amount: float | None = None
    failure_reason: str | None = None


class PaymentGateway(ABC):
    @abstractmethod
    def retrieve_payment(self, transaction_id: str) -> PaymentLookup:
        """Look up a transaction the customer completed with the provider."""
        ...

    @abstractmethod
    def create_refund(self, transaction_id: str, amount: float, reason: str) -> RefundResult:
        """Refund ``amount`` of a previously captured transaction."""
        ...

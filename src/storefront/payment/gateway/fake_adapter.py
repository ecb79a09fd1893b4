"""In-memory payment provider for development and tests.

Payments are registered with :meth:`FakeGateway.register_payment`, standing in
for the customer completing checkout on the provider's side. Refunds succeed
unless the gateway is configured to decline them.
"""

from uuid import uuid4

from storefront.payment.gateway.port import PaymentGateway, PaymentLookup, RefundResult


class FakeGateway(PaymentGateway):
    def __init__(self) -> None:
        self.payments: dict[str, PaymentLookup] = {}
        self.refunds_succeed: bool = True
        self.failure_reason: str = "Refund declined"
        self.calls: list[dict] = []

    def configure(self, refunds_succeed: bool, failure_reason: str = "Refund declined") -> None:
        self.refunds_succeed = refunds_succeed
        self.failure_reason = failure_reason

    def register_payment(
        self,
        amount: float,
        user_id: str,
        status: str = "succeeded",
        currency: str = "usd",
        transaction_id: str | None = None,
    ) -> str:
        """Record a provider-side payment and return its transaction id."""
        transaction_id = transaction_id or f"fake_pi_{uuid4().hex[:12]}"
        self.payments[transaction_id] = PaymentLookup(
            found=True,
            transaction_id=transaction_id,
            status=status,
            amount=amount,
            currency=currency,
            user_id=str(user_id),
        )
        return transaction_id

    def retrieve_payment(self, transaction_id: str) -> PaymentLookup:
        self.calls.append({"method": "retrieve_payment", "transaction_id": transaction_id})
        return self.payments.get(transaction_id, PaymentLookup(found=False))

    def create_refund(self, transaction_id: str, amount: float, reason: str) -> RefundResult:
        self.calls.append(
            {
                "method": "create_refund",
                "transaction_id": transaction_id,
                "amount": amount,
                "reason": reason,
            }
        )

        if not self.refunds_succeed:
            return RefundResult(success=False, status="failed", failure_reason=self.failure_reason)

        return RefundResult(
            success=True,
            refund_id=f"fake_re_{uuid4().hex[:12]}",
            status="succeeded",
            amount=amount,
        )

"""Payment gateway selection.

``get_gateway()`` returns the active adapter, a FakeGateway unless another
one was installed with ``set_gateway()``.
"""

from storefront.payment.gateway.fake_adapter import FakeGateway
from storefront.payment.gateway.port import PaymentGateway

_current_gateway: PaymentGateway | None = None


def get_gateway() -> PaymentGateway:
    global _current_gateway
    if _current_gateway is None:
        _current_gateway = FakeGateway()
    return _current_gateway


def set_gateway(gateway: PaymentGateway) -> None:
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    global _current_gateway
    _current_gateway = None

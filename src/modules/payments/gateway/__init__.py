"""Payment gateway factory.

``get_gateway()`` builds the adapter named by ``PAYMENT_GATEWAY``
(``razorpay`` or ``fake``) on first use; tests swap it with
``set_gateway()`` and restore it with ``reset_gateway()``.
"""

from __future__ import annotations

from django.conf import settings

from modules.payments.gateway.fake_adapter import FakeGateway
from modules.payments.gateway.port import PaymentGateway
from modules.payments.gateway.razorpay_adapter import RazorpayGateway

_ADAPTERS = {
    "razorpay": RazorpayGateway,
    "fake": FakeGateway,
}

_current_gateway: PaymentGateway | None = None


def get_gateway() -> PaymentGateway:
    global _current_gateway
    if _current_gateway is None:
        adapter = _ADAPTERS.get(settings.PAYMENT_GATEWAY)
        if adapter is None:
            raise ValueError(f"Unknown PAYMENT_GATEWAY: {settings.PAYMENT_GATEWAY}")
        _current_gateway = adapter()
    return _current_gateway


def set_gateway(gateway: PaymentGateway) -> None:
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    global _current_gateway
    _current_gateway = None

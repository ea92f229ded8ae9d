"""Configurable fake payment gateway for development and testing.

Simulates the gateway without network calls.  Tests configure it to
fail and inspect ``calls`` to assert what was sent.
"""

from __future__ import annotations

from typing import Dict
from uuid import uuid4

from modules.payments.exceptions import GatewayAuthenticationError, GatewayError
from modules.payments.gateway.port import GatewayOrderResult, PaymentGateway


class FakeGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.failure_reason: str = "Gateway unavailable"
        self.auth_failure: bool = False
        self.calls: list[dict] = []

    def configure(
        self,
        should_succeed: bool,
        failure_reason: str = "Gateway unavailable",
        auth_failure: bool = False,
    ) -> None:
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.auth_failure = auth_failure

    def create_order(
        self,
        amount: int,
        currency: str,
        receipt: str,
        notes: Dict[str, str],
    ) -> GatewayOrderResult:
        self.calls.append(
            {
                "method": "create_order",
                "amount": amount,
                "currency": currency,
                "receipt": receipt,
                "notes": dict(notes),
            }
        )

        if self.auth_failure:
            raise GatewayAuthenticationError()
        if not self.should_succeed:
            raise GatewayError(self.failure_reason)

        return GatewayOrderResult(
            id=f"order_fake{uuid4().hex[:14]}",
            amount=amount,
            currency=currency,
            receipt=receipt,
            notes=dict(notes),
        )

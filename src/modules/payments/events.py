"""Domain events for the Payments bounded context."""

from __future__ import annotations

from dataclasses import dataclass

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class PaymentVerified(DomainEvent):
    """Raised when a signed payment is recorded, before the order exists."""

    gateway_order_id: str = ""
    payment_id: str = ""
    amount: int = 0

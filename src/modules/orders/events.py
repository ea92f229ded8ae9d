"""Domain events for the Orders bounded context."""

from __future__ import annotations

from dataclasses import dataclass

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class OrderCreated(DomainEvent):
    """Raised when an order is created (checkout or verified payment)."""

    order_number: str = ""
    total: str = "0"
    payment_method: str = ""


@dataclass(frozen=True)
class OrderStatusChanged(DomainEvent):
    """Raised on every status transition other than the cancelled no-op."""

    old_status: str = ""
    new_status: str = ""


@dataclass(frozen=True)
class OrderCancelled(DomainEvent):
    """Raised when an order enters ``Cancelled``."""

    stock_restored: bool = False

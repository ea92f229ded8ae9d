"""Payment gateway port (abstract interface).

Only what the checkout needs from a gateway: creating an order for an
amount in the smallest currency unit.  Payment capture happens in the
customer's browser; its proof comes back as a signed payment id.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict


@dataclass(frozen=True)
class GatewayOrderResult:
    """Gateway order as returned by the provider."""

    id: str
    amount: int
    currency: str
    receipt: str
    status: str = "created"
    notes: Dict[str, str] = field(default_factory=dict)


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    @abstractmethod
    def create_order(
        self,
        amount: int,
        currency: str,
        receipt: str,
        notes: Dict[str, str],
    ) -> GatewayOrderResult:
        """Create a gateway order for ``amount`` paise.

        Raises ``GatewayAuthenticationError`` when the credentials are
        rejected and ``GatewayError`` for any other failure.
        """
        ...

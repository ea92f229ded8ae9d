"""Carrier port (abstract interface) and its value types."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union


@dataclass(frozen=True)
class PickupScheduleResult:
    """Outcome of one pickup request; failures are data, not exceptions."""

    success: bool
    pickup_scheduled_date: Optional[str] = None
    pickup_token: Optional[str] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class ShipmentLine:
    name: str
    sku: str
    units: int
    selling_price: float


@dataclass(frozen=True)
class ShipmentRequest:
    """Everything the carrier needs to book one order for delivery."""

    order_reference: str
    order_date: str
    customer_first_name: str
    customer_last_name: str
    address: str
    city: str
    state: str
    pincode: str
    email: str
    phone: str
    payment_method: str  # "COD" or "Prepaid"
    sub_total: float
    lines: List[ShipmentLine] = field(default_factory=list)


@dataclass(frozen=True)
class ShipmentCreationResult:
    carrier_order_id: str
    shipment_id: str
    awb_code: str = ""
    courier_name: str = ""
    tracking_url: str = ""


@dataclass(frozen=True)
class CancellationResult:
    success: bool
    message: str
    response: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class CourierOption:
    id: int
    courier_name: str
    estimated_delivery_days: Union[str, int, float]
    cod: int
    rate: float


@dataclass(frozen=True)
class ServiceabilityResult:
    is_serviceable: bool
    estimated_delivery_days: Optional[str] = None
    cod_available: bool = False
    courier_options: List[CourierOption] = field(default_factory=list)

    @classmethod
    def unserviceable(cls) -> ServiceabilityResult:
        return cls(is_serviceable=False)


class Carrier(ABC):
    @abstractmethod
    def request_pickup(self, shipment_id: str, pickup_date: str) -> PickupScheduleResult:
        """Ask the carrier to collect ``shipment_id`` on ``pickup_date`` (YYYY-MM-DD).

        Transport and HTTP failures come back as unsuccessful results;
        ``CarrierAuthError`` is raised when the carrier cannot be logged into.
        """
        ...

    @abstractmethod
    def create_shipment(self, request: ShipmentRequest) -> ShipmentCreationResult:
        """Book the order with the carrier.

        Raises ``CarrierError`` when the carrier is unreachable, refuses the
        order or answers without an order/shipment identifier.
        """
        ...

    @abstractmethod
    def cancel_shipment(self, carrier_order_id: str) -> CancellationResult:
        """Cancel a booked carrier order; transport and HTTP failures are data."""
        ...

    @abstractmethod
    def check_serviceability(
        self, delivery_pincode: str, weight_kg: float, cod: bool
    ) -> ServiceabilityResult:
        """Whether the carrier delivers to ``delivery_pincode``.

        Raises ``CarrierError`` on transport or unexpected HTTP failures.
        """
        ...

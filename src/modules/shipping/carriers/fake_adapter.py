"""In-process carrier for development and tests."""

from __future__ import annotations

from itertools import count
from uuid import uuid4

from modules.shipping.carriers.port import (
    CancellationResult,
    Carrier,
    CourierOption,
    PickupScheduleResult,
    ServiceabilityResult,
    ShipmentCreationResult,
    ShipmentRequest,
)
from modules.shipping.exceptions import CarrierError


class FakeCarrier(Carrier):
    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.failure_reason: str = "Pickup scheduling returned non-success status"
        self.booking_error: str | None = None
        self.cancel_succeeds: bool = True
        self.unserviceable_pincodes: set[str] = set()
        self.calls: list[dict] = []
        self._ids = count(1001)

    def configure(
        self,
        should_succeed: bool,
        failure_reason: str = "Pickup scheduling returned non-success status",
    ) -> None:
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason

    def calls_to(self, method: str) -> list[dict]:
        return [call for call in self.calls if call["method"] == method]

    def request_pickup(self, shipment_id: str, pickup_date: str) -> PickupScheduleResult:
        self.calls.append(
            {"method": "request_pickup", "shipment_id": shipment_id, "pickup_date": pickup_date}
        )
        if not self.should_succeed:
            return PickupScheduleResult(success=False, error=self.failure_reason)
        return PickupScheduleResult(
            success=True,
            pickup_scheduled_date=pickup_date,
            pickup_token=f"fake_pickup_{uuid4().hex[:10]}",
        )

    def create_shipment(self, request: ShipmentRequest) -> ShipmentCreationResult:
        self.calls.append({"method": "create_shipment", "request": request})
        if self.booking_error:
            raise CarrierError(self.booking_error)
        number = next(self._ids)
        return ShipmentCreationResult(
            carrier_order_id=f"FAKE-ORD-{number}",
            shipment_id=str(number),
            awb_code=f"FAKEAWB{number}",
            courier_name="Fake Express",
            tracking_url=f"https://track.example.com/FAKEAWB{number}",
        )

    def cancel_shipment(self, carrier_order_id: str) -> CancellationResult:
        self.calls.append({"method": "cancel_shipment", "carrier_order_id": carrier_order_id})
        if not self.cancel_succeeds:
            return CancellationResult(success=False, message="Carrier refused the cancellation.")
        return CancellationResult(success=True, message="Shipment cancelled successfully.")

    def check_serviceability(
        self, delivery_pincode: str, weight_kg: float, cod: bool
    ) -> ServiceabilityResult:
        self.calls.append(
            {
                "method": "check_serviceability",
                "pincode": delivery_pincode,
                "weight": weight_kg,
                "cod": cod,
            }
        )
        if delivery_pincode in self.unserviceable_pincodes:
            return ServiceabilityResult.unserviceable()
        return ServiceabilityResult(
            is_serviceable=True,
            estimated_delivery_days="2-3 Days",
            cod_available=True,
            courier_options=[
                CourierOption(
                    id=1,
                    courier_name="Fake Express",
                    estimated_delivery_days="2-3 Days",
                    cod=1,
                    rate=49.0,
                )
            ],
        )

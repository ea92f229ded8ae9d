"""Courier pickup scheduling for carrier shipments.

``schedule_pickup`` never raises: every failure, including carrier
credential problems, is returned as an unsuccessful
``PickupScheduleResult`` so a pickup problem can never break the order
flow that triggered it.
"""

from __future__ import annotations

from typing import Any, Optional

import structlog
from django.utils import timezone

from modules.shipping.carriers import get_carrier
from modules.shipping.carriers.port import Carrier, PickupScheduleResult
from modules.shipping.exceptions import CarrierError

logger = structlog.get_logger(__name__)

INVALID_SHIPMENT_MESSAGE = "Invalid or missing shipment_id for pickup scheduling."


class ShipmentScheduler:
    def __init__(self, carrier: Optional[Carrier] = None) -> None:
        self._carrier = carrier

    @property
    def carrier(self) -> Carrier:
        return self._carrier or get_carrier()

    def schedule_pickup(self, shipment_id: Any) -> PickupScheduleResult:
        """Request a pickup for today (``TIME_ZONE`` calendar date)."""
        shipment = "" if shipment_id is None else str(shipment_id).strip()
        if not shipment or shipment == "0":
            return PickupScheduleResult(success=False, error=INVALID_SHIPMENT_MESSAGE)

        pickup_date = timezone.localdate().isoformat()
        log = logger.bind(shipment_id=shipment, pickup_date=pickup_date)

        try:
            result = self.carrier.request_pickup(shipment, pickup_date)
        except CarrierError as exc:
            result = PickupScheduleResult(success=False, error=str(exc))
        except Exception as exc:
            log.exception("pickup.unexpected_error")
            result = PickupScheduleResult(
                success=False, error=f"Pickup scheduling failed unexpectedly: {exc}"
            )

        if result.success:
            log.info(
                "pickup.scheduled",
                scheduled_date=result.pickup_scheduled_date,
                pickup_token=result.pickup_token,
            )
        else:
            log.warning("pickup.failed", error=result.error)
        return result

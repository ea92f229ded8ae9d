"""Shipping service layer.

Everything the storefront does with its carrier besides the pickup call
itself (see ``scheduler``):

- ``create_shipment_for_order``: book a new order with the carrier and
  request its pickup.  Never raises; a failed booking is recorded as
  ``shipment_status = creation_failed``.
- ``cancel_shipment`` / ``cancel_order``: cancel the carrier booking
  (delivered shipments cannot be cancelled).
- ``apply_tracking_update``: fold a tracking webhook push into the order.
  Order status changes go through ``OrderService.transition_status`` so
  the timeline stays append-only.
- ``check_serviceability``: pincode check before checkout.

Carrier calls are made outside any row lock; only the writes that follow
them lock the order.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, Optional, Tuple
from uuid import UUID

import structlog
from django.db import transaction
from django.utils import timezone
from pydantic import ValidationError

from modules.orders.constants import OrderStatus, PaymentMethod, ShipmentStatus
from modules.orders.exceptions import InvalidOrderStatus
from modules.shipping.carriers import get_carrier
from modules.shipping.carriers.port import (
    CancellationResult,
    Carrier,
    ServiceabilityResult,
    ShipmentCreationResult,
    ShipmentLine,
    ShipmentRequest,
)
from modules.shipping.dtos import ServiceabilityQueryDTO, TrackingUpdateDTO
from modules.shipping.exceptions import CarrierError
from modules.shipping.scheduler import ShipmentScheduler
from modules.shipping.tracking import is_delivered, order_status_for, shipment_status_for

if TYPE_CHECKING:
    from modules.core.identity import Identity
    from modules.orders.models import Order
    from modules.orders.repositories.interfaces import IOrderRepository
    from modules.orders.services import OrderService

logger = structlog.get_logger(__name__)

CARRIER_ACTOR = "carrier"
INVALID_WEBHOOK_MESSAGE = "Invalid webhook payload: missing awb."
NO_MATCHING_ORDER_MESSAGE = "No matching order found for AWB or carrier order id."
ALREADY_DELIVERED_MESSAGE = "Cannot cancel a shipment that has already been delivered."
ALREADY_CANCELLED_MESSAGE = "Shipment is already cancelled."
NOT_BOOKED_MESSAGE = "Order cancelled (no carrier shipment had been created yet)."


@dataclass(frozen=True)
class TrackingUpdateResult:
    success: bool
    message: str


def split_name(full_name: str) -> Tuple[str, str]:
    parts = " ".join((full_name or "").split()).split(" ")
    if not parts[0]:
        return "Customer", ""
    return parts[0], " ".join(parts[1:])


def build_shipment_request(order: Order) -> ShipmentRequest:
    first_name, last_name = split_name(order.customer_name)
    return ShipmentRequest(
        order_reference=order.order_number,
        order_date=order.created_at.isoformat(),
        customer_first_name=first_name,
        customer_last_name=last_name,
        address=order.address,
        city=order.city,
        state=order.state,
        pincode=order.pincode,
        email=order.customer_email,
        phone=order.customer_phone,
        payment_method="COD" if order.payment_method == PaymentMethod.COD else "Prepaid",
        sub_total=float(order.total),
        lines=[
            ShipmentLine(
                name=item.name,
                sku=item.product_id,
                units=max(1, item.qty),
                selling_price=float(item.price),
            )
            for item in order.items.all()
        ],
    )


class ShippingService:
    def __init__(
        self,
        order_repository: IOrderRepository,
        order_service: OrderService,
        carrier: Optional[Carrier] = None,
        scheduler: Optional[ShipmentScheduler] = None,
    ) -> None:
        self._order_repo = order_repository
        self._order_service = order_service
        self._carrier = carrier
        self._scheduler = scheduler or ShipmentScheduler(carrier=carrier)

    @property
    def carrier(self) -> Carrier:
        return self._carrier or get_carrier()

    # ------------------------------------------------------------------
    # Booking
    # ------------------------------------------------------------------

    def create_shipment_for_order(
        self, order_id: UUID | str
    ) -> Optional[ShipmentCreationResult]:
        order = self._order_repo.get_by_id(str(order_id))
        if order is None:
            logger.warning("shipment.order_missing", order_id=str(order_id))
            return None
        log = logger.bind(order_id=str(order.id), order_number=order.order_number)
        if order.carrier_order_id:
            log.info("shipment.already_created", carrier_order_id=order.carrier_order_id)
            return None

        try:
            booking = self.carrier.create_shipment(build_shipment_request(order))
        except CarrierError as exc:
            log.warning("shipment.creation_failed", error=str(exc))
            self._update(order.id, {"shipment_status": ShipmentStatus.CREATION_FAILED})
            return None
        except Exception:
            log.exception("shipment.creation_unexpected_error")
            self._update(order.id, {"shipment_status": ShipmentStatus.CREATION_FAILED})
            return None

        fields: Dict[str, Any] = {
            "carrier_order_id": booking.carrier_order_id,
            "awb_code": booking.awb_code,
            "tracking_url": booking.tracking_url,
            "shipment_status": ShipmentStatus.CREATED,
        }
        if booking.shipment_id:
            fields["shipment_id"] = booking.shipment_id
        if booking.courier_name:
            fields["shipping_carrier"] = booking.courier_name
        self._update(order.id, fields)
        log.info(
            "shipment.created",
            carrier_order_id=booking.carrier_order_id,
            shipment_id=booking.shipment_id,
        )

        if booking.shipment_id:
            pickup = self._scheduler.schedule_pickup(booking.shipment_id)
            self._order_service.record_pickup_result(order.id, pickup)
            self._update(
                order.id,
                {
                    "shipment_status": ShipmentStatus.PICKUP_SCHEDULED
                    if pickup.success
                    else ShipmentStatus.PICKUP_FAILED
                },
            )
        return booking

    # ------------------------------------------------------------------
    # Cancellation
    # ------------------------------------------------------------------

    def cancel_shipment(
        self, order_id: UUID | str, carrier_order_id: str = ""
    ) -> CancellationResult:
        """Cancel the carrier booking of an order.

        ``carrier_order_id`` lets a booking be cancelled after its order was
        deleted.
        """
        order = self._order_repo.get_by_id(str(order_id))
        if order is None:
            if carrier_order_id:
                return self._cancel_at_carrier(carrier_order_id, order_id=str(order_id))
            return CancellationResult(success=False, message="Order not found.")

        if is_delivered(order.shipment_status) or order.status == OrderStatus.DELIVERED:
            return CancellationResult(success=False, message=ALREADY_DELIVERED_MESSAGE)
        if order.shipment_status.lower() == ShipmentStatus.CANCELLED:
            return CancellationResult(success=False, message=ALREADY_CANCELLED_MESSAGE)

        if not order.carrier_order_id:
            self._update(order.id, {"shipment_status": ShipmentStatus.CANCELLED})
            return CancellationResult(success=True, message=NOT_BOOKED_MESSAGE)

        result = self._cancel_at_carrier(order.carrier_order_id, order_id=str(order.id))
        if result.success:
            self._update(order.id, {"shipment_status": ShipmentStatus.CANCELLED})
        return result

    def cancel_order(self, identity: Identity, order_id: str) -> CancellationResult:
        """Customer-initiated cancellation: carrier first, then the order.

        Raises:
            OrderNotFound: unknown order, or not the caller's.
        """
        order = self._order_service.get_order_for(identity, order_id)
        result = self.cancel_shipment(order.id)
        if result.success and order.status != OrderStatus.CANCELLED:
            self._order_service.transition_status(
                order.id,
                OrderStatus.CANCELLED,
                note="Cancelled by customer",
                updated_by=identity.email or identity.uid,
            )
        return result

    def _cancel_at_carrier(self, carrier_order_id: str, order_id: str) -> CancellationResult:
        log = logger.bind(order_id=order_id, carrier_order_id=carrier_order_id)
        try:
            result = self.carrier.cancel_shipment(carrier_order_id)
        except CarrierError as exc:
            result = CancellationResult(success=False, message=str(exc))
        if result.success:
            log.info("shipment.cancelled")
        else:
            log.warning("shipment.cancel_failed", error=result.message)
        return result

    # ------------------------------------------------------------------
    # Tracking
    # ------------------------------------------------------------------

    def apply_tracking_update(self, payload: Any) -> TrackingUpdateResult:
        try:
            update = TrackingUpdateDTO.model_validate(payload)
        except ValidationError:
            logger.warning("tracking.invalid_payload")
            return TrackingUpdateResult(success=False, message=INVALID_WEBHOOK_MESSAGE)

        order = self._order_repo.find(awb_code=update.awb).first()
        via = "AWB"
        if order is None and update.order_id:
            order = self._order_repo.find(carrier_order_id=update.order_id).first()
            via = "carrier order id"
        if order is None:
            logger.warning(
                "tracking.order_not_found", awb=update.awb, carrier_order_id=update.order_id
            )
            return TrackingUpdateResult(success=False, message=NO_MATCHING_ORDER_MESSAGE)

        shipment_status = shipment_status_for(update.current_status)
        fields: Dict[str, Any] = {
            "shipment_status": shipment_status[:32],
            "raw_carrier_status": update.current_status[:64],
            "awb_code": update.awb[:64],
            "tracking_number": update.awb[:128],
            "last_tracking_update": timezone.now(),
        }
        if shipment_status == "Delivered" and update.delivered_date:
            fields["delivery_date"] = update.delivered_date[:32]
        if update.location:
            fields["last_location"] = update.location

        log = logger.bind(order_id=str(order.id), shipment_status=shipment_status)
        with transaction.atomic():
            self._update(order.id, fields)
            target = order_status_for(shipment_status)
            if target and target != order.status:
                try:
                    self._order_service.transition_status(
                        order.id,
                        target,
                        note=f"Carrier update: {update.current_status or shipment_status}",
                        updated_by=CARRIER_ACTOR,
                        schedule_pickup=False,
                    )
                except InvalidOrderStatus:
                    log.warning("tracking.transition_rejected", order_status=order.status)
        log.info("tracking.updated", via=via)
        return TrackingUpdateResult(success=True, message=f"Order tracking updated via {via}.")

    # ------------------------------------------------------------------
    # Serviceability
    # ------------------------------------------------------------------

    def check_serviceability(self, query: ServiceabilityQueryDTO) -> ServiceabilityResult:
        """Raises ``CarrierError`` when the carrier cannot answer."""
        result = self.carrier.check_serviceability(
            query.delivery_pincode, query.weight, query.cod
        )
        logger.info(
            "shipping.serviceability_checked",
            pincode=query.delivery_pincode,
            serviceable=result.is_serviceable,
        )
        return result

    # ------------------------------------------------------------------

    @transaction.atomic
    def _update(self, order_id: Any, fields: Dict[str, Any]) -> None:
        order = self._order_repo.get_for_update(str(order_id))
        if order is None:
            logger.warning("shipment.order_deleted", order_id=str(order_id))
            return
        self._order_repo.update_fields(order, fields)


def build_shipping_service() -> ShippingService:
    from modules.orders.repositories.django_repository import OrderDjangoRepository
    from modules.orders.services import build_order_service

    return ShippingService(
        order_repository=OrderDjangoRepository(),
        order_service=build_order_service(),
    )

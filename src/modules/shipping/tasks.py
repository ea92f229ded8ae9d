"""Asynchronous tasks of the shipping module."""

import structlog
from celery import shared_task

from modules.orders.exceptions import OrderNotFound
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import build_order_service
from modules.shipping.scheduler import ShipmentScheduler
from modules.shipping.services import build_shipping_service

logger = structlog.get_logger(__name__)


@shared_task(name="shipping.schedule_order_pickup")
def schedule_order_pickup(order_id: str):
    """Schedule the carrier pickup of a shipped order and record the outcome."""
    order = OrderDjangoRepository().get_by_id(order_id)
    if order is None:
        logger.warning("pickup.order_missing", order_id=order_id)
        return {"order_id": order_id, "success": False, "error": "Order not found."}

    result = ShipmentScheduler().schedule_pickup(order.shipment_id)
    try:
        build_order_service().record_pickup_result(order_id, result)
    except OrderNotFound:
        logger.warning("pickup.order_deleted", order_id=order_id)

    return {
        "order_id": order_id,
        "success": result.success,
        "pickup_scheduled_date": result.pickup_scheduled_date,
        "pickup_token": result.pickup_token,
        "error": result.error,
    }


@shared_task(name="shipping.create_order_shipment")
def create_order_shipment(order_id: str):
    """Book a freshly placed order with the carrier, then request its pickup."""
    booking = build_shipping_service().create_shipment_for_order(order_id)
    return {
        "order_id": order_id,
        "created": booking is not None,
        "carrier_order_id": booking.carrier_order_id if booking else None,
        "shipment_id": booking.shipment_id if booking else None,
    }


@shared_task(name="shipping.cancel_order_shipment")
def cancel_order_shipment(order_id: str, carrier_order_id: str = ""):
    result = build_shipping_service().cancel_shipment(order_id, carrier_order_id)
    return {"order_id": order_id, "success": result.success, "message": result.message}

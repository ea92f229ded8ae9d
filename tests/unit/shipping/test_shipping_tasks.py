"""Unit tests for the shipping tasks."""

import uuid

import pytest

from modules.orders.constants import PickupStatus, ShipmentStatus
from modules.orders.models import Order
from modules.shipping.tasks import (
    cancel_order_shipment,
    create_order_shipment,
    schedule_order_pickup,
)

pytestmark = pytest.mark.unit


class TestScheduleOrderPickup:
    def test_records_scheduled_pickup(self, fake_carrier, order_factory):
        order = order_factory(shipment_id="12345")

        result = schedule_order_pickup.delay(str(order.id)).result

        order.refresh_from_db()
        assert result["success"] is True
        assert order.pickup_status == PickupStatus.SCHEDULED
        assert order.pickup_token == result["pickup_token"]
        assert order.pickup_scheduled_date == result["pickup_scheduled_date"]
        assert fake_carrier.calls[0]["shipment_id"] == "12345"

    def test_records_failed_pickup(self, fake_carrier, order_factory):
        fake_carrier.configure(should_succeed=False, failure_reason="Courier not assigned")
        order = order_factory(shipment_id="12345")

        result = schedule_order_pickup(str(order.id))

        order.refresh_from_db()
        assert result["success"] is False
        assert order.pickup_status == PickupStatus.FAILED
        assert order.pickup_error == "Courier not assigned"

    def test_order_without_shipment(self, fake_carrier, order_factory):
        order = order_factory()

        result = schedule_order_pickup(str(order.id))

        assert result["success"] is False
        assert fake_carrier.calls == []
        assert Order.objects.get(pk=order.pk).pickup_status == PickupStatus.FAILED

    def test_missing_order(self, fake_carrier):
        order_id = str(uuid.uuid4())

        result = schedule_order_pickup(order_id)

        assert result == {"order_id": order_id, "success": False, "error": "Order not found."}
        assert fake_carrier.calls == []


class TestCreateOrderShipment:
    def test_books_and_schedules_pickup(self, fake_carrier, order_factory):
        order = order_factory()

        result = create_order_shipment.delay(str(order.id)).result

        assert result == {
            "order_id": str(order.id),
            "created": True,
            "carrier_order_id": "FAKE-ORD-1001",
            "shipment_id": "1001",
        }
        order.refresh_from_db()
        assert order.shipment_status == ShipmentStatus.PICKUP_SCHEDULED

    def test_failed_booking_is_reported(self, fake_carrier, order_factory):
        fake_carrier.booking_error = "Pincode not serviceable"
        order = order_factory()

        result = create_order_shipment(str(order.id))

        assert result["created"] is False
        order.refresh_from_db()
        assert order.shipment_status == ShipmentStatus.CREATION_FAILED


class TestCancelOrderShipment:
    def test_cancels_booked_shipment(self, fake_carrier, order_factory):
        order = order_factory(carrier_order_id="SR-ORD-5")

        result = cancel_order_shipment(str(order.id), "SR-ORD-5")

        assert result == {
            "order_id": str(order.id),
            "success": True,
            "message": "Shipment cancelled successfully.",
        }

    def test_missing_order_uses_the_carrier_id(self, fake_carrier):
        result = cancel_order_shipment(str(uuid.uuid4()), "SR-ORD-6")

        assert result["success"] is True
        assert fake_carrier.calls_to("cancel_shipment")[0]["carrier_order_id"] == "SR-ORD-6"

    def test_missing_order_without_carrier_id(self, fake_carrier):
        result = cancel_order_shipment(str(uuid.uuid4()))

        assert result["success"] is False
        assert result["message"] == "Order not found."
        assert fake_carrier.calls == []

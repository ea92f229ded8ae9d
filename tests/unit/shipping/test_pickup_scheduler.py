"""Unit tests for the pickup scheduler."""

import pytest
from freezegun import freeze_time

from modules.shipping.carriers.fake_adapter import FakeCarrier
from modules.shipping.exceptions import CarrierAuthError
from modules.shipping.scheduler import INVALID_SHIPMENT_MESSAGE, ShipmentScheduler

pytestmark = pytest.mark.unit


class _LockedOutCarrier(FakeCarrier):
    def request_pickup(self, shipment_id, pickup_date):
        raise CarrierAuthError("Shiprocket auth failed (401): bad password")


class _BrokenCacheCarrier(FakeCarrier):
    def request_pickup(self, shipment_id, pickup_date):
        raise ConnectionError("Error 111 connecting to redis:6379")


class TestSchedulePickup:
    @freeze_time("2026-03-15 20:00:00")
    def test_requests_pickup_for_local_today(self, fake_carrier):
        result = ShipmentScheduler().schedule_pickup(12345)

        assert result.success
        assert fake_carrier.calls == [
            {"method": "request_pickup", "shipment_id": "12345", "pickup_date": "2026-03-16"}
        ]

    @pytest.mark.parametrize("shipment_id", [None, "", "  ", "0", 0])
    def test_invalid_shipment_is_not_sent(self, fake_carrier, shipment_id):
        result = ShipmentScheduler().schedule_pickup(shipment_id)

        assert not result.success
        assert result.error == INVALID_SHIPMENT_MESSAGE
        assert fake_carrier.calls == []

    def test_carrier_failure_is_returned(self, fake_carrier):
        fake_carrier.configure(should_succeed=False, failure_reason="Pincode not serviceable")

        result = ShipmentScheduler().schedule_pickup("12345")

        assert not result.success
        assert result.error == "Pincode not serviceable"

    def test_carrier_auth_error_does_not_raise(self):
        result = ShipmentScheduler(carrier=_LockedOutCarrier()).schedule_pickup("12345")

        assert not result.success
        assert result.error == "Shiprocket auth failed (401): bad password"

    def test_unexpected_error_becomes_failed_result(self):
        result = ShipmentScheduler(carrier=_BrokenCacheCarrier()).schedule_pickup("12345")

        assert not result.success
        assert result.error == (
            "Pickup scheduling failed unexpectedly: Error 111 connecting to redis:6379"
        )

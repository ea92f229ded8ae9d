"""Unit tests for carrier tracking status mapping."""

import pytest

from modules.orders.constants import OrderStatus
from modules.shipping.tracking import is_delivered, order_status_for, shipment_status_for

pytestmark = pytest.mark.unit


class TestShipmentStatusFor:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("5", "Delivered"),
            ("13", "In Transit"),
            ("16", "picked_up"),
            ("Shipment Picked Up", "Shipped"),
            ("Out For Delivery", "Out for Delivery"),
            ("  New ", "Confirmed"),
        ],
    )
    def test_codes_and_labels(self, raw, expected):
        assert shipment_status_for(raw) == expected

    def test_unknown_status_is_kept(self):
        assert shipment_status_for("Held at hub") == "Held at hub"

    @pytest.mark.parametrize("raw", ["", "   ", None])
    def test_empty_status_is_unknown(self, raw):
        assert shipment_status_for(raw) == "unknown"


class TestOrderStatusFor:
    def test_delivery_drives_the_order(self):
        assert order_status_for("Delivered") == OrderStatus.DELIVERED
        assert order_status_for("picked_up") == OrderStatus.SHIPPED
        assert order_status_for("Cancelled") == OrderStatus.CANCELLED

    @pytest.mark.parametrize("status", ["RTO", "Lost", "Out for Delivery", "unknown"])
    def test_other_statuses_leave_the_order_alone(self, status):
        assert order_status_for(status) is None


@pytest.mark.parametrize(
    "status, delivered",
    [
        ("Delivered", True),
        ("RTO Delivered", True),
        ("rto_delivered", True),
        ("In Transit", False),
        ("", False),
    ],
)
def test_is_delivered(status, delivered):
    assert is_delivered(status) is delivered

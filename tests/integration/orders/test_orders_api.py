"""Integration tests for the /api/v1/orders/ endpoints."""

import csv
import io
import uuid
from decimal import Decimal

import pytest
from rest_framework.test import APIClient

from modules.core.authentication import IdentityUser
from modules.orders.constants import OrderStatus, PickupStatus
from modules.orders.models import Order
from modules.products.models import Product

pytestmark = pytest.mark.integration

ORDERS_URL = "/api/v1/orders/"


def _detail_url(order):
    return f"{ORDERS_URL}{order.id}/"


@pytest.fixture()
def diya(product_factory):
    return product_factory(price=Decimal("274.00"), stock=10)


@pytest.fixture()
def checkout_payload(diya, customer_payload):
    return {
        "items": [{"productId": str(diya.id), "qty": 2}],
        "customer": customer_payload,
    }


@pytest.fixture()
def other_customer_client():
    client = APIClient()
    client.force_authenticate(
        user=IdentityUser(
            {"sub": "user-other", "email": "ravi@example.com", "email_verified": True}
        )
    )
    return client


class TestCreateOrder:
    def test_cash_on_delivery_checkout(self, customer_client, checkout_payload, diya):
        response = customer_client.post(ORDERS_URL, checkout_payload, format="json")

        assert response.status_code == 201
        data = response.json()
        assert data["order_number"].startswith("SF-")
        assert data["status"] == OrderStatus.PENDING
        assert data["payment_method"] == "cod"
        assert data["payment_status"] == "pending"
        assert data["subtotal"] == "548.00"
        assert data["shipping"] == "49.00"
        assert data["total"] == "597.00"
        assert data["customer_phone"] == "9876543210"
        assert data["items"][0]["line_total"] == "548.00"
        assert [entry["status"] for entry in data["timeline"]] == ["Pending"]
        assert Product.objects.get(pk=diya.pk).stock == 8

    def test_client_prices_are_ignored(self, customer_client, checkout_payload):
        checkout_payload["items"][0]["price"] = "1.00"
        checkout_payload["discount"] = "500.00"

        response = customer_client.post(ORDERS_URL, checkout_payload, format="json")

        assert response.status_code == 201
        assert response.json()["total"] == "597.00"
        assert response.json()["discount"] is None

    def test_coupon_is_applied_server_side(self, customer_client, checkout_payload):
        checkout_payload["couponCode"] = "get10oFF"

        response = customer_client.post(ORDERS_URL, checkout_payload, format="json")

        assert response.status_code == 201
        assert response.json()["total"] == "58.00"
        assert response.json()["coupon_code"] == "get10oFF"

    def test_requires_authentication(self, api_client, checkout_payload):
        response = api_client.post(ORDERS_URL, checkout_payload, format="json")
        assert response.status_code == 401

    def test_requires_verified_email(self, checkout_payload):
        client = APIClient()
        client.force_authenticate(
            user=IdentityUser({"sub": "user-new", "email": "asha@example.com"})
        )

        response = client.post(ORDERS_URL, checkout_payload, format="json")

        assert response.status_code == 403
        assert Order.objects.count() == 0

    def test_insufficient_stock(self, customer_client, checkout_payload):
        checkout_payload["items"][0]["qty"] = 11

        response = customer_client.post(ORDERS_URL, checkout_payload, format="json")

        assert response.status_code == 409
        assert "Insufficient stock" in response.json()["detail"]

    def test_unknown_product(self, customer_client, checkout_payload):
        checkout_payload["items"][0]["productId"] = str(uuid.uuid4())

        response = customer_client.post(ORDERS_URL, checkout_payload, format="json")

        assert response.status_code == 404

    def test_unpublished_product(self, customer_client, checkout_payload, diya):
        Product.objects.filter(pk=diya.pk).update(published=False)

        response = customer_client.post(ORDERS_URL, checkout_payload, format="json")

        assert response.status_code == 400

    def test_invalid_customer_details(self, customer_client, checkout_payload):
        checkout_payload["customer"]["phone"] = "12"

        response = customer_client.post(ORDERS_URL, checkout_payload, format="json")

        assert response.status_code == 400
        assert "phone" in response.json()["detail"]

    def test_online_payment_method_is_not_accepted_here(
        self, customer_client, checkout_payload
    ):
        checkout_payload["paymentMethod"] = "online"

        response = customer_client.post(ORDERS_URL, checkout_payload, format="json")

        assert response.status_code == 400


class TestRetrieveOrder:
    def test_owner_can_read(self, customer_client, order_factory):
        order = order_factory()

        response = customer_client.get(_detail_url(order))

        assert response.status_code == 200
        assert response.json()["order_number"] == order.order_number

    def test_other_customer_gets_not_found(self, other_customer_client, order_factory):
        order = order_factory()

        response = other_customer_client.get(_detail_url(order))

        assert response.status_code == 404
        assert response.json() == {"detail": "Order not found."}

    def test_admin_can_read_any(self, admin_client, order_factory):
        response = admin_client.get(_detail_url(order_factory()))
        assert response.status_code == 200

    def test_malformed_id(self, admin_client):
        response = admin_client.get(f"{ORDERS_URL}not-a-uuid/")
        assert response.status_code == 404


class TestLookup:
    def test_by_order_number(self, customer_client, order_factory):
        order = order_factory()

        response = customer_client.get(
            f"{ORDERS_URL}lookup/", {"order_number": order.order_number.lower()}
        )

        assert response.status_code == 200
        assert [o["id"] for o in response.json()] == [str(order.id)]

    def test_by_phone_normalizes_input(self, customer_client, order_factory):
        order = order_factory()

        response = customer_client.get(f"{ORDERS_URL}lookup/", {"phone": "98765-43210"})

        assert [o["id"] for o in response.json()] == [str(order.id)]

    def test_by_email_only_for_own_address(self, customer_client, order_factory):
        order_factory()

        own = customer_client.get(f"{ORDERS_URL}lookup/", {"email": "ASHA@example.com"})
        other = customer_client.get(f"{ORDERS_URL}lookup/", {"email": "ravi@example.com"})

        assert len(own.json()) == 1
        assert other.json() == []

    def test_never_returns_other_customers_orders(
        self, other_customer_client, order_factory
    ):
        order = order_factory()

        response = other_customer_client.get(
            f"{ORDERS_URL}lookup/", {"order_number": order.order_number}
        )

        assert response.json() == []

    def test_requires_a_criterion(self, customer_client):
        response = customer_client.get(f"{ORDERS_URL}lookup/")
        assert response.status_code == 400


class TestAdminListing:
    def test_customers_cannot_list(self, customer_client):
        assert customer_client.get(ORDERS_URL).status_code == 403

    def test_list_is_paginated(self, admin_client, order_factory):
        order_factory()
        order_factory()

        response = admin_client.get(ORDERS_URL)

        assert response.status_code == 200
        data = response.json()
        assert data["count"] == 2
        assert set(data["results"][0]) == {
            "id",
            "order_number",
            "customer_name",
            "customer_email",
            "status",
            "payment_status",
            "total",
            "created_at",
        }

    def test_filter_by_status(self, admin_client, order_factory):
        order_factory()
        shipped = order_factory(status=OrderStatus.SHIPPED)

        response = admin_client.get(ORDERS_URL, {"status": "Shipped"})

        assert [o["id"] for o in response.json()["results"]] == [str(shipped.id)]

    def test_recent_respects_limit(self, admin_client, order_factory):
        for _ in range(3):
            order_factory()

        response = admin_client.get(f"{ORDERS_URL}recent/", {"limit": 2})

        assert response.status_code == 200
        assert len(response.json()) == 2

    def test_recent_rejects_bad_limit(self, admin_client):
        response = admin_client.get(f"{ORDERS_URL}recent/", {"limit": "many"})
        assert response.status_code == 400


class TestStatusTransitions:
    def test_confirm_order(self, admin_client, order_factory):
        order = order_factory()

        response = admin_client.post(
            f"{_detail_url(order)}status/",
            {"status": "Confirmed", "note": "Packed"},
            format="json",
        )

        assert response.status_code == 200
        timeline = response.json()["timeline"]
        assert [entry["status"] for entry in timeline] == ["Pending", "Confirmed"]
        assert timeline[-1]["note"] == "Packed"
        assert timeline[-1]["updated_by"] == "ops@example.com"

    def test_cancel_restores_stock(self, admin_client, order_factory, product_factory):
        product = product_factory(stock=5)
        order = order_factory(product=product, qty=2)

        response = admin_client.post(
            f"{_detail_url(order)}status/", {"status": "Cancelled"}, format="json"
        )

        assert response.status_code == 200
        assert Product.objects.get(pk=product.pk).stock == 7

    def test_cancelled_is_terminal(self, admin_client, order_factory):
        order = order_factory(status=OrderStatus.CANCELLED, stock_committed=False)

        response = admin_client.post(
            f"{_detail_url(order)}status/", {"status": "Confirmed"}, format="json"
        )

        assert response.status_code == 400

    def test_unknown_status(self, admin_client, order_factory):
        response = admin_client.post(
            f"{_detail_url(order_factory())}status/", {"status": "Lost"}, format="json"
        )
        assert response.status_code == 400

    def test_missing_order(self, admin_client):
        response = admin_client.post(
            f"{ORDERS_URL}{uuid.uuid4()}/status/", {"status": "Confirmed"}, format="json"
        )
        assert response.status_code == 404

    def test_customers_cannot_transition(self, customer_client, order_factory):
        response = customer_client.post(
            f"{_detail_url(order_factory())}status/", {"status": "Confirmed"}, format="json"
        )
        assert response.status_code == 403

    def test_shipping_schedules_pickup(
        self, admin_client, order_factory, fake_carrier, django_capture_on_commit_callbacks
    ):
        order = order_factory(shipment_id="778899")

        with django_capture_on_commit_callbacks(execute=True):
            response = admin_client.post(
                f"{_detail_url(order)}status/", {"status": "Shipped"}, format="json"
            )

        assert response.status_code == 200
        order.refresh_from_db()
        assert order.pickup_status == PickupStatus.SCHEDULED
        assert fake_carrier.calls[0]["shipment_id"] == "778899"


class TestFulfillment:
    def test_only_sent_fields_change(self, admin_client, order_factory):
        order = order_factory(shipping_carrier="Delhivery", admin_notes="fragile")

        response = admin_client.patch(
            f"{_detail_url(order)}fulfillment/",
            {"tracking_number": "DL123456", "estimated_delivery": "2026-03-20"},
            format="json",
        )

        assert response.status_code == 200
        data = response.json()
        assert data["tracking_number"] == "DL123456"
        assert data["estimated_delivery"] == "2026-03-20"
        assert data["shipping_carrier"] == "Delhivery"
        assert data["admin_notes"] == "fragile"
        assert len(data["timeline"]) == 1

    def test_missing_order(self, admin_client):
        response = admin_client.patch(
            f"{ORDERS_URL}{uuid.uuid4()}/fulfillment/", {"admin_notes": "x"}, format="json"
        )
        assert response.status_code == 404


class TestDeletion:
    def test_force_delete_keeps_stock_as_is(
        self, admin_client, order_factory, product_factory
    ):
        product = product_factory(stock=5)
        order = order_factory(product=product, qty=2)

        response = admin_client.post(f"{_detail_url(order)}force-delete/")

        assert response.status_code == 204
        assert not Order.objects.filter(pk=order.pk).exists()
        assert Product.objects.get(pk=product.pk).stock == 5

    def test_cancel_and_delete_restores_stock(
        self, admin_client, order_factory, product_factory
    ):
        product = product_factory(stock=5)
        order = order_factory(product=product, qty=2)

        response = admin_client.post(f"{_detail_url(order)}cancel-and-delete/")

        assert response.status_code == 204
        assert not Order.objects.filter(pk=order.pk).exists()
        assert Product.objects.get(pk=product.pk).stock == 7

    def test_delete_missing_order(self, admin_client):
        response = admin_client.post(f"{ORDERS_URL}{uuid.uuid4()}/force-delete/")
        assert response.status_code == 404


class TestExport:
    def test_csv_download(self, admin_client, order_factory):
        order = order_factory()

        response = admin_client.get(f"{ORDERS_URL}export/")

        assert response.status_code == 200
        assert response["Content-Type"].startswith("text/csv")
        assert response["Content-Disposition"].startswith('attachment; filename="orders-')
        rows = list(csv.reader(io.StringIO(response.content.decode())))
        assert len(rows) == 2
        assert order.order_number in rows[1]

    def test_export_honours_filters(self, admin_client, order_factory):
        order_factory()

        response = admin_client.get(f"{ORDERS_URL}export/", {"status": "Delivered"})

        rows = list(csv.reader(io.StringIO(response.content.decode())))
        assert len(rows) == 1

    def test_customers_cannot_export(self, customer_client):
        assert customer_client.get(f"{ORDERS_URL}export/").status_code == 403

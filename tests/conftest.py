from decimal import Decimal

import pytest
from django.core.cache import cache
from rest_framework.test import APIClient

from modules.core.authentication import IdentityUser
from modules.core.identity import Identity
from modules.orders.constants import OrderStatus
from modules.orders.models import Order, OrderItem, OrderTimelineEntry
from modules.payments.gateway import reset_gateway, set_gateway
from modules.payments.gateway.fake_adapter import FakeGateway
from modules.products.models import Product
from modules.shipping.carriers import reset_carrier, set_carrier
from modules.shipping.carriers.fake_adapter import FakeCarrier

CUSTOMER_UID = "user-abc123"
CUSTOMER_EMAIL = "asha@example.com"


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture(autouse=True)
def _isolate_adapters():
    """Fresh cache and adapter singletons for every test."""
    cache.clear()
    reset_gateway()
    reset_carrier()
    yield
    reset_gateway()
    reset_carrier()


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


@pytest.fixture()
def identity_user():
    return IdentityUser(
        {"sub": CUSTOMER_UID, "email": CUSTOMER_EMAIL, "email_verified": True}
    )


@pytest.fixture()
def customer_client(identity_user):
    """APIClient authenticated as a verified storefront customer."""
    client = APIClient()
    client.force_authenticate(user=identity_user)
    return client


@pytest.fixture()
def admin_user(django_user_model):
    return django_user_model.objects.create_user(
        username="ops",
        email="ops@example.com",
        password="testpass123",
        is_staff=True,
    )


@pytest.fixture()
def admin_client(admin_user):
    client = APIClient()
    client.force_authenticate(user=admin_user)
    return client


@pytest.fixture()
def verified_identity():
    return Identity(uid=CUSTOMER_UID, email=CUSTOMER_EMAIL, email_verified=True)


@pytest.fixture()
def product_factory():
    def create(**overrides):
        defaults = {
            "name": "Brass Diya",
            "price": Decimal("274.00"),
            "stock": 10,
            "image_url": "https://cdn.example.com/diya.jpg",
            "published": True,
        }
        defaults.update(overrides)
        return Product.objects.create(**defaults)

    return create


@pytest.fixture()
def customer_payload():
    return {
        "name": "Asha Rao",
        "email": CUSTOMER_EMAIL,
        "phone": "98765 43210",
        "address": "12 MG Road",
        "city": "Bengaluru",
        "state": "Karnataka",
        "pincode": "560001",
        "notes": "",
    }


@pytest.fixture()
def fake_gateway():
    gateway = FakeGateway()
    set_gateway(gateway)
    return gateway


@pytest.fixture()
def fake_carrier():
    carrier = FakeCarrier()
    set_carrier(carrier)
    return carrier


@pytest.fixture()
def order_factory(product_factory):
    """Persist a one-line Pending order the way checkout leaves it."""

    def create(product=None, qty=1, **overrides):
        product = product or product_factory()
        subtotal = product.price * qty
        defaults = {
            "user_id": CUSTOMER_UID,
            "customer_name": "Asha Rao",
            "customer_email": CUSTOMER_EMAIL,
            "customer_phone": "9876543210",
            "address": "12 MG Road",
            "city": "Bengaluru",
            "state": "Karnataka",
            "pincode": "560001",
            "subtotal": subtotal,
            "shipping": Decimal("49.00"),
            "total": subtotal + Decimal("49.00"),
            "stock_committed": True,
        }
        defaults.update(overrides)
        order = Order.objects.create(**defaults)
        OrderItem.objects.create(
            order=order,
            product_id=str(product.id),
            name=product.name,
            qty=qty,
            price=product.price,
        )
        OrderTimelineEntry.objects.create(
            order=order, status=OrderStatus.PENDING, note="Order placed successfully"
        )
        return order

    return create

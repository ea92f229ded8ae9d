"""Unit tests for server-side cart pricing."""

from __future__ import annotations

import uuid
from decimal import Decimal

import pytest

from modules.coupons.rules import CouponResult
from modules.orders.dtos import OrderItemInputDTO
from modules.orders.exceptions import (
    InsufficientStock,
    ProductNotFound,
    ProductUnavailable,
)
from modules.orders.pricing import (
    CanonicalOrder,
    calculate_canonical_order,
    shipping_for,
)

pytestmark = pytest.mark.unit

COUPON = "get10oFF"


def _items(*pairs):
    return [OrderItemInputDTO(product_id=str(pid), qty=qty) for pid, qty in pairs]


class _FixedValidator:
    def __init__(self, discount):
        self.discount = Decimal(discount)
        self.calls = []

    def validate(self, code, subtotal):
        self.calls.append((code, subtotal))
        return CouponResult(valid=True, discount=self.discount, message="ok")


class TestShipping:
    def test_flat_rate_below_threshold(self):
        assert shipping_for(Decimal("998.99")) == Decimal("49.00")

    def test_free_at_threshold(self):
        assert shipping_for(Decimal("999.00")) == Decimal("0.00")


class TestCalculateCanonicalOrder:
    def test_prices_come_from_the_catalog(self, product_factory):
        diya = product_factory(price=Decimal("274.00"), stock=5)

        canonical = calculate_canonical_order(_items((diya.id, 2)))

        assert canonical.subtotal == Decimal("548.00")
        assert canonical.shipping == Decimal("49.00")
        assert canonical.discount == Decimal("0.00")
        assert canonical.total == Decimal("597.00")
        assert canonical.coupon_code is None
        item = canonical.items[0]
        assert (item.name, item.price, item.qty) == ("Brass Diya", Decimal("274.00"), 2)
        assert item.image_url == "https://cdn.example.com/diya.jpg"

    def test_floor_coupon_on_the_merchandise_subtotal(self, product_factory):
        diya = product_factory(price=Decimal("274.00"), stock=5)

        canonical = calculate_canonical_order(_items((diya.id, 2)), f" {COUPON} ")

        assert canonical.discount == Decimal("539.00")
        assert canonical.total == Decimal("58.00")
        assert canonical.coupon_code == COUPON
        assert canonical.amount_in_paise == 5800

    def test_unknown_coupon_is_dropped(self, product_factory):
        diya = product_factory(price=Decimal("274.00"), stock=5)

        canonical = calculate_canonical_order(_items((diya.id, 1)), "FREESTUFF")

        assert canonical.discount == Decimal("0.00")
        assert canonical.coupon_code is None

    def test_discount_is_clamped_to_subtotal(self, product_factory):
        diya = product_factory(price=Decimal("100.00"), stock=5)

        canonical = calculate_canonical_order(
            _items((diya.id, 1)), COUPON, coupon_validator=_FixedValidator("500")
        )

        assert canonical.discount == Decimal("100.00")
        assert canonical.total == Decimal("49.00")

    def test_free_shipping_is_decided_before_discount(self, product_factory):
        lamp = product_factory(price=Decimal("1200.00"), stock=5)

        canonical = calculate_canonical_order(
            _items((lamp.id, 1)), COUPON, coupon_validator=_FixedValidator("300")
        )

        assert canonical.shipping == Decimal("0.00")
        assert canonical.total == Decimal("900.00")

    def test_missing_product(self):
        with pytest.raises(ProductNotFound):
            calculate_canonical_order(_items((uuid.uuid4(), 1)))

    def test_unpublished_product(self, product_factory):
        hidden = product_factory(published=False)
        with pytest.raises(ProductUnavailable):
            calculate_canonical_order(_items((hidden.id, 1)))

    def test_insufficient_stock(self, product_factory):
        diya = product_factory(stock=1)
        with pytest.raises(InsufficientStock, match="Available: 1"):
            calculate_canonical_order(_items((diya.id, 2)))


class TestSnapshot:
    def test_snapshot_restores_identical_order(self, product_factory):
        diya = product_factory(price=Decimal("274.00"), stock=5)
        canonical = calculate_canonical_order(_items((diya.id, 2)), COUPON)

        snapshot = canonical.to_snapshot()

        assert snapshot["total"] == "58.00"
        assert snapshot["items"][0]["productId"] == str(diya.id)
        assert CanonicalOrder.from_snapshot(snapshot) == canonical

    def test_amount_in_paise_rounds_half_up(self):
        canonical = CanonicalOrder(
            items=(),
            subtotal=Decimal("0"),
            shipping=Decimal("0"),
            discount=Decimal("0"),
            total=Decimal("10.005"),
        )
        assert canonical.amount_in_paise == 1001

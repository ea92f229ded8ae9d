"""Unit tests for the Order aggregate."""

from __future__ import annotations

import re
from decimal import Decimal
from unittest.mock import patch

import pytest
from django.db import IntegrityError
from freezegun import freeze_time

from modules.orders.constants import OrderStatus
from modules.orders.exceptions import OrderNumberExhausted
from modules.orders.models import Order

pytestmark = pytest.mark.unit


class TestOrderNumber:
    @freeze_time("2026-03-15 12:00:00")
    def test_format_uses_prefix_and_local_date(self, order_factory):
        order = order_factory()
        assert re.fullmatch(r"SF-20260315-[0-9A-Z]{4}", order.order_number)

    @freeze_time("2026-03-15 20:00:00")
    def test_date_follows_store_time_zone(self, order_factory):
        # 20:00 UTC is already the next day in Asia/Kolkata.
        order = order_factory()
        assert order.order_number.startswith("SF-20260316-")

    def test_number_is_kept_on_later_saves(self, order_factory):
        order = order_factory()
        number = order.order_number
        order.status = OrderStatus.CONFIRMED
        order.save()
        assert order.order_number == number

    def test_collision_retries_with_a_new_suffix(self, order_factory):
        existing = order_factory()
        with patch.object(
            Order,
            "generate_order_number",
            side_effect=[existing.order_number, "SF-20260315-ZZZZ"],
        ):
            order = order_factory()
        assert order.order_number == "SF-20260315-ZZZZ"

    def test_exhausted_retries_raise(self, order_factory):
        existing = order_factory()
        with patch.object(
            Order, "generate_order_number", return_value=existing.order_number
        ):
            with pytest.raises(OrderNumberExhausted):
                order_factory()


class TestStateMachine:
    @pytest.mark.parametrize(
        "current,target",
        [
            (OrderStatus.PENDING, OrderStatus.DELIVERED),
            (OrderStatus.DELIVERED, OrderStatus.PENDING),
            (OrderStatus.SHIPPED, OrderStatus.CONFIRMED),
            (OrderStatus.CONFIRMED, OrderStatus.CANCELLED),
        ],
    )
    def test_non_terminal_states_move_freely(self, current, target):
        assert Order(status=current).can_transition_to(target)

    def test_cancelled_only_stays_cancelled(self):
        order = Order(status=OrderStatus.CANCELLED)
        assert order.is_terminal
        assert order.can_transition_to(OrderStatus.CANCELLED)
        assert not order.can_transition_to(OrderStatus.PENDING)

    def test_unknown_status_is_refused(self):
        assert not Order(status=OrderStatus.PENDING).can_transition_to("Lost")


class TestConstraints:
    def test_total_cannot_be_negative(self, order_factory):
        with pytest.raises(IntegrityError):
            order_factory(total=Decimal("-1.00"))

    def test_items_and_timeline_are_ordered(self, order_factory):
        order = order_factory(qty=3)
        item = order.items.get()
        assert item.line_total == Decimal("822.00")
        assert [entry.status for entry in order.timeline.all()] == [OrderStatus.PENDING]

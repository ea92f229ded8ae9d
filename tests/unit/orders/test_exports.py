"""Unit tests for the CSV order export."""

from __future__ import annotations

import csv
import io
from datetime import datetime, timezone as dt_timezone

import pytest

from modules.orders.exports import EXPORT_COLUMNS, export_orders_csv, format_order_date
from modules.orders.models import Order

pytestmark = pytest.mark.unit


def _parse(text: str) -> list[list[str]]:
    return list(csv.reader(io.StringIO(text)))


class TestExportOrdersCsv:
    def test_header_only_for_no_orders(self):
        assert export_orders_csv([]) == ",".join(EXPORT_COLUMNS) + "\r\n"

    def test_one_row_per_order(self, order_factory, product_factory):
        product = product_factory(name="Brass Diya")
        order = order_factory(product=product, qty=2, customer_notes="Ring twice")

        rows = _parse(export_orders_csv(Order.objects.prefetch_related("items")))

        assert rows[0] == EXPORT_COLUMNS
        row = dict(zip(EXPORT_COLUMNS, rows[1]))
        assert row["Order Number"] == order.order_number
        assert row["Items"] == "Brass Diya x2"
        assert row["Subtotal"] == "548.00"
        assert row["Shipping"] == "49.00"
        assert row["Total"] == "597.00"
        assert row["Status"] == "Pending"
        assert row["Notes"] == "Ring twice"

    def test_fields_with_commas_and_quotes_are_quoted(self, order_factory):
        order_factory(address='Flat 4, "Lotus" Towers', customer_notes="Leave at gate,\nthanks")

        text = export_orders_csv(Order.objects.all())

        assert '"Flat 4, ""Lotus"" Towers"' in text
        row = dict(zip(EXPORT_COLUMNS, _parse(text)[1]))
        assert row["Address"] == 'Flat 4, "Lotus" Towers'
        assert row["Notes"] == "Leave at gate,\nthanks"


class TestFormatOrderDate:
    def test_uses_store_local_time(self):
        order = Order(created_at=datetime(2026, 3, 15, 12, 0, tzinfo=dt_timezone.utc))
        assert format_order_date(order) == "15 Mar 2026, 05:30 PM"

    def test_missing_date(self):
        assert format_order_date(Order()) == "N/A"

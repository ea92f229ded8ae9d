"""CSV export of orders for the admin dashboard."""

from __future__ import annotations

import csv
import io
from typing import Iterable, List

from django.utils import timezone

from modules.orders.models import Order

EXPORT_COLUMNS = [
    "Order Number",
    "Date",
    "Customer Name",
    "Email",
    "Phone",
    "Address",
    "City",
    "State",
    "Pincode",
    "Items",
    "Subtotal",
    "Shipping",
    "Total",
    "Status",
    "Notes",
]


def format_order_date(order: Order) -> str:
    if not order.created_at:
        return "N/A"
    return timezone.localtime(order.created_at).strftime("%d %b %Y, %I:%M %p")


def _row(order: Order) -> List[str]:
    items = ", ".join(f"{item.name} x{item.qty}" for item in order.items.all())
    return [
        order.order_number,
        format_order_date(order),
        order.customer_name,
        order.customer_email,
        order.customer_phone,
        order.address,
        order.city,
        order.state,
        order.pincode,
        items,
        str(order.subtotal),
        str(order.shipping),
        str(order.total),
        order.status,
        order.customer_notes,
    ]


def export_orders_csv(orders: Iterable[Order]) -> str:
    """Render ``orders`` as RFC-4180 CSV with a header row.

    Fields holding commas, quotes or newlines are quoted and embedded
    quotes are doubled.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_MINIMAL, lineterminator="\r\n")
    writer.writerow(EXPORT_COLUMNS)
    for order in orders:
        writer.writerow(_row(order))
    return buffer.getvalue()

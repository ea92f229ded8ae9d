"""Carrier tracking statuses.

Shiprocket pushes either numeric status codes (``"5"``) or labels
(``"Delivered"``).  Both are mapped onto one shipment status, and the few
shipment statuses that mean something for the order drive its status.
"""

from __future__ import annotations

from typing import Optional

from modules.orders.constants import OrderStatus

CARRIER_STATUS_MAP = {
    "1": "Pending",
    "2": "Confirmed",
    "3": "processing",
    "4": "Shipped",
    "5": "Delivered",
    "6": "Cancelled",
    "7": "RTO",
    "8": "RTO Delivered",
    "9": "Lost",
    "10": "Damaged",
    "11": "failed_delivery",
    "12": "Out for Delivery",
    "13": "In Transit",
    "14": "pickup_scheduled",
    "15": "pickup_error",
    "16": "picked_up",
    "17": "rto_initiated",
    "18": "rto_in_transit",
    "19": "rto_delivered",
    "Pending": "Pending",
    "Confirmed": "Confirmed",
    "New": "Confirmed",
    "Shipped": "Shipped",
    "In Transit": "In Transit",
    "Shipment Picked Up": "Shipped",
    "Out For Delivery": "Out for Delivery",
    "Out for Delivery": "Out for Delivery",
    "Delivered": "Delivered",
    "Cancelled": "Cancelled",
    "RTO Initiated": "rto_initiated",
    "RTO": "RTO",
    "RTO Delivered": "RTO Delivered",
    "Lost": "Lost",
    "Damaged": "Damaged",
    "Failed Delivery": "failed_delivery",
}

# Only statuses the order state machine knows; RTO, Lost etc. stay on the
# shipment for an admin to act on.
SHIPMENT_TO_ORDER_STATUS = {
    "Shipped": OrderStatus.SHIPPED,
    "picked_up": OrderStatus.SHIPPED,
    "In Transit": OrderStatus.SHIPPED,
    "Delivered": OrderStatus.DELIVERED,
    "Cancelled": OrderStatus.CANCELLED,
}

NON_CANCELLABLE_SHIPMENT_STATUSES = {"delivered", "rto delivered", "rto_delivered"}


def shipment_status_for(raw_status: str) -> str:
    """Unknown values are kept as sent; an empty status becomes ``unknown``."""
    raw_status = (raw_status or "").strip()
    return CARRIER_STATUS_MAP.get(raw_status, raw_status or "unknown")


def order_status_for(shipment_status: str) -> Optional[str]:
    return SHIPMENT_TO_ORDER_STATUS.get(shipment_status)


def is_delivered(status: str) -> bool:
    return (status or "").strip().lower() in NON_CANCELLABLE_SHIPMENT_STATUSES

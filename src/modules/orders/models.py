"""Order, OrderItem, and OrderTimelineEntry models.

Rules carried by the schema:
- Order number is a human-readable identifier ``PREFIX-YYYYMMDD-XXXX``
  generated on first save (unique column, bounded retries).
- ``total = subtotal + shipping - discount`` and ``total >= 0``.
- OrderItem snapshots name and price at order time; ``product_id`` is a
  plain reference so catalog deletions never touch past orders.
- The timeline is append-only: each transition is one ``INSERT`` of an
  ``OrderTimelineEntry`` row, never a rewrite of existing rows.
- ``stock_committed`` records whether inventory is currently taken out
  for this order, so restoration happens at most once.
"""

from __future__ import annotations

import secrets
import string
from decimal import Decimal
from typing import Any

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone

from modules.core.models import BaseModel
from modules.orders.constants import (
    ORDER_NUMBER_MAX_RETRIES,
    ORDER_NUMBER_SUFFIX_LENGTH,
    TERMINAL_STATES,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    PickupStatus,
    ShipmentStatus,
)
from modules.orders.exceptions import OrderNumberExhausted
from shared.domain.events import DomainEventMixin

_BASE36 = string.digits + string.ascii_uppercase


def _money(**kwargs: Any) -> models.DecimalField:
    return models.DecimalField(max_digits=12, decimal_places=2, **kwargs)


class Order(DomainEventMixin, BaseModel):
    """Order aggregate root.

    The UUIDv7 ``id`` is used for internal references and API look-ups;
    ``order_number`` is what customers see.
    """

    order_number = models.CharField(max_length=32, unique=True, editable=False)
    user_id = models.CharField(max_length=128, db_index=True)

    # Customer (sanitized at the DTO boundary)
    customer_name = models.CharField(max_length=90)
    customer_email = models.EmailField(db_index=True)
    customer_phone = models.CharField(max_length=13, db_index=True)
    address = models.CharField(max_length=220)
    city = models.CharField(max_length=90)
    state = models.CharField(max_length=90)
    pincode = models.CharField(max_length=6)
    customer_notes = models.CharField(max_length=300, blank=True, default="")

    # Money
    subtotal = _money(default=Decimal("0.00"))
    shipping = _money(default=Decimal("0.00"))
    discount = _money(null=True, blank=True, validators=[MinValueValidator(0)])
    total = _money(default=Decimal("0.00"))
    coupon_code = models.CharField(max_length=120, blank=True, default="")

    status = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.PENDING,
    )

    # Payment
    payment_method = models.CharField(
        max_length=10, choices=PaymentMethod.choices, default=PaymentMethod.COD
    )
    payment_status = models.CharField(
        max_length=10, choices=PaymentStatus.choices, default=PaymentStatus.PENDING
    )
    transaction_id = models.CharField(max_length=128, blank=True, default="")
    paid_at = models.DateTimeField(null=True, blank=True)
    gateway_order_id = models.CharField(
        max_length=64, unique=True, null=True, blank=True, default=None
    )

    # Fulfillment metadata
    tracking_number = models.CharField(max_length=128, blank=True, default="")
    shipping_carrier = models.CharField(max_length=128, blank=True, default="")
    estimated_delivery = models.DateField(null=True, blank=True)
    cancellation_reason = models.CharField(max_length=300, blank=True, default="")
    admin_notes = models.TextField(blank=True, default="")

    # Carrier shipment / pickup
    shipment_id = models.CharField(max_length=64, blank=True, default="")
    pickup_status = models.CharField(
        max_length=10, choices=PickupStatus.choices, default=PickupStatus.NONE
    )
    pickup_scheduled_date = models.CharField(max_length=32, blank=True, default="")
    pickup_token = models.CharField(max_length=128, blank=True, default="")
    pickup_error = models.CharField(max_length=300, blank=True, default="")

    # Carrier booking and tracking (written by modules.shipping)
    carrier_order_id = models.CharField(max_length=64, blank=True, default="", db_index=True)
    awb_code = models.CharField(max_length=64, blank=True, default="", db_index=True)
    tracking_url = models.URLField(max_length=500, blank=True, default="")
    shipment_status = models.CharField(
        max_length=32, blank=True, default=ShipmentStatus.NONE
    )
    raw_carrier_status = models.CharField(max_length=64, blank=True, default="")
    last_location = models.CharField(max_length=200, blank=True, default="")
    last_tracking_update = models.DateTimeField(null=True, blank=True)
    delivery_date = models.CharField(max_length=32, blank=True, default="")

    stock_committed = models.BooleanField(default=False)

    class Meta:
        db_table = "orders"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"], name="orders_status_idx"),
            models.Index(fields=["-created_at"], name="orders_created_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                check=models.Q(total__gte=0),
                name="orders_total_non_negative",
            ),
            models.CheckConstraint(
                check=models.Q(discount__isnull=True) | models.Q(discount__gte=0),
                name="orders_discount_non_negative",
            ),
        ]

    # ------------------------------------------------------------------
    # State machine helpers
    # ------------------------------------------------------------------

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATES

    def can_transition_to(self, new_status: str) -> bool:
        """Anything goes except leaving ``Cancelled``."""
        if new_status not in OrderStatus.values:
            return False
        return not self.is_terminal or new_status == self.status

    # ------------------------------------------------------------------
    # Order number generation
    # ------------------------------------------------------------------

    @staticmethod
    def generate_order_number() -> str:
        """``PREFIX-YYYYMMDD-XXXX`` with four random base-36 characters.

        Always upper case, which is how look-ups normalize typed numbers.
        """
        prefix = settings.ORDER_NUMBER_PREFIX.strip().upper()
        suffix = "".join(
            secrets.choice(_BASE36) for _ in range(ORDER_NUMBER_SUFFIX_LENGTH)
        )
        return f"{prefix}-{timezone.localdate():%Y%m%d}-{suffix}"

    def save(self, *args: Any, **kwargs: Any) -> None:
        if not self.order_number:
            for _ in range(ORDER_NUMBER_MAX_RETRIES):
                candidate = self.generate_order_number()
                if not Order.objects.filter(order_number=candidate).exists():
                    self.order_number = candidate
                    break
            else:
                raise OrderNumberExhausted(
                    f"Failed to generate unique order_number after "
                    f"{ORDER_NUMBER_MAX_RETRIES} attempts"
                )
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.order_number} ({self.status})"


class OrderItem(BaseModel):
    """Line item snapshot: name and price as they were at checkout."""

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="items",
    )
    position = models.PositiveSmallIntegerField(default=0)
    product_id = models.CharField(max_length=64, db_index=True)
    name = models.CharField(max_length=160)
    qty = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    price = _money()
    image_url = models.URLField(max_length=500, blank=True, default="")

    class Meta:
        db_table = "order_items"
        ordering = ["position"]
        constraints = [
            models.CheckConstraint(
                check=models.Q(qty__gte=1),
                name="order_items_qty_positive",
            ),
        ]

    @property
    def line_total(self) -> Decimal:
        return self.price * self.qty

    def __str__(self) -> str:
        return f"{self.name} x{self.qty}"


class OrderTimelineEntry(BaseModel):
    """Append-only audit trail of status transitions.

    ``updated_by`` is free text (admin uid or email); blank means the change
    was made by the system (checkout, payment finalization).
    """

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="timeline",
    )
    status = models.CharField(max_length=20, choices=OrderStatus.choices)
    timestamp = models.DateTimeField(default=timezone.now)
    note = models.CharField(max_length=500, blank=True, default="")
    updated_by = models.CharField(max_length=254, blank=True, default="")

    class Meta:
        db_table = "order_timeline"
        ordering = ["timestamp", "id"]
        indexes = [
            models.Index(fields=["order", "timestamp"], name="timeline_order_ts_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.order_id} -> {self.status}"

"""Server-side record of payment-gateway orders.

One ``GatewayOrder`` row per gateway order, created before the customer
pays.  It is the idempotency record of the payment flow:

- ``created``: gateway order exists; the canonical order is snapshotted in
  ``calculated_order`` and ``amount`` (paise) is what the gateway charges.
- ``verified``: a correctly signed ``payment_id`` has been recorded and
  committed; the shop order may not exist yet.
- ``paid``: the shop order was finalized and is linked via ``order``.
- ``signature_failed``: a verification with a bad signature was attempted.
"""

from __future__ import annotations

from django.db import models

from modules.core.models import BaseModel
from modules.payments.constants import GatewayOrderStatus
from shared.domain.events import DomainEventMixin


class GatewayOrder(DomainEventMixin, BaseModel):
    gateway_order_id = models.CharField(max_length=64, unique=True)
    user_id = models.CharField(max_length=128, blank=True, default="")
    user_email = models.EmailField(blank=True, default="")
    guest_email = models.EmailField(blank=True, default="")

    amount = models.PositiveBigIntegerField(help_text="Amount in paise")
    currency = models.CharField(max_length=8, default="INR")
    receipt = models.CharField(max_length=40)
    status = models.CharField(
        max_length=20,
        choices=GatewayOrderStatus.choices,
        default=GatewayOrderStatus.CREATED,
    )

    payment_id = models.CharField(
        max_length=64, unique=True, null=True, blank=True, default=None
    )
    signature = models.CharField(max_length=128, blank=True, default="")
    calculated_order = models.JSONField()
    recaptcha_score = models.FloatField(default=0)

    order = models.OneToOneField(
        "orders.Order",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="gateway_order",
    )
    verified_at = models.DateTimeField(null=True, blank=True)
    paid_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "gateway_orders"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status", "verified_at"], name="gw_orders_status_idx"),
        ]

    @property
    def is_guest(self) -> bool:
        return bool(self.guest_email) and not self.user_id

    def __str__(self) -> str:
        return f"{self.gateway_order_id} ({self.status})"

"""Order domain constants.

Status choices and the rules of the order state machine: ``Cancelled``
is the only terminal state; every other status may move to any other
status (admin-driven, unordered).
"""

from django.db import models


class OrderStatus(models.TextChoices):
    PENDING = "Pending", "Pending"
    CONFIRMED = "Confirmed", "Confirmed"
    SHIPPED = "Shipped", "Shipped"
    DELIVERED = "Delivered", "Delivered"
    CANCELLED = "Cancelled", "Cancelled"


class PaymentMethod(models.TextChoices):
    COD = "cod", "Cash on delivery"
    ONLINE = "online", "Online"
    UPI = "upi", "UPI"


class PaymentStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    COMPLETED = "completed", "Completed"
    FAILED = "failed", "Failed"
    REFUNDED = "refunded", "Refunded"


class PickupStatus(models.TextChoices):
    NONE = "none", "Not requested"
    SCHEDULED = "scheduled", "Scheduled"
    FAILED = "failed", "Failed"


class ShipmentStatus:
    """Lifecycle values of ``Order.shipment_status``.

    Tracking updates store the carrier's mapped status verbatim (``In
    Transit``, ``RTO`` ...), so the column is free text beyond these.
    """

    NONE = ""
    CREATED = "created"
    CREATION_FAILED = "creation_failed"
    PICKUP_SCHEDULED = "pickup_scheduled"
    PICKUP_FAILED = "pickup_failed"
    CANCELLED = "cancelled"


TERMINAL_STATES: set[str] = {OrderStatus.CANCELLED}

ORDER_NUMBER_MAX_RETRIES = 5
ORDER_NUMBER_SUFFIX_LENGTH = 4

DEFAULT_RECENT_LIMIT = 10
MAX_RECENT_LIMIT = 100

INITIAL_TIMELINE_NOTE = "Order placed successfully"

# Customer field limits (after sanitizing)
MAX_NAME_LENGTH = 90
MAX_ADDRESS_LENGTH = 220
MAX_REGION_LENGTH = 90
MAX_NOTES_LENGTH = 300
MAX_PHONE_DIGITS = 13
PINCODE_DIGITS = 6
MIN_PHONE_DIGITS = 10

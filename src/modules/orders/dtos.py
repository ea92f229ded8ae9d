"""Order DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.  These are
the contracts between the API layer (DRF serializers) and the Service
layer.  DTOs are immutable (``frozen=True``).

Customer text is sanitized here, once, at the boundary: ``<``/``>`` are
stripped, runs of whitespace collapse to one space, and every field is
capped; phone and pincode keep digits only.

- ``OrderItemInputDTO``: a cart line (``product_id`` + ``qty``).
- ``CustomerDTO``: sanitized contact and shipping address.
- ``CreateOrderDTO``: checkout input.
- ``PaymentInfoDTO``: payment block attached by the payment flow.
- ``FulfillmentUpdateDTO``: partial admin edit of fulfillment metadata.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    ValidationError,
    field_validator,
    model_validator,
)

from modules.orders.constants import (
    MAX_ADDRESS_LENGTH,
    MAX_NAME_LENGTH,
    MAX_NOTES_LENGTH,
    MAX_PHONE_DIGITS,
    MAX_REGION_LENGTH,
    MIN_PHONE_DIGITS,
    PINCODE_DIGITS,
    PaymentMethod,
    PaymentStatus,
)

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def sanitize_text(value: object, max_length: int) -> str:
    if not isinstance(value, str):
        return ""
    cleaned = re.sub(r"[<>]", "", value)
    cleaned = re.sub(r"\s+", " ", cleaned).strip()
    return cleaned[:max_length]


def digits_only(value: object, max_length: int) -> str:
    if value is None:
        return ""
    return re.sub(r"\D", "", str(value))[:max_length]


def normalize_email(value: object) -> str:
    return sanitize_text(value, 254).lower()


# ---------------------------------------------------------------------------
# Input DTOs
# ---------------------------------------------------------------------------


class OrderItemInputDTO(BaseModel):
    """A cart line.  Name and price come from the catalog, never from here."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    product_id: str
    qty: int = 1

    @field_validator("product_id", mode="before")
    @classmethod
    def product_id_required(cls, v: object) -> str:
        cleaned = sanitize_text(v if isinstance(v, str) else str(v or ""), 120)
        if not cleaned:
            raise ValueError("Each order item must include a productId.")
        return cleaned

    @field_validator("qty")
    @classmethod
    def qty_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Quantity must be at least 1.")
        return v


class CustomerDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    email: str
    phone: str
    address: str
    city: str
    state: str
    pincode: str
    notes: str = ""

    @field_validator("name", mode="before")
    @classmethod
    def clean_name(cls, v: object) -> str:
        return sanitize_text(v, MAX_NAME_LENGTH)

    @field_validator("address", mode="before")
    @classmethod
    def clean_address(cls, v: object) -> str:
        return sanitize_text(v, MAX_ADDRESS_LENGTH)

    @field_validator("city", "state", mode="before")
    @classmethod
    def clean_region(cls, v: object) -> str:
        return sanitize_text(v, MAX_REGION_LENGTH)

    @field_validator("notes", mode="before")
    @classmethod
    def clean_notes(cls, v: object) -> str:
        return sanitize_text(v, MAX_NOTES_LENGTH)

    @field_validator("phone", mode="before")
    @classmethod
    def clean_phone(cls, v: object) -> str:
        phone = digits_only(v, MAX_PHONE_DIGITS)
        if len(phone) < MIN_PHONE_DIGITS:
            raise ValueError("A valid customer phone number is required.")
        return phone

    @field_validator("pincode", mode="before")
    @classmethod
    def clean_pincode(cls, v: object) -> str:
        return digits_only(v, PINCODE_DIGITS)

    @field_validator("email", mode="before")
    @classmethod
    def clean_email(cls, v: object) -> str:
        email = normalize_email(v)
        if not _EMAIL_RE.match(email):
            raise ValueError("A valid customer email is required.")
        return email

    @model_validator(mode="after")
    def address_complete(self):
        if (
            not self.name
            or not self.address
            or not self.city
            or not self.state
            or len(self.pincode) != PINCODE_DIGITS
        ):
            raise ValueError("Incomplete shipping address details.")
        return self


class CreateOrderDTO(BaseModel):
    """Checkout input.

    ``client_discount`` is what the storefront displayed; it is advisory
    and only used to log divergence from the recomputed discount.
    """

    model_config = ConfigDict(frozen=True)

    items: List[OrderItemInputDTO]
    customer: CustomerDTO
    coupon_code: Optional[str] = None
    client_discount: Optional[Decimal] = None
    payment_method: PaymentMethod = PaymentMethod.COD

    @field_validator("items")
    @classmethod
    def items_must_not_be_empty(cls, v: List[OrderItemInputDTO]) -> List[OrderItemInputDTO]:
        if not v:
            raise ValueError("Order items are required.")
        return v

    @field_validator("coupon_code", mode="before")
    @classmethod
    def clean_coupon(cls, v: object) -> Optional[str]:
        cleaned = sanitize_text(v, 120)
        return cleaned or None

    @model_validator(mode="after")
    def no_duplicate_products(self):
        """Prevent the same product appearing on two lines."""
        product_ids = [item.product_id for item in self.items]
        if len(product_ids) != len(set(product_ids)):
            raise ValueError("Duplicate product IDs are not allowed in the same order.")
        return self


class PaymentInfoDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    method: PaymentMethod = PaymentMethod.COD
    status: PaymentStatus = PaymentStatus.PENDING
    transaction_id: str = ""
    paid_at: Optional[datetime] = None


class FulfillmentUpdateDTO(BaseModel):
    """Partial update: only fields present in ``model_fields_set`` are written.

    Sending ``null`` explicitly clears a field; omitting it leaves it alone.
    """

    model_config = ConfigDict(frozen=True)

    tracking_number: Optional[str] = None
    shipping_carrier: Optional[str] = None
    estimated_delivery: Optional[date] = None
    admin_notes: Optional[str] = None
    cancellation_reason: Optional[str] = None
    shipment_id: Optional[str] = None

    @field_validator(
        "tracking_number", "shipping_carrier", "shipment_id", mode="before"
    )
    @classmethod
    def clean_short_text(cls, v: object) -> Optional[str]:
        if v is None:
            return None
        return sanitize_text(str(v), 128)

    @field_validator("admin_notes", mode="before")
    @classmethod
    def clean_admin_notes(cls, v: object) -> Optional[str]:
        if v is None:
            return None
        return sanitize_text(v, 2000)

    @field_validator("cancellation_reason", mode="before")
    @classmethod
    def clean_reason(cls, v: object) -> Optional[str]:
        if v is None:
            return None
        return sanitize_text(v, MAX_NOTES_LENGTH)

    def changes(self) -> dict:
        """``{field: value}`` for the fields the caller actually sent."""
        return {name: getattr(self, name) for name in self.model_fields_set}


def first_error_message(exc: ValidationError) -> str:
    """Human-readable message of the first Pydantic error."""
    errors = exc.errors()
    if not errors:
        return "Invalid input."
    message = str(errors[0].get("msg", "Invalid input."))
    return message.removeprefix("Value error, ")

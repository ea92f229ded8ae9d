"""Shipping DTOs (Pydantic v2).

- ``TrackingUpdateDTO``: one carrier tracking webhook push; only ``awb``
  is required, everything else is optional and coerced to text.
- ``ServiceabilityQueryDTO``: pincode check requested by the storefront.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, field_validator

from modules.orders.constants import PINCODE_DIGITS
from modules.orders.dtos import digits_only

DEFAULT_PARCEL_WEIGHT_KG = 0.5


def _as_text(value: object) -> str:
    if value is None or isinstance(value, bool):
        return ""
    if isinstance(value, (int, float)):
        return str(value)
    return value.strip() if isinstance(value, str) else ""


class TrackingUpdateDTO(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    awb: str
    current_status: str = ""
    order_id: str = ""
    shipment_id: str = ""
    delivered_date: str = ""
    location: str = ""

    @field_validator("awb", mode="before")
    @classmethod
    def _require_awb(cls, value: object) -> str:
        if not isinstance(value, str) or not value.strip():
            raise ValueError("Invalid webhook payload: missing awb.")
        return value.strip()

    @field_validator(
        "current_status", "order_id", "shipment_id", "delivered_date", "location",
        mode="before",
    )
    @classmethod
    def _coerce_text(cls, value: object) -> str:
        return _as_text(value)[:200]


class ServiceabilityQueryDTO(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    delivery_pincode: str
    weight: float = DEFAULT_PARCEL_WEIGHT_KG
    cod: bool = False

    @field_validator("delivery_pincode", mode="before")
    @classmethod
    def _pincode(cls, value: object) -> str:
        pincode = digits_only(value, 10)
        if len(pincode) != PINCODE_DIGITS:
            raise ValueError("A valid 6-digit delivery pincode is required.")
        return pincode

    @field_validator("weight", mode="before")
    @classmethod
    def _weight(cls, value: object) -> float:
        try:
            weight = float(value)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return DEFAULT_PARCEL_WEIGHT_KG
        return weight if weight > 0 else DEFAULT_PARCEL_WEIGHT_KG

    @field_validator("cod", mode="before")
    @classmethod
    def _cod(cls, value: object) -> bool:
        return value in (1, "1", True)

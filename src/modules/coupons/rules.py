"""The single storefront promotion and how it discounts a subtotal.

Only the SHA-256 digest of the promotion code is configured, so the rule
can be evaluated anywhere (server endpoint, order creation, client-side
fallback) without the plain code ever being shipped.

Promotion kinds:

* ``fixed`` – ``discount = min(value, subtotal)``
* ``floor`` – the payable subtotal drops to ``value``:
  ``discount = max(0, subtotal - value)``

Either way ``0 <= discount <= subtotal``.
"""

from __future__ import annotations

import hashlib
import hmac
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from django.conf import settings

from modules.coupons.exceptions import InvalidCouponConfiguration

MSG_REQUIRED = "Coupon code is required."
MSG_INVALID = "Invalid coupon code."
MSG_APPLIED = "Coupon applied."

KIND_FIXED = "fixed"
KIND_FLOOR = "floor"

ZERO = Decimal("0.00")


@dataclass(frozen=True)
class CouponResult:
    valid: bool
    discount: Decimal
    message: str

    @classmethod
    def rejected(cls, message: str = MSG_INVALID) -> CouponResult:
        return cls(valid=False, discount=ZERO, message=message)


def code_digest(code: str) -> str:
    return hashlib.sha256(code.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class CouponRule:
    """One hashed coupon code and how it discounts.

    ``fixed`` takes ``value`` off the subtotal.  ``floor`` lowers the
    merchandise subtotal to ``value``; shipping is charged on top and is
    not part of the base.  A cart of 548.00 with 49.00 shipping and a
    floor of 9 therefore pays 58.00, not 9.00.  The discount never
    exceeds the subtotal.
    """

    code_sha256: str
    kind: str
    value: Decimal

    @classmethod
    def from_settings(cls) -> CouponRule:
        kind = str(settings.COUPON_KIND).strip().lower()
        if kind not in (KIND_FIXED, KIND_FLOOR):
            raise InvalidCouponConfiguration(f"Unknown coupon kind: {kind!r}")
        try:
            value = Decimal(str(settings.COUPON_VALUE))
        except InvalidOperation as exc:
            raise InvalidCouponConfiguration(
                f"COUPON_VALUE is not a number: {settings.COUPON_VALUE!r}"
            ) from exc
        if value < 0:
            raise InvalidCouponConfiguration("COUPON_VALUE must not be negative.")
        return cls(
            code_sha256=str(settings.COUPON_CODE_SHA256).strip().lower(),
            kind=kind,
            value=value,
        )

    def matches(self, code: str) -> bool:
        if not self.code_sha256:
            return False
        return hmac.compare_digest(code_digest(code), self.code_sha256)

    def discount_for(self, subtotal: Decimal) -> Decimal:
        subtotal = max(Decimal(subtotal), ZERO)
        if self.kind == KIND_FIXED:
            discount = min(self.value, subtotal)
        else:
            discount = max(ZERO, subtotal - self.value)
        return discount.quantize(Decimal("0.01"))

    def evaluate(self, code: str | None, subtotal: Decimal) -> CouponResult:
        normalized = (code or "").strip()
        if not normalized:
            return CouponResult.rejected(MSG_REQUIRED)
        if not self.matches(normalized):
            return CouponResult.rejected(MSG_INVALID)
        return CouponResult(
            valid=True, discount=self.discount_for(subtotal), message=MSG_APPLIED
        )

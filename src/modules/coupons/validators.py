"""Coupon validation strategies.

``CouponValidator`` asks the authoritative endpoint first and falls back
to evaluating the rule locally only when that endpoint cannot answer.
An authoritative rejection (``valid=false`` body or a 4xx) is final.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from decimal import Decimal, InvalidOperation
from typing import Optional

import requests
import structlog
from django.conf import settings

from modules.coupons.exceptions import CouponServiceUnavailable
from modules.coupons.rules import ZERO, CouponResult, CouponRule

logger = structlog.get_logger(__name__)


class ICouponValidator(ABC):
    @abstractmethod
    def validate(self, code: str | None, subtotal: Decimal) -> CouponResult:
        """Return validity and the clamped discount for ``subtotal``."""


class LocalCouponValidator(ICouponValidator):
    """Evaluates the configured rule in-process."""

    def __init__(self, rule: Optional[CouponRule] = None) -> None:
        self._rule = rule

    @property
    def rule(self) -> CouponRule:
        return self._rule or CouponRule.from_settings()

    def validate(self, code: str | None, subtotal: Decimal) -> CouponResult:
        return self.rule.evaluate(code, subtotal)


class RemoteCouponValidator(ICouponValidator):
    """Calls ``POST {CHECKOUT_API_BASE_URL}/coupons/validate/``.

    Raises ``CouponServiceUnavailable`` on transport errors and 5xx
    responses; everything else is the server's final word.
    """

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[int] = None) -> None:
        self._base_url = (base_url or settings.CHECKOUT_API_BASE_URL).rstrip("/")
        self._timeout = timeout or settings.HTTP_TIMEOUT_SECONDS

    def validate(self, code: str | None, subtotal: Decimal) -> CouponResult:
        url = f"{self._base_url}/coupons/validate/"
        try:
            response = requests.post(
                url,
                json={"couponCode": code or "", "subtotal": str(subtotal)},
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise CouponServiceUnavailable(f"Coupon service unreachable: {exc}") from exc

        if response.status_code >= 500:
            raise CouponServiceUnavailable(
                f"Coupon service returned {response.status_code}"
            )

        try:
            body = response.json()
        except ValueError:
            body = {}

        if not response.ok:
            return CouponResult.rejected(
                body.get("message")
                or f"Coupon validation failed (HTTP {response.status_code})"
            )

        valid = bool(body.get("valid"))
        try:
            discount = Decimal(str(body.get("discount", 0))) if valid else ZERO
        except InvalidOperation:
            discount = ZERO
        return CouponResult(valid=valid, discount=discount, message=body.get("message", ""))


class CouponValidator(ICouponValidator):
    """Primary/fallback strategy."""

    def __init__(
        self,
        primary: Optional[ICouponValidator] = None,
        fallback: Optional[ICouponValidator] = None,
    ) -> None:
        self._primary = primary or RemoteCouponValidator()
        self._fallback = fallback or LocalCouponValidator()

    def validate(self, code: str | None, subtotal: Decimal) -> CouponResult:
        try:
            return self._primary.validate(code, subtotal)
        except CouponServiceUnavailable as exc:
            logger.warning("coupon.primary_unavailable", error=str(exc))
            return self._fallback.validate(code, subtotal)

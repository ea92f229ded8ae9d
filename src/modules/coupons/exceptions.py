"""Coupon domain exceptions."""

from __future__ import annotations


class CouponServiceUnavailable(Exception):
    """The authoritative coupon endpoint could not answer (network error or 5xx)."""


class InvalidCouponConfiguration(Exception):
    """``COUPON_KIND`` / ``COUPON_VALUE`` settings cannot be interpreted."""

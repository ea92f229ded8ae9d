"""Unit tests for the promotion rule."""

from __future__ import annotations

from decimal import Decimal

import pytest

from modules.coupons.exceptions import InvalidCouponConfiguration
from modules.coupons.rules import (
    MSG_APPLIED,
    MSG_INVALID,
    MSG_REQUIRED,
    CouponRule,
    code_digest,
)

pytestmark = pytest.mark.unit

CODE = "get10oFF"


def _rule(kind="floor", value="9", code=CODE) -> CouponRule:
    return CouponRule(code_sha256=code_digest(code), kind=kind, value=Decimal(value))


class TestFloorPromotion:
    def test_payable_subtotal_drops_to_the_floor(self):
        result = _rule().evaluate(CODE, Decimal("548"))
        assert result.valid is True
        assert result.discount == Decimal("539.00")
        assert result.message == MSG_APPLIED

    def test_subtotal_below_floor_gets_no_discount(self):
        assert _rule().evaluate(CODE, Decimal("5")).discount == Decimal("0.00")

    def test_surrounding_whitespace_is_ignored(self):
        assert _rule().evaluate(f"  {CODE} ", Decimal("100")).valid is True

    def test_code_is_case_sensitive(self):
        result = _rule().evaluate(CODE.upper(), Decimal("548"))
        assert result.valid is False
        assert result.message == MSG_INVALID


class TestFixedPromotion:
    def test_discount_is_the_fixed_value(self):
        result = _rule(kind="fixed", value="150").evaluate(CODE, Decimal("548"))
        assert result.discount == Decimal("150.00")

    def test_discount_never_exceeds_subtotal(self):
        result = _rule(kind="fixed", value="150").evaluate(CODE, Decimal("99.50"))
        assert result.discount == Decimal("99.50")


class TestRejections:
    @pytest.mark.parametrize("code", [None, "", "   "])
    def test_blank_code_is_required(self, code):
        result = _rule().evaluate(code, Decimal("548"))
        assert result.valid is False
        assert result.discount == Decimal("0.00")
        assert result.message == MSG_REQUIRED

    def test_unconfigured_rule_matches_nothing(self):
        rule = CouponRule(code_sha256="", kind="floor", value=Decimal("9"))
        assert rule.evaluate(CODE, Decimal("548")).valid is False


class TestFromSettings:
    def test_reads_configured_rule(self):
        rule = CouponRule.from_settings()
        assert rule.kind == "floor"
        assert rule.value == Decimal("9")
        assert rule.matches(CODE)

    def test_unknown_kind_is_a_configuration_error(self, settings):
        settings.COUPON_KIND = "percent"
        with pytest.raises(InvalidCouponConfiguration):
            CouponRule.from_settings()

    def test_non_numeric_value_is_a_configuration_error(self, settings):
        settings.COUPON_VALUE = "ten"
        with pytest.raises(InvalidCouponConfiguration):
            CouponRule.from_settings()

    def test_negative_value_is_a_configuration_error(self, settings):
        settings.COUPON_VALUE = "-1"
        with pytest.raises(InvalidCouponConfiguration):
            CouponRule.from_settings()

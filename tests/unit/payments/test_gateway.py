"""Unit tests for the payment gateway adapters and factory."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
import requests

from modules.payments.exceptions import GatewayAuthenticationError, GatewayError
from modules.payments.gateway import get_gateway, reset_gateway, set_gateway
from modules.payments.gateway.fake_adapter import FakeGateway
from modules.payments.gateway.razorpay_adapter import RazorpayGateway

pytestmark = pytest.mark.unit


def _http(status_code=200, body=None, text=""):
    response = MagicMock()
    response.status_code = status_code
    response.ok = status_code < 400
    response.json.return_value = body or {}
    response.text = text
    return response


class TestRazorpayGateway:
    def test_creates_order_with_basic_auth(self):
        gateway = RazorpayGateway(base_url="https://api.razorpay.test/v1/")
        with patch("modules.payments.gateway.razorpay_adapter.requests.post") as post:
            post.return_value = _http(
                body={
                    "id": "order_N1",
                    "amount": 5800,
                    "currency": "INR",
                    "receipt": "sf_1_user-a",
                    "status": "created",
                }
            )
            result = gateway.create_order(5800, "INR", "sf_1_user-a", {"mode": "secure"})

        args, kwargs = post.call_args
        assert args[0] == "https://api.razorpay.test/v1/orders"
        assert kwargs["auth"] == ("rzp_test_key", "rzp_test_secret")
        assert kwargs["json"]["amount"] == 5800
        assert kwargs["json"]["notes"] == {"mode": "secure"}
        assert result.id == "order_N1"
        assert result.amount == 5800

    def test_unauthorized_is_an_authentication_error(self):
        with patch("modules.payments.gateway.razorpay_adapter.requests.post") as post:
            post.return_value = _http(status_code=401)
            with pytest.raises(GatewayAuthenticationError):
                RazorpayGateway().create_order(100, "INR", "r", {})

    def test_other_http_errors(self):
        with patch("modules.payments.gateway.razorpay_adapter.requests.post") as post:
            post.return_value = _http(status_code=400, text="bad amount")
            with pytest.raises(GatewayError, match="returned 400"):
                RazorpayGateway().create_order(100, "INR", "r", {})

    def test_network_error(self):
        with patch(
            "modules.payments.gateway.razorpay_adapter.requests.post",
            side_effect=requests.ConnectionError("refused"),
        ):
            with pytest.raises(GatewayError, match="unreachable"):
                RazorpayGateway().create_order(100, "INR", "r", {})

    def test_missing_keys(self, settings):
        settings.RAZORPAY_KEY_SECRET = ""
        with pytest.raises(GatewayError, match="not configured"):
            RazorpayGateway().create_order(100, "INR", "r", {})


class TestFakeGateway:
    def test_records_calls_and_returns_order(self):
        gateway = FakeGateway()
        result = gateway.create_order(5800, "INR", "sf_1", {"mode": "guest"})

        assert result.id.startswith("order_fake")
        assert gateway.calls == [
            {
                "method": "create_order",
                "amount": 5800,
                "currency": "INR",
                "receipt": "sf_1",
                "notes": {"mode": "guest"},
            }
        ]

    def test_configured_failures(self):
        gateway = FakeGateway()
        gateway.configure(should_succeed=False, failure_reason="Gateway down")
        with pytest.raises(GatewayError, match="Gateway down"):
            gateway.create_order(100, "INR", "r", {})

        gateway.configure(should_succeed=True, auth_failure=True)
        with pytest.raises(GatewayAuthenticationError):
            gateway.create_order(100, "INR", "r", {})


class TestGatewayFactory:
    def test_builds_configured_adapter_once(self):
        first = get_gateway()
        assert isinstance(first, FakeGateway)
        assert get_gateway() is first

    def test_set_and_reset(self):
        custom = FakeGateway()
        set_gateway(custom)
        assert get_gateway() is custom
        reset_gateway()
        assert get_gateway() is not custom

    def test_razorpay_selected_by_setting(self, settings):
        settings.PAYMENT_GATEWAY = "razorpay"
        assert isinstance(get_gateway(), RazorpayGateway)

    def test_unknown_adapter(self, settings):
        settings.PAYMENT_GATEWAY = "paypal"
        with pytest.raises(ValueError):
            get_gateway()

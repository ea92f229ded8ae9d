"""Razorpay adapter over its REST API.

``POST {RAZORPAY_BASE_URL}/orders`` with HTTP basic auth
(key id / key secret).  A 401 means the configured credentials are
wrong, which the checkout reports differently from other failures.
"""

from __future__ import annotations

from typing import Dict, Optional

import requests
import structlog
from django.conf import settings

from modules.payments.exceptions import GatewayAuthenticationError, GatewayError
from modules.payments.gateway.port import GatewayOrderResult, PaymentGateway

logger = structlog.get_logger(__name__)


class RazorpayGateway(PaymentGateway):
    def __init__(
        self,
        key_id: Optional[str] = None,
        key_secret: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[int] = None,
    ) -> None:
        self.key_id = key_id or settings.RAZORPAY_KEY_ID
        self.key_secret = key_secret or settings.RAZORPAY_KEY_SECRET
        self.base_url = (base_url or settings.RAZORPAY_BASE_URL).rstrip("/")
        self.timeout = timeout or settings.HTTP_TIMEOUT_SECONDS

    def create_order(
        self,
        amount: int,
        currency: str,
        receipt: str,
        notes: Dict[str, str],
    ) -> GatewayOrderResult:
        if not self.key_id or not self.key_secret:
            raise GatewayError("Payment gateway is not configured.")

        try:
            response = requests.post(
                f"{self.base_url}/orders",
                json={
                    "amount": amount,
                    "currency": currency,
                    "receipt": receipt,
                    "notes": notes,
                },
                auth=(self.key_id, self.key_secret),
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.warning("razorpay.network_error", error=str(exc))
            raise GatewayError(f"Payment gateway unreachable: {exc}") from exc

        if response.status_code == 401:
            logger.error("razorpay.authentication_failed")
            raise GatewayAuthenticationError()
        if not response.ok:
            logger.warning(
                "razorpay.order_failed",
                status_code=response.status_code,
                body=response.text[:200],
            )
            raise GatewayError(
                f"Payment gateway returned {response.status_code}"
            )

        data = response.json()
        return GatewayOrderResult(
            id=data["id"],
            amount=int(data["amount"]),
            currency=data.get("currency", currency),
            receipt=data.get("receipt", receipt),
            status=data.get("status", "created"),
            notes=data.get("notes") or {},
        )

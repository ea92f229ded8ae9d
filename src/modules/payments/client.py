"""HTTP client for the checkout payment endpoints.

Used by storefront-side code (and the ``CheckoutCoordinator``) to talk to
``/api/v1/payments/``.  Failures are split in two:

- ``CheckoutTransportError``: the request may not have reached the server
  or its answer is unknown (network error, 5xx).
- ``CheckoutRejected``: the server answered and said no (4xx).
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import requests
import structlog
from django.conf import settings

logger = structlog.get_logger(__name__)


class CheckoutApiError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class CheckoutTransportError(CheckoutApiError):
    pass


class CheckoutRejected(CheckoutApiError):
    pass


class CheckoutApiClient:
    def __init__(self, base_url: Optional[str] = None, timeout: Optional[int] = None) -> None:
        self.base_url = (base_url or settings.CHECKOUT_API_BASE_URL).rstrip("/")
        self.timeout = timeout or settings.HTTP_TIMEOUT_SECONDS

    def create_gateway_order(
        self,
        order_details: Dict[str, Any],
        recaptcha_token: str,
        id_token: Optional[str] = None,
        guest_email: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Open a gateway order; guest checkout when no ``id_token`` is given."""
        body: Dict[str, Any] = {
            "recaptchaToken": recaptcha_token,
            "orderDetails": order_details,
        }
        if id_token:
            path = "payments/orders/"
        else:
            path = "payments/guest-orders/"
            body["guestEmail"] = guest_email or ""
        return self._post(path, body, id_token, failure="Could not create payment order")

    def verify_payment(
        self,
        gateway_order_id: str,
        payment_id: str,
        signature: str,
        id_token: Optional[str] = None,
        guest_email: Optional[str] = None,
    ) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "razorpay_order_id": gateway_order_id,
            "razorpay_payment_id": payment_id,
            "razorpay_signature": signature,
        }
        if id_token:
            path = "payments/verify/"
        else:
            path = "payments/guest-verify/"
            body["guestEmail"] = guest_email or ""
        return self._post(path, body, id_token, failure="Payment verification failed")

    def _post(
        self,
        path: str,
        body: Dict[str, Any],
        id_token: Optional[str],
        failure: str,
    ) -> Dict[str, Any]:
        headers = {"Content-Type": "application/json"}
        if id_token:
            headers["Authorization"] = f"Bearer {id_token}"

        url = f"{self.base_url}/{path}"
        try:
            response = requests.post(url, json=body, headers=headers, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.warning("checkout_client.network_error", path=path, error=str(exc))
            raise CheckoutTransportError(f"{failure}: {exc}") from exc

        try:
            data = response.json()
        except ValueError:
            data = {}

        if response.status_code >= 500:
            raise CheckoutTransportError(
                f"{failure} (HTTP {response.status_code})", response.status_code
            )
        if not response.ok:
            message = data.get("detail") or f"{failure} (HTTP {response.status_code})"
            raise CheckoutRejected(str(message), response.status_code)
        return data

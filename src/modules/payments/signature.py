"""Gateway payment signatures.

The gateway signs ``"{gateway_order_id}|{payment_id}"`` with HMAC-SHA256
keyed by the account's key secret and sends the hex digest back with the
payment.
"""

from __future__ import annotations

import hashlib
import hmac
from typing import Optional

from django.conf import settings


def expected_signature(
    gateway_order_id: str, payment_id: str, secret: Optional[str] = None
) -> str:
    key = (secret or settings.RAZORPAY_KEY_SECRET).strip().strip('"')
    message = f"{gateway_order_id}|{payment_id}".encode()
    return hmac.new(key.encode(), message, hashlib.sha256).hexdigest()


def verify_signature(
    gateway_order_id: str,
    payment_id: str,
    signature: str,
    secret: Optional[str] = None,
) -> bool:
    """Constant-time comparison of ``signature`` with the expected digest."""
    if not signature:
        return False
    expected = expected_signature(gateway_order_id, payment_id, secret)
    return hmac.compare_digest(expected, signature.strip().lower())

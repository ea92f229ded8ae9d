"""Shiprocket API authentication.

Logs in with the account email/password and caches the bearer token in
the Django cache until 60 seconds before the JWT ``exp`` claim (30
minutes when the token carries no readable expiry), so every worker
shares one token.
"""

from __future__ import annotations

import time
from typing import Optional

import jwt as pyjwt
import requests
import structlog
from django.conf import settings
from django.core.cache import cache
from jwt.exceptions import PyJWTError

from modules.shipping.exceptions import CarrierAuthError

logger = structlog.get_logger(__name__)

TOKEN_CACHE_KEY = "shipping:shiprocket:token"
DEFAULT_TOKEN_LIFETIME_SECONDS = 30 * 60
EXPIRY_SKEW_SECONDS = 60


def token_expiry(token: str, now: Optional[float] = None) -> float:
    """Epoch seconds at which ``token`` expires (claims are read, not verified)."""
    now = time.time() if now is None else now
    try:
        claims = pyjwt.decode(token, options={"verify_signature": False})
    except PyJWTError:
        return now + DEFAULT_TOKEN_LIFETIME_SECONDS
    exp = claims.get("exp")
    if isinstance(exp, (int, float)):
        return float(exp)
    return now + DEFAULT_TOKEN_LIFETIME_SECONDS


class ShiprocketAuth:
    def __init__(
        self,
        email: Optional[str] = None,
        password: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[int] = None,
    ) -> None:
        self.email = (email or settings.SHIPROCKET_EMAIL).strip().strip('"')
        self.password = (password or settings.SHIPROCKET_PASSWORD).strip().strip('"')
        self.base_url = (base_url or settings.SHIPROCKET_BASE_URL).rstrip("/")
        self.timeout = timeout or settings.HTTP_TIMEOUT_SECONDS

    def get_token(self) -> str:
        """Cached bearer token, logging in again when it is about to expire.

        Raises ``CarrierAuthError`` when credentials are missing, the login
        fails or the response carries no token.
        """
        token = cache.get(TOKEN_CACHE_KEY)
        if token:
            return token

        if not self.email or not self.password:
            raise CarrierAuthError(
                "Missing required carrier credentials: SHIPROCKET_EMAIL / SHIPROCKET_PASSWORD"
            )

        try:
            response = requests.post(
                f"{self.base_url}/auth/login",
                json={"email": self.email, "password": self.password},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise CarrierAuthError(f"Shiprocket auth network error: {exc}") from exc

        if not response.ok:
            raise CarrierAuthError(
                f"Shiprocket auth failed ({response.status_code}): {response.text[:300]}"
            )

        try:
            parsed = response.json()
        except ValueError as exc:
            raise CarrierAuthError("Shiprocket auth response was not JSON.") from exc
        token = parsed.get("token") if isinstance(parsed, dict) else None
        if not token or not isinstance(token, str):
            raise CarrierAuthError("Shiprocket auth response did not include a token.")

        ttl = int(token_expiry(token) - time.time() - EXPIRY_SKEW_SECONDS)
        if ttl > 0:
            cache.set(TOKEN_CACHE_KEY, token, ttl)
        logger.info("shiprocket.token_refreshed", ttl_seconds=max(ttl, 0))
        return token

    def invalidate(self) -> None:
        cache.delete(TOKEN_CACHE_KEY)

"""Storefront identity-token authentication for Django REST Framework.

Customers sign in with the storefront identity provider, which issues
RS256 ID tokens.  Signing keys are fetched from the provider's JWKS
endpoint and cached in-memory (300 s) via ``PyJWKClient``.

Security decisions
------------------
* **Fail Closed**: any decode / validation error returns 401.
* ``algorithms`` is pinned to the configured value (default RS256),
  never derived from the incoming token.
* Audience **and** issuer are always validated.
* Tokens from another issuer are left to the next backend (SimpleJWT
  staff tokens).
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any, Dict

import jwt as pyjwt
import structlog
from django.conf import settings
from jwt import PyJWKClient
from jwt.exceptions import PyJWTError
from rest_framework.authentication import BaseAuthentication
from rest_framework.exceptions import AuthenticationFailed

logger = structlog.get_logger(__name__)


@lru_cache(maxsize=4)
def _jwks_client(url: str) -> PyJWKClient:
    return PyJWKClient(url, cache_jwk_set=True, lifespan=300)


class IdentityUser:
    """Request user for callers authenticated by an identity token.

    The identity provider is the source of truth, so no local Django
    ``User`` row is required.  ``uid`` is the ``sub`` claim.
    """

    is_authenticated = True
    is_active = True
    is_anonymous = False

    def __init__(self, payload: Dict[str, Any]):
        self.payload = payload
        self.uid: str = payload.get("sub") or payload.get("uid", "")
        self.email: str = (payload.get("email") or "").strip().lower()
        self.email_verified: bool = bool(payload.get("email_verified", False))
        self.is_admin: bool = bool(payload.get("admin", False))

    @property
    def sub(self) -> str:
        return self.uid

    @property
    def pk(self) -> str:
        return self.uid

    @property
    def is_staff(self) -> bool:
        return self.is_admin

    def __str__(self) -> str:  # pragma: no cover
        return self.uid


class IdentityTokenAuthentication(BaseAuthentication):
    """DRF authentication class that validates identity-provider ID tokens."""

    keyword = "Bearer"

    def authenticate(self, request):
        """Return ``(IdentityUser, token)`` or ``None`` (no credentials)."""
        header = request.META.get("HTTP_AUTHORIZATION", "")
        if not header:
            return None

        token = self._extract_token(header)

        if not self._is_enabled():
            return None
        if not self._token_has_identity_issuer(token):
            return None

        payload = self._decode_token(token)
        user = IdentityUser(payload)
        logger.info("identity.authenticated", uid=user.uid)
        return (user, token)

    def authenticate_header(self, request):
        """Value for the ``WWW-Authenticate`` response header on 401."""
        return f'{self.keyword} realm="api"'

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _is_enabled() -> bool:
        return bool(
            settings.IDENTITY_JWKS_URL
            and settings.IDENTITY_AUDIENCE
            and settings.IDENTITY_ISSUER
        )

    @staticmethod
    def _extract_token(header: str) -> str:
        parts = header.split()
        if len(parts) != 2 or parts[0].lower() != "bearer":
            raise AuthenticationFailed("Invalid Authorization header format.")
        return parts[1]

    @staticmethod
    def _token_has_identity_issuer(token: str) -> bool:
        try:
            payload = pyjwt.decode(
                token,
                options={
                    "verify_signature": False,
                    "verify_aud": False,
                    "verify_iss": False,
                },
            )
        except PyJWTError:
            return False
        return payload.get("iss") == settings.IDENTITY_ISSUER

    @staticmethod
    def _decode_token(token: str) -> Dict[str, Any]:
        try:
            signing_key = _jwks_client(settings.IDENTITY_JWKS_URL).get_signing_key_from_jwt(
                token
            )
            payload = pyjwt.decode(
                token,
                signing_key.key,
                algorithms=[settings.IDENTITY_ALGORITHM],
                audience=settings.IDENTITY_AUDIENCE,
                issuer=settings.IDENTITY_ISSUER,
            )
        except PyJWTError as exc:
            logger.warning("identity.token_validation_failed", error=str(exc))
            raise AuthenticationFailed(f"Token validation failed: {exc}") from exc
        return payload


"""Caller identity: token users, staff users and the identity-token backend."""

from __future__ import annotations

from types import SimpleNamespace

import jwt as pyjwt
import pytest
from django.contrib.auth.models import AnonymousUser
from rest_framework.exceptions import AuthenticationFailed
from rest_framework.test import APIRequestFactory

from modules.core import authentication
from modules.core.authentication import IdentityTokenAuthentication, IdentityUser
from modules.core.identity import GUEST_UID, Identity
from modules.core.permissions import IsAdmin

pytestmark = pytest.mark.unit

SIGNING_KEY = "identity-test-signing-key-0123456789abcdef"
ISSUER = "https://securetoken.example.com/storefront"
AUDIENCE = "storefront"


@pytest.fixture()
def identity_settings(settings, monkeypatch):
    settings.IDENTITY_JWKS_URL = "https://keys.example.com/jwks.json"
    settings.IDENTITY_AUDIENCE = AUDIENCE
    settings.IDENTITY_ISSUER = ISSUER
    settings.IDENTITY_ALGORITHM = "HS256"

    signing_key = SimpleNamespace(key=SIGNING_KEY)
    jwks = SimpleNamespace(get_signing_key_from_jwt=lambda token: signing_key)
    monkeypatch.setattr(authentication, "_jwks_client", lambda url: jwks)
    return settings


def _token(**claims):
    payload = {
        "iss": ISSUER,
        "aud": AUDIENCE,
        "sub": "user-abc123",
        "email": "Asha@Example.com",
        "email_verified": True,
    }
    payload.update(claims)
    return pyjwt.encode(payload, SIGNING_KEY, algorithm="HS256")


def _request(header=None):
    factory = APIRequestFactory()
    if header is None:
        return factory.get("/api/v1/me")
    return factory.get("/api/v1/me", HTTP_AUTHORIZATION=header)


class TestIdentity:
    def test_guest_identity_normalizes_email(self):
        identity = Identity.guest("  Guest@Example.COM ")
        assert identity.uid == GUEST_UID
        assert identity.is_guest
        assert identity.email == "guest@example.com"
        assert identity.email_verified is False

    def test_anonymous_user_has_no_identity(self):
        assert Identity.from_user(AnonymousUser()) is None
        assert Identity.from_user(None) is None

    def test_identity_user_maps_claims(self, identity_user):
        identity = Identity.from_user(identity_user)
        assert identity == Identity(
            uid="user-abc123",
            email="asha@example.com",
            email_verified=True,
            is_admin=False,
        )

    def test_staff_user_is_trusted_admin(self, admin_user):
        identity = Identity.from_user(admin_user)
        assert identity.uid == str(admin_user.pk)
        assert identity.email_verified is True
        assert identity.is_admin is True

    def test_identity_user_exposes_pk_for_throttling(self, identity_user):
        assert identity_user.pk == "user-abc123"
        assert identity_user.sub == "user-abc123"


class TestIsAdmin:
    def test_admin_claim_grants_access(self):
        request = SimpleNamespace(user=IdentityUser({"sub": "u1", "admin": True}))
        assert IsAdmin().has_permission(request, None) is True

    def test_regular_customer_is_refused(self, identity_user):
        request = SimpleNamespace(user=identity_user)
        assert IsAdmin().has_permission(request, None) is False

    def test_anonymous_is_refused(self):
        request = SimpleNamespace(user=AnonymousUser())
        assert IsAdmin().has_permission(request, None) is False


class TestIdentityTokenAuthentication:
    def test_no_header_means_no_credentials(self, identity_settings):
        assert IdentityTokenAuthentication().authenticate(_request()) is None

    def test_malformed_header_is_rejected(self, identity_settings):
        with pytest.raises(AuthenticationFailed):
            IdentityTokenAuthentication().authenticate(_request("Token abc"))

    def test_disabled_when_not_configured(self, settings):
        settings.IDENTITY_JWKS_URL = ""
        result = IdentityTokenAuthentication().authenticate(_request(f"Bearer {_token()}"))
        assert result is None

    def test_other_issuer_is_left_to_next_backend(self, identity_settings):
        token = _token(iss="https://staff.example.com")
        assert IdentityTokenAuthentication().authenticate(_request(f"Bearer {token}")) is None

    def test_valid_token_authenticates(self, identity_settings):
        token = _token()
        user, raw = IdentityTokenAuthentication().authenticate(_request(f"Bearer {token}"))

        assert raw == token
        assert user.uid == "user-abc123"
        assert user.email == "asha@example.com"
        assert user.email_verified is True

    def test_wrong_audience_fails_closed(self, identity_settings):
        token = _token(aud="another-app")
        with pytest.raises(AuthenticationFailed):
            IdentityTokenAuthentication().authenticate(_request(f"Bearer {token}"))

    def test_bad_signature_fails_closed(self, identity_settings):
        token = pyjwt.encode(
            {"iss": ISSUER, "aud": AUDIENCE, "sub": "x"},
            "a-completely-different-signing-key-987654",
            algorithm="HS256",
        )
        with pytest.raises(AuthenticationFailed):
            IdentityTokenAuthentication().authenticate(_request(f"Bearer {token}"))

"""reCAPTCHA v3 token verification for checkout.

A token passes when Google's ``siteverify`` reports success, the action is
``checkout`` and the score is at least ``RECAPTCHA_MIN_SCORE``.  For local
development a fixed bypass token is accepted, but only while
``RECAPTCHA_ALLOW_LOCAL_BYPASS`` is on and the request host is local.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import requests
import structlog
from django.conf import settings

from modules.payments.constants import (
    MSG_RECAPTCHA_REQUIRED,
    RECAPTCHA_ACTION,
    RECAPTCHA_LOCAL_BYPASS_TOKEN,
)
from modules.payments.exceptions import (
    PaymentValidationError,
    RecaptchaFailed,
    RecaptchaNotConfigured,
)

logger = structlog.get_logger(__name__)

_LOCAL_HOSTS = ("localhost", "127.0.0.1")


@dataclass(frozen=True)
class RecaptchaResult:
    success: bool
    score: float = 0.0
    action: str = ""


class RecaptchaVerifier:
    def __init__(
        self,
        secret: Optional[str] = None,
        min_score: Optional[float] = None,
        verify_url: Optional[str] = None,
        timeout: Optional[int] = None,
    ) -> None:
        self.secret = secret if secret is not None else settings.RECAPTCHA_SECRET_KEY
        self.min_score = min_score if min_score is not None else settings.RECAPTCHA_MIN_SCORE
        self.verify_url = verify_url or settings.RECAPTCHA_VERIFY_URL
        self.timeout = timeout or settings.HTTP_TIMEOUT_SECONDS

    def is_local_bypass(self, token: str, host: str = "") -> bool:
        if not settings.RECAPTCHA_ALLOW_LOCAL_BYPASS:
            return False
        if token != RECAPTCHA_LOCAL_BYPASS_TOKEN:
            return False
        return any(local in (host or "") for local in _LOCAL_HOSTS)

    def verify(
        self,
        token: Optional[str],
        remote_ip: Optional[str] = None,
        host: str = "",
        expected_action: str = RECAPTCHA_ACTION,
    ) -> RecaptchaResult:
        """Raise unless the token passes; returns the verification result.

        Raises:
            PaymentValidationError: no token.
            RecaptchaNotConfigured: no secret configured.
            RecaptchaFailed: rejected, low score, wrong action or transport error.
        """
        token = (token or "").strip()[:4096]
        if not token:
            raise PaymentValidationError(MSG_RECAPTCHA_REQUIRED)

        if self.is_local_bypass(token, host):
            logger.info("recaptcha.local_bypass", host=host)
            return RecaptchaResult(success=True, score=1.0, action=expected_action)

        if not self.secret:
            raise RecaptchaNotConfigured()

        form = {"secret": self.secret, "response": token}
        if remote_ip and remote_ip != "unknown":
            form["remoteip"] = remote_ip

        try:
            response = requests.post(self.verify_url, data=form, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.warning("recaptcha.network_error", error=str(exc))
            raise RecaptchaFailed() from exc

        if not response.ok:
            logger.warning("recaptcha.http_error", status_code=response.status_code)
            raise RecaptchaFailed()

        data = response.json()
        try:
            score = float(data.get("score", 0))
        except (TypeError, ValueError):
            score = 0.0
        action = str(data.get("action") or "")[:64]
        success = bool(data.get("success"))

        if not success or action != expected_action or score < self.min_score:
            logger.warning(
                "recaptcha.rejected", success=success, action=action, score=score
            )
            raise RecaptchaFailed()

        return RecaptchaResult(success=True, score=score, action=action)

import time
from typing import Any, Callable, Dict

import structlog
from django.conf import settings
from django.core.cache import cache
from django.db import connections
from django.http import HttpRequest, JsonResponse
from django.utils import timezone
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from modules.core.identity import Identity

logger = structlog.get_logger(__name__)


def _check_database() -> None:
    conn = connections["default"]
    conn.ensure_connection()
    with conn.cursor() as cursor:
        cursor.execute("SELECT 1")
        cursor.fetchone()


def _check_cache() -> None:
    cache.set("_health_check", "ok", 10)
    if cache.get("_health_check") != "ok":
        raise ConnectionError("Cache read failed")


_CHECKS: Dict[str, Callable[[], None]] = {
    "database": _check_database,
    "cache": _check_cache,
}


def health_check(request: HttpRequest) -> JsonResponse:
    services: Dict[str, Dict[str, Any]] = {}
    overall_healthy = True

    for name, check in _CHECKS.items():
        start = time.monotonic()
        try:
            check()
        except Exception:
            services[name] = {"status": "down"}
            overall_healthy = False
            logger.error("health_check.check_failed", service=name)
            continue
        services[name] = {
            "status": "up",
            "response_time_ms": round((time.monotonic() - start) * 1000, 2),
        }

    status_label = "healthy" if overall_healthy else "unhealthy"
    logger.info("health_check.completed", status=status_label)

    return JsonResponse(
        {
            "status": status_label,
            "timestamp": timezone.now().isoformat(),
            "services": services,
            "adapters": {
                "payment_gateway": settings.PAYMENT_GATEWAY,
                "carrier": settings.CARRIER_ADAPTER,
            },
        },
        status=200 if overall_healthy else 503,
    )


class MeView(APIView):
    """Echo the caller identity the API resolved from the bearer token.

    * No token  -> 401
    * Bad token -> 401
    * Valid token -> 200 with uid / email / verification / admin flags
    """

    permission_classes = [IsAuthenticated]

    def get(self, request: HttpRequest) -> Response:
        identity = Identity.from_user(request.user)
        return Response(
            {
                "uid": identity.uid,
                "email": identity.email,
                "emailVerified": identity.email_verified,
                "isAdmin": identity.is_admin,
            }
        )

"""Request correlation for structured logs."""

import re
import time
import uuid
from contextvars import ContextVar
from typing import Callable

import structlog
from django.http import HttpRequest, HttpResponse

correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")

logger = structlog.get_logger(__name__)

# Client ids are echoed back and logged; anything else is replaced.
_CLIENT_ID_RE = re.compile(r"^[A-Za-z0-9._:-]{1,64}$")


def _correlation_id(request: HttpRequest) -> str:
    supplied = request.META.get("HTTP_X_REQUEST_ID", "")
    if supplied and _CLIENT_ID_RE.match(supplied):
        return supplied
    return str(uuid.uuid4())


class CorrelationIdMiddleware:
    """Bind one correlation id per request into the structlog context.

    The id comes from ``X-Request-ID`` when it is well formed, otherwise a
    fresh UUID4; it is echoed in the ``X-Request-ID`` response header so a
    checkout, its payment verification and the pickup it triggers can be
    joined in the logs.
    """

    def __init__(self, get_response: Callable[[HttpRequest], HttpResponse]) -> None:
        self.get_response = get_response

    def __call__(self, request: HttpRequest) -> HttpResponse:
        cid = _correlation_id(request)
        correlation_id_var.set(cid)
        request.correlation_id = cid

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(correlation_id=cid)

        started = time.monotonic()
        logger.info("request_started", method=request.method, path=request.path)

        response = self.get_response(request)

        logger.info(
            "request_finished",
            method=request.method,
            path=request.path,
            status_code=response.status_code,
            duration_ms=round((time.monotonic() - started) * 1000, 1),
        )
        response["X-Request-ID"] = cid
        return response

"""Shipping API views.

- ``/api/v1/shipping/webhook/``: carrier tracking pushes.  Authenticated
  by the shared ``x-api-key`` header (skipped when no secret is
  configured).  Logic failures still answer 200 so the carrier does not
  retry them forever.
- ``/api/v1/shipping/serviceability/``: anonymous pincode check.
- ``/api/v1/shipping/orders/{id}/cancel/``: the owner cancels an order
  together with its carrier booking.
"""

from __future__ import annotations

import hmac
from dataclasses import asdict

import structlog
from django.conf import settings
from pydantic import ValidationError
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from modules.core.identity import Identity
from modules.orders.dtos import first_error_message
from modules.orders.exceptions import OrderNotFound
from modules.shipping.dtos import ServiceabilityQueryDTO
from modules.shipping.exceptions import CarrierError
from modules.shipping.services import build_shipping_service

logger = structlog.get_logger(__name__)


def webhook_key_is_valid(received: str) -> bool:
    expected = settings.SHIPROCKET_WEBHOOK_SECRET.strip().strip('"')
    if not expected:
        return True
    return hmac.compare_digest(received.strip().encode(), expected.encode())


class CarrierWebhookView(APIView):
    authentication_classes: list = []
    permission_classes = [AllowAny]
    throttle_classes: list = []

    def get(self, request: Request) -> Response:
        return Response({"success": True, "message": "Webhook endpoint active"})

    def post(self, request: Request) -> Response:
        if not webhook_key_is_valid(request.headers.get("x-api-key", "")):
            logger.warning("tracking.webhook_unauthorized")
            return Response(
                {"success": False, "error": "Unauthorized"},
                status=status.HTTP_401_UNAUTHORIZED,
            )

        result = build_shipping_service().apply_tracking_update(request.data)
        return Response({"success": result.success, "message": result.message})


class ServiceabilityView(APIView):
    permission_classes = [AllowAny]
    throttle_scope = "serviceability"

    def post(self, request: Request) -> Response:
        try:
            query = ServiceabilityQueryDTO.model_validate(
                request.data if isinstance(request.data, dict) else {}
            )
        except ValidationError as exc:
            return Response(
                {"detail": first_error_message(exc)}, status=status.HTTP_400_BAD_REQUEST
            )

        try:
            result = build_shipping_service().check_serviceability(query)
        except CarrierError as exc:
            logger.warning("shipping.serviceability_unavailable", error=str(exc))
            return Response(
                {"detail": "Serviceability check is temporarily unavailable."},
                status=status.HTTP_503_SERVICE_UNAVAILABLE,
            )
        return Response({"success": True, **asdict(result)})


class CancelShipmentView(APIView):
    permission_classes = [IsAuthenticated]

    def post(self, request: Request, order_id: str) -> Response:
        identity = Identity.from_user(request.user)
        try:
            result = build_shipping_service().cancel_order(identity, order_id)
        except OrderNotFound:
            return Response({"detail": "Order not found."}, status=status.HTTP_404_NOT_FOUND)

        return Response(
            {"success": result.success, "message": result.message},
            status=status.HTTP_200_OK if result.success else status.HTTP_400_BAD_REQUEST,
        )

"""Authoritative coupon validation endpoint."""

from __future__ import annotations

import structlog
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from modules.coupons.rules import CouponRule
from modules.coupons.serializers import ValidateCouponSerializer

logger = structlog.get_logger(__name__)


class ValidateCouponView(APIView):
    """POST /api/v1/coupons/validate/

    Evaluates the rule server-side.  A blank code is a client error (400);
    an unknown code is a normal ``valid: false`` answer.
    """

    permission_classes = [AllowAny]
    throttle_scope = "coupon_validation"

    def post(self, request: Request) -> Response:
        serializer = ValidateCouponSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        code = serializer.validated_data["couponCode"]
        result = CouponRule.from_settings().evaluate(
            code, serializer.validated_data["subtotal"]
        )

        logger.info("coupon.validated", valid=result.valid, discount=str(result.discount))
        body = {
            "success": result.valid,
            "valid": result.valid,
            "discount": result.discount,
            "message": result.message,
        }
        if not code:
            return Response(body, status=status.HTTP_400_BAD_REQUEST)
        return Response(body)

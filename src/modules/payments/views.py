"""Payment API views.

Create-order and verify endpoints for signed-in customers and for guests.
Domain exceptions are translated into ``{"detail": ...}`` responses.
"""

from __future__ import annotations

from pydantic import ValidationError
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from modules.core.identity import Identity
from modules.orders.exceptions import (
    EmailNotVerified,
    InsufficientStock,
    NotAuthenticated,
    ProductNotFound,
    ProductUnavailable,
)
from modules.orders.views import checkout_error_response
from modules.payments.exceptions import (
    AmountMismatch,
    CheckoutEmailMismatch,
    GatewayAuthenticationError,
    GatewayError,
    PaymentError,
    PaymentForbidden,
    PaymentNotFound,
    PaymentReplay,
    PaymentValidationError,
    RecaptchaFailed,
    RecaptchaNotConfigured,
    SignatureMismatch,
)
from modules.payments.serializers import (
    CreateGatewayOrderSerializer,
    CreateGuestGatewayOrderSerializer,
    GuestVerifyPaymentSerializer,
    VerifyPaymentSerializer,
)
from modules.payments.services import PaymentService

_ORDER_ERRORS = (
    ValidationError,
    NotAuthenticated,
    EmailNotVerified,
    ProductNotFound,
    ProductUnavailable,
    InsufficientStock,
)

# Most specific first: isinstance() picks the first match.
_STATUS_BY_ERROR = [
    (PaymentValidationError, status.HTTP_400_BAD_REQUEST),
    (RecaptchaFailed, status.HTTP_403_FORBIDDEN),
    (RecaptchaNotConfigured, status.HTTP_412_PRECONDITION_FAILED),
    (CheckoutEmailMismatch, status.HTTP_403_FORBIDDEN),
    (SignatureMismatch, status.HTTP_403_FORBIDDEN),
    (PaymentForbidden, status.HTTP_403_FORBIDDEN),
    (PaymentNotFound, status.HTTP_404_NOT_FOUND),
    (PaymentReplay, status.HTTP_409_CONFLICT),
    (AmountMismatch, status.HTTP_412_PRECONDITION_FAILED),
    (GatewayAuthenticationError, status.HTTP_412_PRECONDITION_FAILED),
    (GatewayError, status.HTTP_502_BAD_GATEWAY),
    (PaymentError, status.HTTP_400_BAD_REQUEST),
]


def payment_error_response(exc: PaymentError) -> Response:
    for error_class, http_status in _STATUS_BY_ERROR:
        if isinstance(exc, error_class):
            return Response({"success": False, "detail": str(exc)}, status=http_status)
    raise exc


def _client_ip(request: Request) -> str:
    forwarded = request.META.get("HTTP_X_FORWARDED_FOR", "")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.META.get("REMOTE_ADDR", "unknown")


class _PaymentView(APIView):
    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = PaymentService()

    def _create(self, request: Request, identity, data, guest_email=None) -> Response:
        try:
            result = self._service.create_gateway_order(
                identity,
                data.get("recaptchaToken"),
                data["orderDetails"],
                guest_email=guest_email,
                remote_ip=_client_ip(request),
                host=request.META.get("HTTP_HOST", ""),
            )
        except PaymentError as exc:
            return payment_error_response(exc)
        except _ORDER_ERRORS as exc:
            return checkout_error_response(exc)
        return Response({"success": True, **result}, status=status.HTTP_201_CREATED)

    def _verify(self, identity, data, guest_email=None) -> Response:
        try:
            result = self._service.verify_payment(
                identity,
                data.get("razorpay_order_id"),
                data.get("razorpay_payment_id"),
                data.get("razorpay_signature"),
                guest_email=guest_email,
            )
        except PaymentError as exc:
            return payment_error_response(exc)
        return Response(result)


class CreateGatewayOrderView(_PaymentView):
    """POST /api/v1/payments/orders/"""

    permission_classes = [IsAuthenticated]
    throttle_scope = "order_creation"

    def post(self, request: Request) -> Response:
        serializer = CreateGatewayOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return self._create(
            request, Identity.from_user(request.user), serializer.validated_data
        )


class CreateGuestGatewayOrderView(_PaymentView):
    """POST /api/v1/payments/guest-orders/"""

    permission_classes = [AllowAny]
    throttle_scope = "guest_checkout"

    def post(self, request: Request) -> Response:
        serializer = CreateGuestGatewayOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        return self._create(request, None, data, guest_email=data.get("guestEmail"))


class VerifyPaymentView(_PaymentView):
    """POST /api/v1/payments/verify/"""

    permission_classes = [IsAuthenticated]
    throttle_scope = "payment_verification"

    def post(self, request: Request) -> Response:
        serializer = VerifyPaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return self._verify(Identity.from_user(request.user), serializer.validated_data)


class GuestVerifyPaymentView(_PaymentView):
    """POST /api/v1/payments/guest-verify/"""

    permission_classes = [AllowAny]
    throttle_scope = "payment_verification"

    def post(self, request: Request) -> Response:
        serializer = GuestVerifyPaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        return self._verify(None, data, guest_email=data.get("guestEmail"))

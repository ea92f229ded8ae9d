"""Payment URL configuration (mounted under ``/api/v1/payments/``)."""

from django.urls import path

from modules.payments.views import (
    CreateGatewayOrderView,
    CreateGuestGatewayOrderView,
    GuestVerifyPaymentView,
    VerifyPaymentView,
)

urlpatterns = [
    path("orders/", CreateGatewayOrderView.as_view(), name="payment_create_order"),
    path(
        "guest-orders/",
        CreateGuestGatewayOrderView.as_view(),
        name="payment_create_guest_order",
    ),
    path("verify/", VerifyPaymentView.as_view(), name="payment_verify"),
    path("guest-verify/", GuestVerifyPaymentView.as_view(), name="payment_guest_verify"),
]

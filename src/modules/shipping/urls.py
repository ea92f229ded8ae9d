"""Shipping URL configuration (mounted under ``/api/v1/shipping/``)."""

from django.urls import path

from modules.shipping.views import (
    CancelShipmentView,
    CarrierWebhookView,
    ServiceabilityView,
)

urlpatterns = [
    path("webhook/", CarrierWebhookView.as_view(), name="carrier_webhook"),
    path("serviceability/", ServiceabilityView.as_view(), name="serviceability"),
    path(
        "orders/<str:order_id>/cancel/",
        CancelShipmentView.as_view(),
        name="cancel_shipment",
    ),
]

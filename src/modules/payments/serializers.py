"""Payment DRF serializers (request shape only)."""

from __future__ import annotations

from rest_framework import serializers

from modules.orders.serializers import OrderDetailsSerializer


class CreateGatewayOrderSerializer(serializers.Serializer):
    recaptchaToken = serializers.CharField(required=False, allow_blank=True, default="")
    orderDetails = OrderDetailsSerializer()


class CreateGuestGatewayOrderSerializer(CreateGatewayOrderSerializer):
    guestEmail = serializers.CharField(required=False, allow_blank=True, default="")


class VerifyPaymentSerializer(serializers.Serializer):
    """Field names follow the gateway checkout callback payload.

    Presence is checked by the service so a missing field yields the
    payment-specific message.
    """

    razorpay_order_id = serializers.CharField(required=False, allow_blank=True, default="")
    razorpay_payment_id = serializers.CharField(required=False, allow_blank=True, default="")
    razorpay_signature = serializers.CharField(required=False, allow_blank=True, default="")


class GuestVerifyPaymentSerializer(VerifyPaymentSerializer):
    guestEmail = serializers.CharField(required=False, allow_blank=True, default="")

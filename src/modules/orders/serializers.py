"""Order DRF serializers for API input/output.

Input serializers only check the payload shape; sanitizing and the
business rules live in the Pydantic DTOs and the Service Layer.  Item
names and prices sent by the client are not even read.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from rest_framework import serializers

from modules.orders.constants import OrderStatus, PaymentMethod
from modules.orders.dtos import CreateOrderDTO, FulfillmentUpdateDTO
from modules.orders.models import Order, OrderItem, OrderTimelineEntry

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class OrderItemInputSerializer(serializers.Serializer):
    productId = serializers.CharField(max_length=120)
    qty = serializers.IntegerField(min_value=1)


class CustomerInputSerializer(serializers.Serializer):
    name = serializers.CharField(allow_blank=True)
    email = serializers.CharField(allow_blank=True)
    phone = serializers.CharField(allow_blank=True)
    address = serializers.CharField(allow_blank=True)
    city = serializers.CharField(allow_blank=True)
    state = serializers.CharField(allow_blank=True)
    pincode = serializers.CharField(allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class OrderDetailsSerializer(serializers.Serializer):
    """Cart + customer block shared by COD checkout and the payment flow."""

    items = OrderItemInputSerializer(many=True, allow_empty=False)
    customer = CustomerInputSerializer()
    couponCode = serializers.CharField(
        required=False, allow_blank=True, allow_null=True, default=None
    )
    discount = serializers.DecimalField(
        max_digits=12, decimal_places=2, required=False, allow_null=True, default=None
    )

    def to_dto(self, payment_method: str = PaymentMethod.COD) -> CreateOrderDTO:
        """Build the DTO; raises ``pydantic.ValidationError`` on bad input."""
        return order_details_to_dto(self.validated_data, payment_method)


class CreateOrderSerializer(OrderDetailsSerializer):
    paymentMethod = serializers.ChoiceField(
        choices=[PaymentMethod.COD], required=False, default=PaymentMethod.COD
    )


class StatusTransitionSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=OrderStatus.choices)
    note = serializers.CharField(required=False, allow_blank=True, max_length=500)


class FulfillmentUpdateSerializer(serializers.Serializer):
    tracking_number = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    shipping_carrier = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    estimated_delivery = serializers.DateField(required=False, allow_null=True)
    admin_notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    cancellation_reason = serializers.CharField(
        required=False, allow_blank=True, allow_null=True
    )
    shipment_id = serializers.CharField(required=False, allow_blank=True, allow_null=True)

    def to_dto(self) -> FulfillmentUpdateDTO:
        # Only keys present in the request reach model_fields_set.
        return FulfillmentUpdateDTO(**self.validated_data)


def order_details_to_dto(
    data: Dict[str, Any], payment_method: Optional[str] = None
) -> CreateOrderDTO:
    return CreateOrderDTO(
        items=[{"product_id": i["productId"], "qty": i["qty"]} for i in data["items"]],
        customer=dict(data["customer"]),
        coupon_code=data.get("couponCode"),
        client_discount=data.get("discount"),
        payment_method=payment_method or data.get("paymentMethod") or PaymentMethod.COD,
    )


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class OrderItemSerializer(serializers.ModelSerializer):
    line_total = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = OrderItem
        fields = [
            "product_id",
            "name",
            "qty",
            "price",
            "image_url",
            "line_total",
        ]
        read_only_fields = fields


class TimelineEntrySerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderTimelineEntry
        fields = ["status", "timestamp", "note", "updated_by"]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    """Read serializer for orders with nested items and timeline."""

    items = OrderItemSerializer(many=True, read_only=True)
    timeline = TimelineEntrySerializer(many=True, read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "user_id",
            "customer_name",
            "customer_email",
            "customer_phone",
            "address",
            "city",
            "state",
            "pincode",
            "customer_notes",
            "items",
            "subtotal",
            "shipping",
            "discount",
            "total",
            "coupon_code",
            "status",
            "timeline",
            "payment_method",
            "payment_status",
            "transaction_id",
            "paid_at",
            "tracking_number",
            "shipping_carrier",
            "estimated_delivery",
            "cancellation_reason",
            "admin_notes",
            "shipment_id",
            "pickup_status",
            "pickup_scheduled_date",
            "pickup_token",
            "pickup_error",
            "carrier_order_id",
            "awb_code",
            "tracking_url",
            "shipment_status",
            "last_location",
            "last_tracking_update",
            "delivery_date",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class OrderListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for order lists (no nested relations)."""

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "customer_name",
            "customer_email",
            "status",
            "payment_status",
            "total",
            "created_at",
        ]
        read_only_fields = fields

from rest_framework import serializers


class ValidateCouponSerializer(serializers.Serializer):
    couponCode = serializers.CharField(allow_blank=True, trim_whitespace=True, max_length=120)
    subtotal = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)

from django.urls import path

from modules.coupons.views import ValidateCouponView

urlpatterns = [
    path("validate/", ValidateCouponView.as_view(), name="coupon_validate"),
]

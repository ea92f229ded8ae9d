"""Payment flow constants and the user-facing messages it returns."""

from django.db import models


class GatewayOrderStatus(models.TextChoices):
    CREATED = "created", "Created"
    VERIFIED = "verified", "Verified"
    PAID = "paid", "Paid"
    SIGNATURE_FAILED = "signature_failed", "Signature failed"


RECAPTCHA_ACTION = "checkout"
RECAPTCHA_LOCAL_BYPASS_TOKEN = "local_dev_bypass_token_checkout"
RECEIPT_PREFIX = "sf"

MSG_RECAPTCHA_REQUIRED = "reCAPTCHA verification is required."
MSG_RECAPTCHA_FAILED = "Security verification failed. Please refresh and try again."
MSG_RECAPTCHA_NOT_CONFIGURED = "Security challenge is not configured. Please contact support."
MSG_EMAIL_MISMATCH_ACCOUNT = "Checkout email must match the authenticated account email."
MSG_EMAIL_MISMATCH_GUEST = "Checkout email must match the guest email."
MSG_GUEST_EMAIL_REQUIRED = "A valid guest email is required."
MSG_INVALID_AMOUNT = "Invalid amount. Must be a positive number (in paise)."
MSG_GATEWAY_AUTH_FAILED = "Payment gateway authentication failed. Please contact support."
MSG_MISSING_FIELDS = "Missing required payment verification fields."
MSG_SIGNATURE_FAILED = (
    "Payment verification failed. Please contact support if amount was deducted."
)
MSG_NOT_FOUND = "Payment order not found."
MSG_NOT_ALLOWED = "You are not allowed to verify this payment."
MSG_PAYMENT_REUSED = "This payment has already been used for another order."
MSG_AMOUNT_MISMATCH = "Order amount mismatch detected."
MSG_ALREADY_VERIFIED = "Payment already verified."
MSG_VERIFIED = "Payment verified successfully."

"""Payment domain exceptions.

Each carries the message returned to the client; the views map the class
to an HTTP status.
"""

from __future__ import annotations

from modules.payments import constants


class PaymentError(Exception):
    default_message = "Payment request failed."

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)


class PaymentValidationError(PaymentError):
    """Malformed or incomplete request (400)."""


class RecaptchaFailed(PaymentError):
    """Bot-mitigation challenge rejected (403)."""

    default_message = constants.MSG_RECAPTCHA_FAILED


class RecaptchaNotConfigured(PaymentError):
    default_message = constants.MSG_RECAPTCHA_NOT_CONFIGURED


class CheckoutEmailMismatch(PaymentError):
    """Checkout email differs from the caller's email (403)."""


class SignatureMismatch(PaymentError):
    default_message = constants.MSG_SIGNATURE_FAILED


class PaymentNotFound(PaymentError):
    default_message = constants.MSG_NOT_FOUND


class PaymentForbidden(PaymentError):
    default_message = constants.MSG_NOT_ALLOWED


class PaymentReplay(PaymentError):
    """The payment id is already bound to a different gateway order (409)."""

    default_message = constants.MSG_PAYMENT_REUSED


class AmountMismatch(PaymentError):
    default_message = constants.MSG_AMOUNT_MISMATCH


class GatewayError(PaymentError):
    """The payment gateway could not create the order."""

    default_message = "Payment gateway request failed."


class GatewayAuthenticationError(GatewayError):
    default_message = constants.MSG_GATEWAY_AUTH_FAILED

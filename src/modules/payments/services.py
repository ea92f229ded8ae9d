"""Payment service layer.

Two-step online checkout:

1. ``create_gateway_order`` checks the bot challenge, prices the cart
   server-side, opens a gateway order for that amount and stores a
   ``GatewayOrder`` with the canonical snapshot.
2. ``verify_payment`` checks the gateway signature, the caller, replays
   and the amount, records the verified ``payment_id`` and commits that
   *before* ``finalize`` turns the snapshot into a shop order.

``finalize`` is idempotent on the gateway order id, so a crash between
the two commits is repaired by running it again (see
``reconcile_verified_payments``).
"""

from __future__ import annotations

import time
from typing import Any, Dict, Optional

import structlog
from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone
from pydantic import ValidationError

from modules.core.identity import Identity
from modules.core.outbox import record_domain_events
from modules.coupons.validators import ICouponValidator
from modules.orders.constants import PaymentMethod, PaymentStatus
from modules.orders.dtos import (
    CreateOrderDTO,
    PaymentInfoDTO,
    first_error_message,
    normalize_email,
)
from modules.orders.exceptions import EmailNotVerified, NotAuthenticated
from modules.orders.models import Order
from modules.orders.pricing import CanonicalOrder, calculate_canonical_order
from modules.orders.serializers import order_details_to_dto
from modules.orders.services import OrderService, build_order_service
from modules.payments import constants
from modules.payments.constants import GatewayOrderStatus
from modules.payments.events import PaymentVerified
from modules.payments.exceptions import (
    AmountMismatch,
    CheckoutEmailMismatch,
    PaymentError,
    PaymentForbidden,
    PaymentNotFound,
    PaymentReplay,
    PaymentValidationError,
    SignatureMismatch,
)
from modules.payments.gateway import get_gateway
from modules.payments.gateway.port import PaymentGateway
from modules.payments.models import GatewayOrder
from modules.payments.recaptcha import RecaptchaVerifier
from modules.payments.signature import verify_signature
from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)

OUTBOX_TOPIC = "payments"


def _receipt(identity: Identity) -> str:
    millis = int(time.time() * 1000)
    if identity.is_guest:
        return f"{constants.RECEIPT_PREFIX}_guest_{millis}"[:40]
    return f"{constants.RECEIPT_PREFIX}_{millis}_{identity.uid[:6]}"[:40]


def _snapshot_to_dto(snapshot: Dict[str, Any]) -> CreateOrderDTO:
    return CreateOrderDTO(
        items=[
            {"product_id": item["productId"], "qty": item["qty"]}
            for item in snapshot["items"]
        ],
        customer=snapshot["customer"],
        coupon_code=snapshot.get("couponCode"),
        payment_method=PaymentMethod.ONLINE,
    )


class PaymentService:
    def __init__(
        self,
        order_service: Optional[OrderService] = None,
        gateway: Optional[PaymentGateway] = None,
        recaptcha: Optional[RecaptchaVerifier] = None,
        product_repository: Optional[IProductRepository] = None,
        coupon_validator: Optional[ICouponValidator] = None,
    ) -> None:
        self._orders = order_service or build_order_service()
        self._gateway = gateway
        self._recaptcha = recaptcha or RecaptchaVerifier()
        self._product_repo = product_repository
        self._coupon_validator = coupon_validator

    @property
    def gateway(self) -> PaymentGateway:
        return self._gateway or get_gateway()

    # ------------------------------------------------------------------
    # Step 1: gateway order
    # ------------------------------------------------------------------

    def create_gateway_order(
        self,
        identity: Optional[Identity],
        recaptcha_token: Optional[str],
        order_details: Dict[str, Any],
        guest_email: Optional[str] = None,
        remote_ip: Optional[str] = None,
        host: str = "",
    ) -> Dict[str, Any]:
        """Open a gateway order for the server-priced cart.

        ``identity`` is ``None`` for guest checkout, in which case
        ``guest_email`` is required.

        Raises:
            PaymentValidationError: missing token, bad guest email, bad cart.
            RecaptchaFailed: bot challenge rejected.
            CheckoutEmailMismatch: checkout email is not the caller's.
            ProductNotFound / ProductUnavailable / InsufficientStock.
            GatewayError: the gateway refused or was unreachable.
        """
        recaptcha = self._recaptcha.verify(recaptcha_token, remote_ip=remote_ip, host=host)

        if identity is None:
            email = normalize_email(guest_email)
            if not email or "@" not in email or "." not in email.split("@")[-1]:
                raise PaymentValidationError(constants.MSG_GUEST_EMAIL_REQUIRED)
            identity = Identity.guest(email)
            mismatch_message = constants.MSG_EMAIL_MISMATCH_GUEST
        else:
            if identity.is_guest:
                raise NotAuthenticated()
            if not identity.email_verified:
                raise EmailNotVerified()
            mismatch_message = constants.MSG_EMAIL_MISMATCH_ACCOUNT

        log = logger.bind(user_id=identity.uid, guest=identity.is_guest)

        try:
            dto = order_details_to_dto(order_details, PaymentMethod.ONLINE)
        except ValidationError as exc:
            raise PaymentValidationError(first_error_message(exc)) from exc

        if dto.customer.email != identity.email:
            log.warning("payment.checkout_email_mismatch")
            raise CheckoutEmailMismatch(mismatch_message)

        canonical = calculate_canonical_order(
            dto.items,
            dto.coupon_code,
            product_repository=self._product_repo,
            coupon_validator=self._coupon_validator,
        )
        amount = canonical.amount_in_paise
        if amount <= 0:
            raise PaymentValidationError(constants.MSG_INVALID_AMOUNT)

        currency = settings.PAYMENT_CURRENCY
        receipt = _receipt(identity)
        notes = {"recaptchaScore": f"{recaptcha.score:.2f}"}
        if identity.is_guest:
            notes.update({"mode": "guest", "guestEmail": identity.email})
        else:
            notes.update({"mode": "secure", "userId": identity.uid})

        result = self.gateway.create_order(amount, currency, receipt, notes)

        snapshot = canonical.to_snapshot()
        snapshot["customer"] = dto.customer.model_dump()
        GatewayOrder.objects.create(
            gateway_order_id=result.id,
            user_id="" if identity.is_guest else identity.uid,
            user_email="" if identity.is_guest else identity.email,
            guest_email=identity.email if identity.is_guest else "",
            amount=amount,
            currency=result.currency,
            receipt=receipt,
            calculated_order=snapshot,
            recaptcha_score=recaptcha.score,
        )
        log.info(
            "payment.gateway_order_created",
            gateway_order_id=result.id,
            amount=amount,
            currency=result.currency,
        )
        return {
            "gatewayOrderId": result.id,
            "amount": amount,
            "currency": result.currency,
            "publicKey": settings.RAZORPAY_KEY_ID,
        }

    # ------------------------------------------------------------------
    # Step 2: verification
    # ------------------------------------------------------------------

    def verify_payment(
        self,
        identity: Optional[Identity],
        gateway_order_id: Optional[str],
        payment_id: Optional[str],
        signature: Optional[str],
        guest_email: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Verify a completed payment and finalize its order.

        Raises:
            PaymentValidationError: a field is missing.
            SignatureMismatch: bad signature (the record is marked).
            PaymentNotFound / PaymentForbidden: unknown or foreign record.
            PaymentReplay: ``payment_id`` already used for another order.
            AmountMismatch: snapshot total differs from the charged amount.
        """
        gateway_order_id = (gateway_order_id or "").strip()
        payment_id = (payment_id or "").strip()
        signature = (signature or "").strip()
        if not gateway_order_id or not payment_id or not signature:
            raise PaymentValidationError(constants.MSG_MISSING_FIELDS)

        log = logger.bind(gateway_order_id=gateway_order_id, payment_id=payment_id)

        if not verify_signature(gateway_order_id, payment_id, signature):
            marked = (
                GatewayOrder.objects.filter(gateway_order_id=gateway_order_id)
                .exclude(status__in=[GatewayOrderStatus.VERIFIED, GatewayOrderStatus.PAID])
                .update(status=GatewayOrderStatus.SIGNATURE_FAILED, updated_at=timezone.now())
            )
            log.warning("payment.signature_failed", record_marked=bool(marked))
            raise SignatureMismatch()

        record = GatewayOrder.objects.filter(gateway_order_id=gateway_order_id).first()
        if record is None:
            raise PaymentNotFound()

        self._check_owner(record, identity, guest_email)

        if (
            GatewayOrder.objects.filter(payment_id=payment_id)
            .exclude(pk=record.pk)
            .exists()
        ):
            log.warning("payment.replay_rejected")
            raise PaymentReplay()

        if record.status == GatewayOrderStatus.PAID and record.order_id:
            order = record.order
            log.info("payment.already_verified", order_id=str(order.id))
            return self._response(constants.MSG_ALREADY_VERIFIED, payment_id, order)

        canonical = CanonicalOrder.from_snapshot(record.calculated_order)
        if canonical.amount_in_paise != record.amount:
            log.error(
                "payment.amount_mismatch",
                snapshot_amount=canonical.amount_in_paise,
                charged_amount=record.amount,
            )
            raise AmountMismatch()

        self._record_verified(record.pk, payment_id, signature)
        log.info("payment.verified")

        order = self.finalize(gateway_order_id)
        return self._response(constants.MSG_VERIFIED, payment_id, order)

    @transaction.atomic
    def _record_verified(self, pk: Any, payment_id: str, signature: str) -> None:
        """Commit the verified payment id ahead of order persistence."""
        record = GatewayOrder.objects.select_for_update().get(pk=pk)
        if record.status in (GatewayOrderStatus.VERIFIED, GatewayOrderStatus.PAID):
            if record.payment_id != payment_id:
                raise PaymentReplay()
            return

        record.payment_id = payment_id
        record.signature = signature
        record.status = GatewayOrderStatus.VERIFIED
        record.verified_at = timezone.now()
        record.add_domain_event(
            PaymentVerified(
                aggregate_id=record.id,
                gateway_order_id=record.gateway_order_id,
                payment_id=payment_id,
                amount=record.amount,
            )
        )
        try:
            with transaction.atomic():
                record.save()
        except IntegrityError as exc:
            raise PaymentReplay() from exc
        record_domain_events(record, OUTBOX_TOPIC)

    @transaction.atomic
    def finalize(self, gateway_order_id: str) -> Order:
        """Create the shop order for a verified payment; safe to repeat.

        Raises:
            PaymentNotFound: no such gateway order.
            PaymentError: the payment has not been verified.
        """
        record = (
            GatewayOrder.objects.select_for_update()
            .filter(gateway_order_id=gateway_order_id)
            .first()
        )
        if record is None:
            raise PaymentNotFound()
        if record.status == GatewayOrderStatus.PAID and record.order_id:
            return record.order
        if record.status != GatewayOrderStatus.VERIFIED:
            raise PaymentError("Payment has not been verified.")

        if record.is_guest:
            identity = Identity.guest(record.guest_email)
        else:
            # Email verification was enforced when the gateway order was opened.
            identity = Identity(
                uid=record.user_id, email=record.user_email, email_verified=True
            )

        snapshot = record.calculated_order
        order = self._orders.create_order(
            identity,
            _snapshot_to_dto(snapshot),
            payment=PaymentInfoDTO(
                method=PaymentMethod.ONLINE,
                status=PaymentStatus.COMPLETED,
                transaction_id=record.payment_id,
                paid_at=record.verified_at or timezone.now(),
            ),
            gateway_order_id=record.gateway_order_id,
            canonical=CanonicalOrder.from_snapshot(snapshot),
        )

        record.status = GatewayOrderStatus.PAID
        record.order = order
        record.paid_at = timezone.now()
        record.save(update_fields=["status", "order", "paid_at"])
        logger.info(
            "payment.finalized",
            gateway_order_id=gateway_order_id,
            order_id=str(order.id),
            order_number=order.order_number,
        )
        return order

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _check_owner(
        record: GatewayOrder, identity: Optional[Identity], guest_email: Optional[str]
    ) -> None:
        if record.is_guest:
            if normalize_email(guest_email) != record.guest_email:
                raise PaymentForbidden()
            return
        if (
            identity is None
            or identity.is_guest
            or identity.uid != record.user_id
            or identity.email != normalize_email(record.user_email)
        ):
            raise PaymentForbidden()

    @staticmethod
    def _response(message: str, payment_id: str, order: Order) -> Dict[str, Any]:
        return {
            "success": True,
            "message": message,
            "paymentId": payment_id,
            "orderId": str(order.id),
            "orderNumber": order.order_number,
        }

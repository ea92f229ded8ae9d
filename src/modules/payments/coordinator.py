"""Client-side coordination of one online checkout attempt.

::

    Idle -> OrderCreated -> AwaitingUserAction -> Verifying
         -> Succeeded | Failed | VerificationPending

The payment widget (the gateway's checkout modal) is abstracted as
``PaymentWidget``; it reports back through ``on_payment_success``,
``on_payment_failed`` and ``on_dismiss``.  The attempt settles exactly
once: later callbacks are ignored, so a payment is never verified twice.
No timeout is applied here; the widget owns the user interaction.
"""

from __future__ import annotations

import enum
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Protocol

import structlog

from modules.payments.client import (
    CheckoutApiClient,
    CheckoutApiError,
    CheckoutRejected,
    CheckoutTransportError,
)

logger = structlog.get_logger(__name__)

MSG_CANCELLED = "Payment cancelled by user"
MSG_PAYMENT_FAILED = "Payment failed. Please try again."
MSG_VERIFICATION_PENDING = (
    "Payment received. Verification is pending due to a temporary network issue."
)


class CheckoutState(str, enum.Enum):
    IDLE = "Idle"
    ORDER_CREATED = "OrderCreated"
    AWAITING_USER_ACTION = "AwaitingUserAction"
    VERIFYING = "Verifying"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    VERIFICATION_PENDING = "VerificationPending"


SETTLED_STATES = {
    CheckoutState.SUCCEEDED,
    CheckoutState.FAILED,
    CheckoutState.VERIFICATION_PENDING,
}


@dataclass(frozen=True)
class PaymentResult:
    """What the widget hands back after a successful payment."""

    gateway_order_id: str
    payment_id: str
    signature: str


@dataclass(frozen=True)
class CheckoutOutcome:
    state: CheckoutState
    message: str = ""
    order_id: Optional[str] = None
    order_number: Optional[str] = None
    transaction_id: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.state in (CheckoutState.SUCCEEDED, CheckoutState.VERIFICATION_PENDING)


class PaymentWidget(Protocol):
    def open(
        self,
        *,
        key: str,
        gateway_order_id: str,
        amount: int,
        currency: str,
        prefill: Dict[str, str],
    ) -> None: ...


class CheckoutCoordinator:
    def __init__(
        self,
        client: CheckoutApiClient,
        widget: PaymentWidget,
        id_token: Optional[str] = None,
        guest_email: Optional[str] = None,
        on_settled: Optional[Callable[[CheckoutOutcome], None]] = None,
    ) -> None:
        self._client = client
        self._widget = widget
        self._id_token = id_token
        self._guest_email = guest_email
        self._on_settled = on_settled
        self._lock = threading.Lock()
        self._state = CheckoutState.IDLE
        self._outcome: Optional[CheckoutOutcome] = None
        self._payment_in_flight = False
        self._gateway_order_id: Optional[str] = None

    @property
    def state(self) -> CheckoutState:
        return self._state

    @property
    def outcome(self) -> Optional[CheckoutOutcome]:
        return self._outcome

    @property
    def gateway_order_id(self) -> Optional[str]:
        return self._gateway_order_id

    def start(self, order_details: Dict[str, Any], recaptcha_token: str) -> None:
        """Create the gateway order and open the payment widget.

        A failure to create the order settles the attempt as ``Failed``.
        """
        if self._state is not CheckoutState.IDLE:
            raise RuntimeError(f"Checkout already started (state={self._state.value}).")

        try:
            created = self._client.create_gateway_order(
                order_details,
                recaptcha_token,
                id_token=self._id_token,
                guest_email=self._guest_email,
            )
        except CheckoutApiError as exc:
            self._settle(CheckoutOutcome(CheckoutState.FAILED, message=str(exc)))
            return

        self._gateway_order_id = created["gatewayOrderId"]
        self._state = CheckoutState.ORDER_CREATED
        logger.info("checkout.order_created", gateway_order_id=self._gateway_order_id)

        customer = order_details.get("customer") or {}
        self._widget.open(
            key=created["publicKey"],
            gateway_order_id=created["gatewayOrderId"],
            amount=created["amount"],
            currency=created["currency"],
            prefill={
                "name": customer.get("name", ""),
                "email": customer.get("email", ""),
                "contact": customer.get("phone", ""),
            },
        )
        if self._state is CheckoutState.ORDER_CREATED:
            self._state = CheckoutState.AWAITING_USER_ACTION

    def on_payment_success(self, result: PaymentResult) -> Optional[CheckoutOutcome]:
        with self._lock:
            if self._state in SETTLED_STATES or self._payment_in_flight:
                logger.info(
                    "checkout.duplicate_success_ignored",
                    gateway_order_id=result.gateway_order_id,
                )
                return self._outcome
            self._payment_in_flight = True
            self._state = CheckoutState.VERIFYING

        try:
            verification = self._client.verify_payment(
                result.gateway_order_id,
                result.payment_id,
                result.signature,
                id_token=self._id_token,
                guest_email=self._guest_email,
            )
        except CheckoutTransportError as exc:
            logger.warning(
                "checkout.verification_pending",
                gateway_order_id=result.gateway_order_id,
                error=str(exc),
            )
            return self._settle(
                CheckoutOutcome(
                    CheckoutState.VERIFICATION_PENDING,
                    message=MSG_VERIFICATION_PENDING,
                    order_id=result.gateway_order_id,
                    transaction_id=result.payment_id,
                )
            )
        except CheckoutRejected as exc:
            return self._settle(CheckoutOutcome(CheckoutState.FAILED, message=str(exc)))

        return self._settle(
            CheckoutOutcome(
                CheckoutState.SUCCEEDED,
                message=verification.get("message", ""),
                order_id=verification.get("orderId"),
                order_number=verification.get("orderNumber"),
                transaction_id=result.payment_id,
            )
        )

    def on_payment_failed(self, error: Optional[str] = None) -> Optional[CheckoutOutcome]:
        return self._settle(
            CheckoutOutcome(CheckoutState.FAILED, message=error or MSG_PAYMENT_FAILED)
        )

    def on_dismiss(self) -> Optional[CheckoutOutcome]:
        """Closing the widget cancels the attempt unless a payment is in flight."""
        if self._payment_in_flight:
            return self._outcome
        return self._settle(CheckoutOutcome(CheckoutState.FAILED, message=MSG_CANCELLED))

    def _settle(self, outcome: CheckoutOutcome) -> Optional[CheckoutOutcome]:
        with self._lock:
            if self._state in SETTLED_STATES:
                return self._outcome
            self._state = outcome.state
            self._outcome = outcome
        logger.info(
            "checkout.settled",
            state=outcome.state.value,
            gateway_order_id=self._gateway_order_id,
        )
        if self._on_settled:
            self._on_settled(outcome)
        return outcome

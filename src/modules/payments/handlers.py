"""Event handlers for Payments domain events."""

from __future__ import annotations

import structlog

from modules.payments.events import PaymentVerified
from shared.domain.bus import IEventHandler

logger = structlog.get_logger(__name__)


class PaymentVerifiedHandler(IEventHandler[PaymentVerified]):
    def handle(self, event: PaymentVerified) -> None:
        logger.info(
            "payment.verified_published",
            gateway_order_id=event.gateway_order_id,
            payment_id=event.payment_id,
            amount=event.amount,
        )


payment_verified_handler = PaymentVerifiedHandler()

"""Asynchronous tasks of the payments module."""

from datetime import timedelta

import structlog
from celery import shared_task
from django.utils import timezone

from modules.orders.exceptions import OrderNumberExhausted
from modules.payments.constants import GatewayOrderStatus
from modules.payments.exceptions import PaymentError
from modules.payments.models import GatewayOrder

logger = structlog.get_logger(__name__)

RECONCILE_GRACE_SECONDS = 60


@shared_task(name="payments.reconcile_verified_payments")
def reconcile_verified_payments(grace_seconds: int = RECONCILE_GRACE_SECONDS):
    """Finalize gateway orders left in ``verified`` by an interrupted request.

    Records younger than ``grace_seconds`` are skipped so an in-flight
    verification finishes on its own.
    """
    from modules.payments.services import PaymentService

    cutoff = timezone.now() - timedelta(seconds=grace_seconds)
    stuck = list(
        GatewayOrder.objects.filter(
            status=GatewayOrderStatus.VERIFIED, verified_at__lte=cutoff
        ).values_list("gateway_order_id", flat=True)
    )

    service = PaymentService()
    finalized = failed = 0
    for gateway_order_id in stuck:
        try:
            order = service.finalize(gateway_order_id)
        except (PaymentError, OrderNumberExhausted) as exc:
            failed += 1
            logger.warning(
                "payment.reconcile_failed",
                gateway_order_id=gateway_order_id,
                error=str(exc),
            )
            continue
        finalized += 1
        logger.info(
            "payment.reconciled",
            gateway_order_id=gateway_order_id,
            order_id=str(order.id),
        )
    return {"finalized": finalized, "failed": failed}

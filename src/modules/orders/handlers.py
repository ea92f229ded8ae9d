"""Event handlers for Orders domain events.

Invoked by the outbox publisher after the originating transaction has
committed.
"""

from __future__ import annotations

import structlog

from modules.orders.events import OrderCancelled, OrderCreated, OrderStatusChanged
from shared.domain.bus import IEventHandler

logger = structlog.get_logger(__name__)


class OrderCreatedHandler(IEventHandler[OrderCreated]):
    def handle(self, event: OrderCreated) -> None:
        logger.info(
            "order.created_published",
            order_id=str(event.aggregate_id),
            order_number=event.order_number,
            total=event.total,
            payment_method=event.payment_method,
        )


class OrderCancelledHandler(IEventHandler[OrderCancelled]):
    def handle(self, event: OrderCancelled) -> None:
        log = logger.bind(order_id=str(event.aggregate_id))
        if event.stock_restored:
            log.info("order.cancelled_published")
        else:
            log.warning("order.cancelled_published", stock_restored=False)


class OrderStatusChangedHandler(IEventHandler[OrderStatusChanged]):
    def handle(self, event: OrderStatusChanged) -> None:
        logger.info(
            "order.status_changed_published",
            order_id=str(event.aggregate_id),
            old_status=event.old_status,
            new_status=event.new_status,
        )


order_created_handler = OrderCreatedHandler()
order_cancelled_handler = OrderCancelledHandler()
order_status_changed_handler = OrderStatusChangedHandler()

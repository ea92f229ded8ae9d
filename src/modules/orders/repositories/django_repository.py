"""Django ORM implementation of the Order repository.

Satisfies ``IOrderRepository`` using Django's QuerySet API.  Writes that
touch several rows run in ``transaction.atomic()`` so the aggregate
(Order + items + timeline) is persisted as a unit.

Concurrency control on transitions uses ``select_for_update()``; the
timeline is only ever appended with ``INSERT``.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import QuerySet

from modules.core.outbox import record_domain_events
from modules.orders.models import Order, OrderItem, OrderTimelineEntry
from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)

OUTBOX_TOPIC = "orders"


def _with_relations(queryset: QuerySet) -> QuerySet:
    return queryset.prefetch_related("items", "timeline")


class OrderDjangoRepository(IOrderRepository):
    """Concrete Order repository backed by Django ORM."""

    # ------------------------------------------------------------------
    # Create (aggregate root + children)
    # ------------------------------------------------------------------

    @transaction.atomic
    def create(self, data: Dict[str, Any]) -> Order:
        data = dict(data)
        items = data.pop("items")
        timeline = data.pop("timeline")

        order = Order(**data)
        order.save()

        OrderItem.objects.bulk_create(
            [
                OrderItem(order=order, position=position, **item_data)
                for position, item_data in enumerate(items)
            ]
        )
        self.append_timeline(order.id, **timeline)

        logger.info("order.persisted", order_id=str(order.id), item_count=len(items))
        return order

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_by_id(self, id: str) -> Optional[Order]:
        """Order with items and timeline prefetched; ``None`` for unknown/invalid ids."""
        try:
            return _with_relations(Order.objects.filter(id=id)).first()
        except (ValueError, ValidationError):
            return None

    def get_for_update(self, id: str) -> Optional[Order]:
        try:
            return _with_relations(Order.objects.select_for_update().filter(id=id)).first()
        except (ValueError, ValidationError):
            return None

    def get_by_gateway_order_id(self, gateway_order_id: str) -> Optional[Order]:
        return _with_relations(
            Order.objects.filter(gateway_order_id=gateway_order_id)
        ).first()

    def find(self, **filters: Any) -> QuerySet[Order]:
        return _with_relations(Order.objects.filter(**filters)).order_by(
            "-created_at", "-id"
        )

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    @transaction.atomic
    def save(self, entity: Order) -> Order:
        """Persist an order and move its pending domain events to the outbox."""
        entity.save()
        event_count = record_domain_events(entity, OUTBOX_TOPIC)
        logger.info("order.saved", order_id=str(entity.id), event_count=event_count)
        return entity

    def update_fields(self, order: Order, fields: Dict[str, Any]) -> Order:
        for name, value in fields.items():
            setattr(order, name, value)
        order.save(update_fields=list(fields))
        return order

    def append_timeline(
        self,
        order_id: Any,
        status: str,
        note: str = "",
        updated_by: str = "",
    ) -> OrderTimelineEntry:
        entry = OrderTimelineEntry.objects.create(
            order_id=order_id,
            status=status,
            note=note or "",
            updated_by=updated_by or "",
        )
        logger.info(
            "order.timeline_appended",
            order_id=str(order_id),
            status=status,
        )
        return entry

    @transaction.atomic
    def delete(self, order: Order) -> None:
        order_id = str(order.id)
        order.delete()
        logger.info("order.hard_deleted", order_id=order_id)

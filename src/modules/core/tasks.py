"""Asynchronous tasks of the core module."""

import structlog
from celery import shared_task
from django.db import transaction

from modules.core.models import OutboxEvent
from shared.domain.events import DomainEvent
from shared.infrastructure.bus import event_bus

logger = structlog.get_logger(__name__)

OUTBOX_BATCH_SIZE = 100


@shared_task(name="core.debug_task")
def debug_task():
    """Diagnostic task confirming the Celery worker is operational."""
    logger.info("debug_task.executed", status="ok")
    return {"status": "ok", "message": "Celery is working"}


@shared_task(name="core.publish_outbox_events")
def publish_outbox_events(batch_size: int = OUTBOX_BATCH_SIZE):
    """Relay deliverable outbox rows to the in-process event bus.

    Rows are locked with ``skip_locked`` so concurrent workers never
    deliver the same event twice.
    """
    published = failed = 0
    with transaction.atomic():
        rows = list(
            OutboxEvent.objects.deliverable()
            .select_for_update(skip_locked=True)[:batch_size]
        )
        for row in rows:
            log = logger.bind(
                outbox_id=str(row.id),
                event_type=row.event_type,
                aggregate_id=row.aggregate_id,
            )
            try:
                event = DomainEvent.from_payload(row.event_type, row.payload)
                delivered = event_bus.publish(event)
            except Exception as exc:
                row.mark_as_failed(str(exc))
                failed += 1
                if row.retries_exhausted:
                    log.error("outbox.retries_exhausted", error=str(exc), retries=row.retry_count)
                else:
                    log.warning("outbox.publish_failed", error=str(exc))
                continue
            row.mark_as_published()
            published += 1
            log.info("outbox.published", handlers=delivered)
    return {"published": published, "failed": failed}

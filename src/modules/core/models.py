"""Shared model base and the transactional outbox.

``BaseModel`` gives every table a time-ordered UUIDv7 key, so rows sort by
creation without an extra index.  ``OutboxEvent`` rows are written in the
same transaction as the order or gateway-order change that raised them and
relayed later by ``core.publish_outbox_events``.
"""

from __future__ import annotations

import uuid6
from django.db import models
from django.utils import timezone

OUTBOX_MAX_RETRIES = 5


class BaseModel(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid6.uuid7, editable=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True

    def save(self, *args, **kwargs) -> None:
        # auto_now is skipped for partial saves unless the field is listed.
        update_fields = kwargs.get("update_fields")
        if update_fields is not None and "updated_at" not in update_fields:
            kwargs["update_fields"] = [*update_fields, "updated_at"]
        super().save(*args, **kwargs)


class EventStatus(models.TextChoices):
    PENDING = "PENDING", "Pending"
    PUBLISHED = "PUBLISHED", "Published"
    FAILED = "FAILED", "Failed"


class OutboxEventQuerySet(models.QuerySet):
    def deliverable(self) -> OutboxEventQuerySet:
        """Pending rows plus failed rows with retries left, oldest first."""
        return self.filter(
            models.Q(status=EventStatus.PENDING)
            | models.Q(status=EventStatus.FAILED, retry_count__lt=OUTBOX_MAX_RETRIES)
        ).order_by("created_at")


class OutboxEvent(BaseModel):
    """One domain event waiting for (or done with) in-process delivery.

    ``payload`` is the JSON form of the event dataclass; ``event_type`` is
    its class name and selects the class again on the way out.
    """

    event_type = models.CharField(max_length=100)
    payload = models.JSONField()
    aggregate_id = models.CharField(max_length=255)
    topic = models.CharField(max_length=100)
    status = models.CharField(
        max_length=20,
        choices=EventStatus.choices,
        default=EventStatus.PENDING,
    )
    processed_at = models.DateTimeField(null=True, blank=True, default=None)
    error_message = models.TextField(null=True, blank=True, default=None)  # noqa: DJ01
    retry_count = models.PositiveIntegerField(default=0)

    objects = OutboxEventQuerySet.as_manager()

    class Meta:
        db_table = "outbox_events"
        ordering = ["created_at"]
        indexes = [
            models.Index(fields=["aggregate_id"], name="outbox_aggregate_id_idx"),
            models.Index(fields=["status", "created_at"], name="outbox_status_created_idx"),
        ]

    @property
    def retries_exhausted(self) -> bool:
        return self.status == EventStatus.FAILED and self.retry_count >= OUTBOX_MAX_RETRIES

    def mark_as_published(self) -> None:
        self.status = EventStatus.PUBLISHED
        self.processed_at = timezone.now()
        self.error_message = None
        self.save(update_fields=["status", "processed_at", "error_message"])

    def mark_as_failed(self, error: str) -> None:
        self.status = EventStatus.FAILED
        self.error_message = error
        self.retry_count += 1
        self.save(update_fields=["status", "error_message", "retry_count"])

    def __str__(self) -> str:
        return f"{self.event_type} [{self.status}] ({self.aggregate_id})"

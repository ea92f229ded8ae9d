"""Writes an aggregate's pending domain events to the transactional outbox.

Called by repositories inside the same transaction that persists the
aggregate, so an event exists if and only if the change it describes
was committed.
"""

from __future__ import annotations

import json
from dataclasses import asdict
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict
from uuid import UUID

from modules.core.models import OutboxEvent


def record_domain_events(entity: Any, topic: str) -> int:
    """Persist and clear ``entity.domain_events``; returns how many were written."""
    events = entity.domain_events if hasattr(entity, "domain_events") else []
    for event in events:
        OutboxEvent.objects.create(
            event_type=event.event_name,
            aggregate_id=str(event.aggregate_id),
            payload=serialize_event_payload(event),
            topic=topic,
        )
    if hasattr(entity, "clear_domain_events"):
        entity.clear_domain_events()
    return len(events)


def serialize_event_payload(event: Any) -> Dict[str, Any]:
    data = asdict(event)
    normalized = _normalize_for_json(data)
    return json.loads(json.dumps(normalized))


def _normalize_for_json(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (list, tuple)):
        return [_normalize_for_json(item) for item in value]
    if isinstance(value, dict):
        return {key: _normalize_for_json(val) for key, val in value.items()}
    return value

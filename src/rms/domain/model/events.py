"""Domain events handed to the external notification dispatcher.

Events are collected on the unit of work during a transaction and
published only after it commits.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

STATUS_CHANGED = "status_changed"
APPROVAL_REQUIRED = "approval_required"
PAYMENT_DUE = "payment_due"
PAYMENT_RECEIVED = "payment_received"


@dataclass(frozen=True)
class DomainEvent:
    name: str
    entity: str
    entity_id: int | None
    payload: dict[str, Any] = field(default_factory=dict)
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


def status_changed(entity: str, entity_id: int | None, old: str | None, new: str, **extra: Any) -> DomainEvent:
    return DomainEvent(
        name=STATUS_CHANGED,
        entity=entity,
        entity_id=entity_id,
        payload={"from": old, "to": new, **extra},
    )

"""Event publisher that hands events to the log stream.

The push/chat dispatcher tails these ``domain_event`` records.
"""

from __future__ import annotations

import structlog

from rms.application.ports import EventPublisher
from rms.domain.model.events import DomainEvent

log = structlog.get_logger("rms.events")


class LoggingEventPublisher(EventPublisher):

    def publish(self, event: DomainEvent) -> None:
        log.info(
            "domain_event",
            name=event.name,
            entity=event.entity,
            entity_id=event.entity_id,
            occurred_at=event.occurred_at.isoformat(),
            **event.payload,
        )

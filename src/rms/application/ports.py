"""Outbound collaborators of the application layer."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import datetime, timezone

from rms.domain.model.events import DomainEvent

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class EventPublisher(ABC):
    """Hands committed domain events to the notification dispatcher."""

    @abstractmethod
    def publish(self, event: DomainEvent) -> None:
        """Deliver one event. Must not raise for delivery problems."""

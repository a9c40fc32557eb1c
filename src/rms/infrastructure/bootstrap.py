"""Composition root: wires concrete implementations to domain interfaces.

This is the only place in the codebase that knows about *all* layers.
Every other module depends only on abstractions.
"""

from __future__ import annotations

from functools import lru_cache

from rms.application.runner import TransactionRunner
from rms.domain.repository.shift_roster import ShiftRoster
from rms.domain.service.appointment_scheduling import SchedulingPolicy
from rms.infrastructure.logging import configure_logging
from rms.infrastructure.notifications import LoggingEventPublisher
from rms.infrastructure.persistence.json_document import JsonDocumentStore
from rms.infrastructure.persistence.json_shift_roster import JsonShiftRoster
from rms.infrastructure.persistence.json_unit_of_work import JsonUnitOfWork
from rms.infrastructure.settings import Settings, get_settings


def init_logging(settings: Settings | None = None) -> None:
    settings = settings or get_settings()
    configure_logging(settings.log_level, settings.log_json)


@lru_cache
def document_store() -> JsonDocumentStore:
    return JsonDocumentStore(get_settings().store_path)


@lru_cache
def runner() -> TransactionRunner:
    # One runner per process so every handler shares the same lock registry.
    store = document_store()
    return TransactionRunner(
        uow_factory=lambda: JsonUnitOfWork(store),
        publisher=LoggingEventPublisher(),
        max_retries=get_settings().max_transaction_retries,
    )


def scheduling_policy() -> SchedulingPolicy:
    settings = get_settings()
    return SchedulingPolicy(
        min_lead_minutes=settings.min_lead_time_minutes,
        slot_minutes=settings.slot_granularity_minutes,
        default_visit_minutes=settings.default_visit_minutes,
    )


def shift_roster() -> ShiftRoster:
    return JsonShiftRoster(get_settings().roster_path)

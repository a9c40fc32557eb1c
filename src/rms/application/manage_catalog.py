"""Application services: maintaining reference data.

Technicians, accessories, issue types, maintenance schedules and the
operating budget are owned by managers and administrators.
"""

from __future__ import annotations

from datetime import date

import structlog

from rms.application.runner import TransactionRunner
from rms.domain.exceptions import UnauthorizedActorError
from rms.domain.model.catalog import DEFAULT_VISIT_MINUTES, Issue, MaintenanceSchedule, Technician
from rms.domain.model.stock import Accessory
from rms.domain.model.value_objects import Actor, Money, Role
from rms.domain.repository.unit_of_work import UnitOfWork

log = structlog.get_logger(__name__)


def _require_manager(actor: Actor) -> None:
    if not actor.has_role(Role.MANAGER, Role.ADMIN):
        raise UnauthorizedActorError(f"{actor} cannot change reference data")


class AddTechnicianHandler:

    def __init__(self, runner: TransactionRunner) -> None:
        self._runner = runner

    def handle(self, actor: Actor, technician_id: int, name: str, technique_ids: list[int]) -> None:
        """Register a technician (or replace their skill grants)."""
        _require_manager(actor)

        def work(uow: UnitOfWork) -> None:
            uow.catalog.save_technician(
                Technician(id=technician_id, name=name, technique_ids=frozenset(technique_ids))
            )

        self._runner.run(work, [("technician", technician_id)])
        log.info("catalog.technician_saved", technician_id=technician_id, techniques=sorted(technique_ids))


class AddAccessoryHandler:

    def __init__(self, runner: TransactionRunner) -> None:
        self._runner = runner

    def handle(self, actor: Actor, name: str, price: Money, description: str = "") -> int:
        _require_manager(actor)

        def work(uow: UnitOfWork) -> int:
            accessory = Accessory(id=None, name=name, price=price, description=description)
            uow.stock.save_accessory(accessory)
            return accessory.id

        accessory_id = self._runner.run(work)
        log.info("catalog.accessory_added", accessory_id=accessory_id, name=name)
        return accessory_id


class AddIssueHandler:

    def __init__(self, runner: TransactionRunner) -> None:
        self._runner = runner

    def handle(
        self,
        actor: Actor,
        name: str,
        technique_id: int,
        required_technicians: int = 1,
        estimated_minutes: int = DEFAULT_VISIT_MINUTES,
        is_emergency: bool = False,
    ) -> int:
        _require_manager(actor)

        def work(uow: UnitOfWork) -> int:
            issue = Issue(
                id=None,
                name=name,
                technique_id=technique_id,
                required_technicians=required_technicians,
                estimated_minutes=estimated_minutes,
                is_emergency=is_emergency,
            )
            uow.catalog.save_issue(issue)
            return issue.id

        issue_id = self._runner.run(work)
        log.info("catalog.issue_added", issue_id=issue_id, name=name)
        return issue_id


class AddScheduleHandler:

    def __init__(self, runner: TransactionRunner) -> None:
        self._runner = runner

    def handle(
        self,
        actor: Actor,
        common_area_object_id: int,
        description: str,
        technique_id: int,
        interval_days: int,
        next_due: date,
        required_technicians: int = 1,
        estimated_minutes: int = DEFAULT_VISIT_MINUTES,
    ) -> int:
        _require_manager(actor)

        def work(uow: UnitOfWork) -> int:
            schedule = MaintenanceSchedule(
                id=None,
                common_area_object_id=common_area_object_id,
                description=description,
                technique_id=technique_id,
                interval_days=interval_days,
                next_due=next_due,
                manager_id=actor.user_id,
                required_technicians=required_technicians,
                estimated_minutes=estimated_minutes,
            )
            uow.catalog.save_schedule(schedule)
            return schedule.id

        schedule_id = self._runner.run(work)
        log.info("catalog.schedule_added", schedule_id=schedule_id, next_due=next_due.isoformat())
        return schedule_id


class SetBudgetHandler:

    def __init__(self, runner: TransactionRunner) -> None:
        self._runner = runner

    def handle(self, actor: Actor, amount: Money) -> None:
        _require_manager(actor)

        def work(uow: UnitOfWork) -> None:
            budget = uow.payments.get_budget()
            budget.balance = amount.amount
            budget.currency = amount.currency
            uow.payments.save_budget(budget)

        self._runner.run(work, [("budget", 0)])
        log.info("budget.set", amount=str(amount))

"""Application services: manual stock-in.

A stock-in starts as a PENDING import. Approval books its cost as a
settled expense against the operating budget; rejection leaves stock
and budget untouched.
"""

from __future__ import annotations

import structlog

from rms.application.ports import Clock, utc_now
from rms.application.runner import TransactionRunner
from rms.domain.exceptions import EntityNotFoundError, UnauthorizedActorError
from rms.domain.model import events
from rms.domain.model.stock import AccessoryStockTransaction
from rms.domain.model.value_objects import Actor, Money, Quantity, Role
from rms.domain.repository.unit_of_work import UnitOfWork
from rms.domain.service.settlement import SettlementService

log = structlog.get_logger(__name__)


class RequestStockInHandler:

    def __init__(self, runner: TransactionRunner, clock: Clock = utc_now) -> None:
        self._runner = runner
        self._clock = clock

    def handle(
        self,
        accessory_id: int,
        quantity: int,
        actor: Actor,
        unit_price: Money | None = None,
        note: str = "",
        receipt_ref: str | None = None,
    ) -> int:
        if not actor.has_role(Role.TECHNICIAN_LEAD, Role.MANAGER, Role.ADMIN):
            raise UnauthorizedActorError(f"{actor} cannot request stock-in")

        def work(uow: UnitOfWork) -> int:
            accessory = uow.stock.get_accessory(accessory_id)
            if accessory is None:
                raise EntityNotFoundError(f"Accessory #{accessory_id} not found")
            movement = AccessoryStockTransaction.request_import(
                accessory.id, Quantity(quantity), unit_price or accessory.price,
                actor, self._clock(), note, receipt_ref,
            )
            uow.stock.save_transaction(movement)
            uow.record(events.DomainEvent(
                name=events.APPROVAL_REQUIRED,
                entity="StockTransaction",
                entity_id=movement.id,
                payload={"role": Role.MANAGER.value, "accessory_id": accessory.id},
            ))
            return movement.id

        movement_id = self._runner.run(work, [("accessory", accessory_id)])
        log.info("stock.import_requested", movement_id=movement_id, accessory_id=accessory_id, quantity=quantity)
        return movement_id


class ReviewStockInHandler:

    def __init__(self, runner: TransactionRunner, clock: Clock = utc_now) -> None:
        self._runner = runner
        self._clock = clock

    def handle(self, movement_id: int, approve: bool, actor: Actor, reason: str = "") -> str:

        def target(uow: UnitOfWork) -> int:
            return self._get(uow, movement_id).accessory_id

        accessory_id = self._runner.read(target)

        def work(uow: UnitOfWork) -> str:
            movement = self._get(uow, movement_id)
            old = movement.status
            if approve:
                movement.approve(actor)
                accessory = uow.stock.get_accessory(movement.accessory_id)
                name = accessory.name if accessory is not None else f"#{movement.accessory_id}"
                expense = SettlementService(uow).charge_budget(
                    movement.total, actor, self._clock(), f"Stock-in of {movement.quantity} x {name}",
                    receipt_ref=movement.receipt_ref,
                )
                movement.transaction_id = expense.id
            else:
                movement.reject(actor, reason)
            uow.stock.save_transaction(movement)
            uow.record(events.status_changed(
                "StockTransaction", movement.id, old.value, movement.status.value,
                accessory_id=movement.accessory_id,
            ))
            return movement.status.value

        status = self._runner.run(work, [("accessory", accessory_id), ("budget", 0)])
        log.info("stock.import_reviewed", movement_id=movement_id, status=status)
        return status

    @staticmethod
    def _get(uow: UnitOfWork, movement_id: int) -> AccessoryStockTransaction:
        movement = uow.stock.get_transaction(movement_id)
        if movement is None:
            raise EntityNotFoundError(f"Stock transaction #{movement_id} not found")
        return movement

"""Application service: Show Stock use case."""

from __future__ import annotations

from rms.application.dto import StockLevelDTO
from rms.application.runner import TransactionRunner
from rms.domain.model.stock import StockDirection, StockTransactionStatus, stock_level
from rms.domain.repository.unit_of_work import UnitOfWork


class ShowStockHandler:

    def __init__(self, runner: TransactionRunner) -> None:
        self._runner = runner

    def handle(self) -> list[StockLevelDTO]:

        def query(uow: UnitOfWork) -> list[StockLevelDTO]:
            levels: list[StockLevelDTO] = []
            for accessory in sorted(uow.stock.list_accessories(), key=lambda a: a.id):
                movements = uow.stock.list_for_accessory(accessory.id)
                pending = sum(
                    m.quantity.value for m in movements
                    if m.status is StockTransactionStatus.PENDING
                    and m.direction is StockDirection.IMPORT
                )
                levels.append(StockLevelDTO(
                    accessory_id=accessory.id,
                    name=accessory.name,
                    price=str(accessory.price),
                    on_hand=stock_level(movements),
                    pending_imports=pending,
                ))
            return levels

        return self._runner.read(query)

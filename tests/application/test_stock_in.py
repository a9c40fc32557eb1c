"""Integration tests for manual stock-in."""

from decimal import Decimal

import pytest

from rms.application.show_stock import ShowStockHandler
from rms.application.stock_in import RequestStockInHandler, ReviewStockInHandler
from rms.domain.exceptions import EntityNotFoundError, InvalidTransitionError, UnauthorizedActorError
from rms.domain.model.payment import TransactionDirection
from tests.builders import LEAD, MANAGER, TECH_A, World


def _setup():
    w = World(budget="1000")
    accessory_id = w.add_accessory("Ball valve", "25")
    movement_id = RequestStockInHandler(w.runner, w.clock).handle(accessory_id, 8, LEAD, note="Monthly order")
    return w, accessory_id, movement_id


class TestStockIn:

    def test_pending_import_is_not_stock(self):
        w, accessory_id, _ = _setup()
        [level] = ShowStockHandler(w.runner).handle()
        assert level.accessory_id == accessory_id
        assert level.on_hand == 0
        assert level.pending_imports == 8
        assert level.price == "25.00 VND"

    def test_approval_adds_stock_and_charges_budget(self):
        w, _, movement_id = _setup()

        status = ReviewStockInHandler(w.runner, w.clock).handle(movement_id, True, MANAGER)

        assert status == "APPROVED"
        [level] = ShowStockHandler(w.runner).handle()
        assert (level.on_hand, level.pending_imports) == (8, 0)
        assert w.budget().balance == Decimal("800")
        movement = w.runner.read(lambda uow: uow.stock.get_transaction(movement_id))
        expense = w.transaction(movement.transaction_id)
        assert expense.direction == TransactionDirection.EXPENSE
        assert str(expense.amount) == "200.00 VND"

    def test_rejection_leaves_budget(self):
        w, _, movement_id = _setup()

        status = ReviewStockInHandler(w.runner, w.clock).handle(movement_id, False, MANAGER, "Duplicate order")

        assert status == "REJECTED"
        assert ShowStockHandler(w.runner).handle()[0].on_hand == 0
        assert w.budget().balance == Decimal("1000")

    def test_overdraft_is_allowed(self):
        w, accessory_id, _ = _setup()
        movement_id = RequestStockInHandler(w.runner, w.clock).handle(accessory_id, 50, MANAGER)
        ReviewStockInHandler(w.runner, w.clock).handle(movement_id, True, MANAGER)
        budget = w.budget()
        assert budget.balance == Decimal("-250")
        assert budget.is_overdrawn

    def test_review_is_final(self):
        w, _, movement_id = _setup()
        review = ReviewStockInHandler(w.runner, w.clock)
        review.handle(movement_id, True, MANAGER)
        with pytest.raises(InvalidTransitionError):
            review.handle(movement_id, False, MANAGER, "Too late")
        assert w.budget().balance == Decimal("800")

    def test_roles(self):
        w, accessory_id, movement_id = _setup()
        with pytest.raises(UnauthorizedActorError):
            RequestStockInHandler(w.runner, w.clock).handle(accessory_id, 1, TECH_A)
        with pytest.raises(UnauthorizedActorError):
            ReviewStockInHandler(w.runner, w.clock).handle(movement_id, True, LEAD)

    def test_unknown_accessory(self):
        w, _, _ = _setup()
        with pytest.raises(EntityNotFoundError):
            RequestStockInHandler(w.runner, w.clock).handle(99, 1, LEAD)

"""Payment ledger rows and the operating budget."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum

from rms.domain.exceptions import ValidationError
from rms.domain.model.value_objects import DEFAULT_CURRENCY, Money
from rms.domain.model.workflow import ensure_transition


class TransactionStatus(Enum):
    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


TRANSACTION_TRANSITIONS: dict[TransactionStatus, frozenset[TransactionStatus]] = {
    TransactionStatus.PENDING: frozenset({
        TransactionStatus.SUCCESS,
        TransactionStatus.FAILED,
        TransactionStatus.CANCELLED,
    }),
    TransactionStatus.SUCCESS: frozenset(),
    TransactionStatus.FAILED: frozenset(),
    TransactionStatus.CANCELLED: frozenset(),
}


class TransactionDirection(Enum):
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


class TransactionType(Enum):
    PAYMENT = "PAYMENT"
    CASH = "CASH"


class PaymentProvider(Enum):
    GATEWAY = "GATEWAY"
    BUDGET = "BUDGET"


@dataclass
class Transaction:
    """One money movement.

    ``paid_at`` is set exactly when the status is SUCCESS. ``receipt_ref``
    points at the scanned receipt in an external media store.
    """

    id: int | None
    user_id: int
    invoice_id: int | None
    type: TransactionType
    provider: PaymentProvider
    direction: TransactionDirection
    amount: Money
    created_at: datetime
    status: TransactionStatus = TransactionStatus.PENDING
    paid_at: datetime | None = None
    external_reference: str | None = None
    receipt_ref: str | None = None
    description: str = ""

    def __post_init__(self) -> None:
        if (self.paid_at is not None) != (self.status is TransactionStatus.SUCCESS):
            raise ValidationError("paid_at must be set exactly when a transaction succeeded")

    @staticmethod
    def income_due(user_id: int, invoice_id: int, amount: Money, now: datetime) -> Transaction:
        return Transaction(
            id=None,
            user_id=user_id,
            invoice_id=invoice_id,
            type=TransactionType.PAYMENT,
            provider=PaymentProvider.GATEWAY,
            direction=TransactionDirection.INCOME,
            amount=amount,
            created_at=now,
            description=f"Payment for invoice #{invoice_id}",
        )

    @staticmethod
    def budget_expense(
        user_id: int,
        amount: Money,
        now: datetime,
        description: str,
        invoice_id: int | None = None,
        receipt_ref: str | None = None,
    ) -> Transaction:
        """Expense settled immediately against the operating budget."""
        return Transaction(
            id=None,
            user_id=user_id,
            invoice_id=invoice_id,
            type=TransactionType.CASH,
            provider=PaymentProvider.BUDGET,
            direction=TransactionDirection.EXPENSE,
            amount=amount,
            created_at=now,
            status=TransactionStatus.SUCCESS,
            paid_at=now,
            receipt_ref=receipt_ref,
            description=description,
        )

    @property
    def is_pending(self) -> bool:
        return self.status is TransactionStatus.PENDING

    def succeed(self, external_reference: str, paid_at: datetime, receipt_ref: str | None = None) -> None:
        if not external_reference:
            raise ValidationError("A payment confirmation needs an external reference")
        self._move(TransactionStatus.SUCCESS)
        self.external_reference = external_reference
        self.paid_at = paid_at
        self.receipt_ref = receipt_ref or None

    def fail(self, reason: str) -> None:
        self._move(TransactionStatus.FAILED)
        if reason:
            self.description = f"{self.description}\n[Failed] {reason}".strip()

    def cancel(self) -> None:
        self._move(TransactionStatus.CANCELLED)

    def _move(self, target: TransactionStatus) -> None:
        ensure_transition(TRANSACTION_TRANSITIONS, "Transaction", self.id, self.status, target)
        self.status = target


@dataclass
class Budget:
    """Operating budget debited by internal expenses.

    The balance may go below zero; an overdraft is reported, not refused.
    """

    balance: Decimal
    currency: str = DEFAULT_CURRENCY

    def debit(self, amount: Money) -> None:
        if amount.currency != self.currency:
            raise ValidationError(f"Cannot debit {amount.currency} from a {self.currency} budget")
        self.balance -= amount.amount

    @property
    def is_overdrawn(self) -> bool:
        return self.balance < Decimal("0")

"""Value objects shared by requests, invoices, stock and payments.

All of them are frozen and validate on construction, so an invalid
amount, quantity or window never reaches an aggregate.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal, InvalidOperation
from enum import Enum

from rms.domain.exceptions import ValidationError

DEFAULT_CURRENCY = "VND"


@dataclass(frozen=True)
class Money:
    """Non-negative amount in a single currency.

    Decimal keeps an invoice's stored total exactly comparable with the
    sum of its lines.
    """

    amount: Decimal
    currency: str = DEFAULT_CURRENCY

    def __post_init__(self) -> None:
        if not isinstance(self.amount, Decimal):
            raise ValidationError(
                f"Money amount must be a Decimal, got {type(self.amount).__name__}"
            )
        if self.amount < 0:
            raise ValidationError(f"Money amount cannot be negative, got {self.amount}")

    @classmethod
    def of(cls, amount: str | int | Decimal, currency: str = DEFAULT_CURRENCY) -> Money:
        """Parse user or document input; floats go through ``str`` first."""
        try:
            return cls(Decimal(str(amount)), currency)
        except (InvalidOperation, ValueError) as exc:
            raise ValidationError(f"Invalid money amount: {amount!r}") from exc

    @classmethod
    def zero(cls, currency: str = DEFAULT_CURRENCY) -> Money:
        return cls(Decimal("0"), currency)

    @classmethod
    def sum(cls, amounts: Iterable[Money], currency: str = DEFAULT_CURRENCY) -> Money:
        total = cls.zero(currency)
        for amount in amounts:
            total = total + amount
        return total

    def __add__(self, other: Money) -> Money:
        return Money(self.amount + self._same_currency(other), self.currency)

    def __sub__(self, other: Money) -> Money:
        remaining = self.amount - self._same_currency(other)
        if remaining < 0:
            raise ValidationError(f"Cannot take {other} from {self}")
        return Money(remaining, self.currency)

    def __mul__(self, factor: int) -> Money:
        if not isinstance(factor, int) or isinstance(factor, bool):
            raise TypeError(f"Money can only be scaled by an int, got {type(factor).__name__}")
        return Money(self.amount * factor, self.currency)

    def __str__(self) -> str:
        return f"{self.amount:,.2f} {self.currency}"

    def _same_currency(self, other: Money) -> Decimal:
        if other.currency != self.currency:
            raise ValidationError(f"Cannot combine {self.currency} with {other.currency}")
        return other.amount


@dataclass(frozen=True)
class Quantity:
    """A positive integer quantity."""

    value: int

    def __post_init__(self) -> None:
        if not isinstance(self.value, int) or isinstance(self.value, bool):
            raise ValidationError(
                f"Quantity must be an integer, got {type(self.value).__name__}"
            )
        if self.value <= 0:
            raise ValidationError("Quantity must be positive")

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class TimeWindow:
    """Half-open interval ``[start, end)`` used for visits and shifts."""

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.end <= self.start:
            raise ValidationError(
                f"Time window must end after it starts ({self.start} .. {self.end})"
            )

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def overlaps(self, other: TimeWindow) -> bool:
        return self.start < other.end and other.start < self.end

    def contains(self, other: TimeWindow) -> bool:
        return self.start <= other.start and other.end <= self.end

    @staticmethod
    def starting_at(start: datetime, minutes: int) -> TimeWindow:
        return TimeWindow(start, start + timedelta(minutes=minutes))


class Role(Enum):
    RESIDENT = "RESIDENT"
    TECHNICIAN = "TECHNICIAN"
    TECHNICIAN_LEAD = "TECHNICIAN_LEAD"
    MANAGER = "MANAGER"
    ADMIN = "ADMIN"
    SYSTEM = "SYSTEM"


@dataclass(frozen=True)
class Actor:
    """Who is performing an operation, as asserted by the identity service.

    Role claims are trusted; role *ordering* is enforced by the domain.
    """

    user_id: int
    role: Role

    def has_role(self, *roles: Role) -> bool:
        return self.role in roles

    def __str__(self) -> str:
        return f"{self.role.value}#{self.user_id}"

    @staticmethod
    def system() -> Actor:
        return Actor(user_id=0, role=Role.SYSTEM)

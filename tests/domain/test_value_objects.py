"""Unit tests for domain value objects."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from rms.domain.exceptions import ValidationError
from rms.domain.model.value_objects import Actor, Money, Quantity, Role, TimeWindow

T0 = datetime(2025, 3, 3, 9, 0, tzinfo=timezone.utc)


# ── Money ────────────────────────────────────────────────────────────────────


class TestMoney:

    def test_creation(self):
        m = Money(Decimal("10.50"))
        assert m.amount == Decimal("10.50")
        assert m.currency == "VND"

    def test_of_factory_from_string(self):
        assert Money.of("25.99").amount == Decimal("25.99")

    def test_of_factory_rejects_garbage(self):
        with pytest.raises(ValidationError, match="Invalid money amount"):
            Money.of("ten")

    def test_float_amount_rejected(self):
        with pytest.raises(ValidationError, match="must be a Decimal"):
            Money(10.5)

    def test_negative_amount_rejected(self):
        with pytest.raises(ValidationError, match="cannot be negative"):
            Money(Decimal("-1"))

    def test_addition(self):
        assert Money.of("10") + Money.of("5.50") == Money.of("15.50")

    def test_subtraction_going_negative_rejected(self):
        with pytest.raises(ValidationError, match="Cannot take"):
            Money.of("5") - Money.of("10")

    def test_multiplication_by_int(self):
        assert Money.of("7.50") * 3 == Money.of("22.50")

    def test_multiplication_by_float_rejected(self):
        with pytest.raises(TypeError):
            Money.of("7.50") * 1.5

    def test_currency_mismatch_rejected(self):
        with pytest.raises(ValidationError, match="Cannot combine"):
            Money(Decimal("10"), "VND") + Money(Decimal("5"), "USD")

    def test_str_formatting(self):
        assert str(Money.of("1500")) == "1,500.00 VND"

    def test_sum_is_exact(self):
        assert Money.sum([Money.of("0.1")] * 10) == Money.of("1.0")

    def test_sum_of_nothing_is_zero(self):
        assert Money.sum([]) == Money.zero()


# ── Quantity ─────────────────────────────────────────────────────────────────


class TestQuantity:

    def test_valid_quantity(self):
        assert Quantity(5).value == 5

    def test_zero_rejected(self):
        with pytest.raises(ValidationError, match="must be positive"):
            Quantity(0)

    def test_bool_rejected(self):
        with pytest.raises(ValidationError, match="must be an integer"):
            Quantity(True)


# ── TimeWindow ───────────────────────────────────────────────────────────────


class TestTimeWindow:

    def test_end_must_follow_start(self):
        with pytest.raises(ValidationError, match="must end after it starts"):
            TimeWindow(T0, T0)

    def test_adjacent_windows_do_not_overlap(self):
        first = TimeWindow.starting_at(T0, 60)
        second = TimeWindow.starting_at(T0 + timedelta(minutes=60), 60)
        assert not first.overlaps(second)
        assert not second.overlaps(first)

    def test_overlap(self):
        first = TimeWindow.starting_at(T0, 60)
        assert first.overlaps(TimeWindow.starting_at(T0 + timedelta(minutes=59), 10))

    def test_contains(self):
        shift = TimeWindow(T0, T0 + timedelta(hours=8))
        assert shift.contains(TimeWindow.starting_at(T0, 120))
        assert not shift.contains(TimeWindow.starting_at(T0 + timedelta(hours=7), 120))


class TestActor:

    def test_has_role(self):
        lead = Actor(2, Role.TECHNICIAN_LEAD)
        assert lead.has_role(Role.MANAGER, Role.TECHNICIAN_LEAD)
        assert not lead.has_role(Role.MANAGER)

    def test_system_actor(self):
        assert Actor.system().role is Role.SYSTEM

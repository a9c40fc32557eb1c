"""Transition tables for the status enums.

Every stateful aggregate declares its allowed moves as an explicit
``{from_status: frozenset(to_statuses)}`` allow-list, so detecting an
invalid transition is a single table lookup.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from enum import Enum
from typing import TypeVar

from rms.domain.exceptions import InvalidTransitionError

S = TypeVar("S", bound=Enum)

TransitionTable = Mapping[S, frozenset[S]]


def can_transition(table: TransitionTable, current: S, target: S) -> bool:
    return target in table.get(current, frozenset())


def ensure_transition(
    table: TransitionTable,
    entity: str,
    entity_id,
    current: S,
    target: S,
) -> None:
    """Raise InvalidTransitionError unless ``current -> target`` is allowed."""
    if not can_transition(table, current, target):
        raise InvalidTransitionError(entity, entity_id, current.value, target.value)


def terminal_states(table: TransitionTable, statuses: Iterable[S]) -> frozenset[S]:
    return frozenset(s for s in statuses if not table.get(s))


def is_valid_path(table: TransitionTable, path: list[S]) -> bool:
    """True if each consecutive pair in ``path`` is an allowed transition."""
    return all(can_transition(table, a, b) for a, b in zip(path, path[1:]))

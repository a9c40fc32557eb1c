"""Technician availability, produced outside the engine."""

from __future__ import annotations

from abc import ABC, abstractmethod

from rms.domain.model.value_objects import TimeWindow


class ShiftRoster(ABC):

    @abstractmethod
    def is_on_shift(self, technician_id: int, window: TimeWindow) -> bool:
        """True if the technician is scheduled to work for the whole window."""

"""Abstract repository for the Appointment aggregate."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from rms.domain.model.appointment import Appointment


class AppointmentRepository(ABC):

    @abstractmethod
    def get_by_id(self, appointment_id: int) -> Appointment | None:
        """Return the appointment, or None."""

    @abstractmethod
    def list_for_request(self, request_id: int) -> list[Appointment]:
        """Return every appointment of a request, oldest first."""

    @abstractmethod
    def list_between(self, start: datetime, end: datetime) -> list[Appointment]:
        """Return appointments whose window intersects ``[start, end)``."""

    @abstractmethod
    def save(self, appointment: Appointment) -> None:
        """Persist a new or updated appointment."""

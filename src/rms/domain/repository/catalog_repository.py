"""Abstract repository for reference data: issues, schedules, technicians."""

from __future__ import annotations

from abc import ABC, abstractmethod

from rms.domain.model.catalog import Issue, MaintenanceSchedule, Technician


class CatalogRepository(ABC):

    @abstractmethod
    def get_issue(self, issue_id: int) -> Issue | None:
        """Return the issue type, or None."""

    @abstractmethod
    def save_issue(self, issue: Issue) -> None:
        """Persist a new or updated issue type."""

    @abstractmethod
    def get_schedule(self, schedule_id: int) -> MaintenanceSchedule | None:
        """Return the maintenance schedule, or None."""

    @abstractmethod
    def list_schedules(self) -> list[MaintenanceSchedule]:
        """Return every maintenance schedule."""

    @abstractmethod
    def save_schedule(self, schedule: MaintenanceSchedule) -> None:
        """Persist a new or updated maintenance schedule."""

    @abstractmethod
    def get_technician(self, technician_id: int) -> Technician | None:
        """Return the technician, or None."""

    @abstractmethod
    def list_technicians(self) -> list[Technician]:
        """Return every technician."""

    @abstractmethod
    def save_technician(self, technician: Technician) -> None:
        """Persist a new or updated technician."""

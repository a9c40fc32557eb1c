"""Abstract repository for inspection and repair reports."""

from __future__ import annotations

from abc import ABC, abstractmethod

from rms.domain.model.report import InspectionReport, RepairReport


class ReportRepository(ABC):

    @abstractmethod
    def get_inspection(self, report_id: int) -> InspectionReport | None:
        """Return the inspection report, or None."""

    @abstractmethod
    def get_inspection_for_appointment(self, appointment_id: int) -> InspectionReport | None:
        """Return the inspection report written for an appointment, if any."""

    @abstractmethod
    def save_inspection(self, report: InspectionReport) -> None:
        """Persist a new or updated inspection report."""

    @abstractmethod
    def get_repair(self, report_id: int) -> RepairReport | None:
        """Return the repair report, or None."""

    @abstractmethod
    def get_repair_for_appointment(self, appointment_id: int) -> RepairReport | None:
        """Return the repair report written for an appointment, if any."""

    @abstractmethod
    def list_repairs_for_request(self, request_id: int) -> list[RepairReport]:
        """Return every repair report of a request."""

    @abstractmethod
    def save_repair(self, report: RepairReport) -> None:
        """Persist a new or updated repair report."""

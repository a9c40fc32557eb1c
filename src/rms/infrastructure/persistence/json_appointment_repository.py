"""JSON-document implementation of AppointmentRepository."""

from __future__ import annotations

from datetime import datetime

from rms.domain.model.appointment import (
    Appointment,
    AppointmentStatus,
    AppointmentTracking,
    WorkOrder,
    WorkOrderStatus,
)
from rms.domain.repository.appointment_repository import AppointmentRepository
from rms.infrastructure.persistence.json_document import JsonSection, dt_from_raw, dt_to_raw


class JsonAppointmentRepository(JsonSection, AppointmentRepository):

    section = "appointments"

    # --- AppointmentRepository interface --------------------------------------

    def get_by_id(self, appointment_id: int) -> Appointment | None:
        raw = self._find_raw(appointment_id)
        return self._to_domain(raw) if raw is not None else None

    def list_for_request(self, request_id: int) -> list[Appointment]:
        return sorted(
            (self._to_domain(r) for r in self._load_raw() if r["request_id"] == request_id),
            key=lambda a: a.id,
        )

    def list_between(self, start: datetime, end: datetime) -> list[Appointment]:
        found = []
        for raw in self._load_raw():
            appointment = self._to_domain(raw)
            if appointment.start < end and start < appointment.end:
                found.append(appointment)
        return found

    def save(self, appointment: Appointment) -> None:
        if appointment.id is None:
            appointment.id = self._next_id()
        self._upsert_raw(self._to_raw(appointment))

    # --- Serialization --------------------------------------------------------

    @staticmethod
    def _to_raw(appointment: Appointment) -> dict:
        return {
            "id": appointment.id,
            "request_id": appointment.request_id,
            "start": dt_to_raw(appointment.start),
            "end": dt_to_raw(appointment.end),
            "note": appointment.note,
            "status": appointment.status.value,
            "created_at": dt_to_raw(appointment.created_at),
            "work_orders": [
                {
                    "technician_id": wo.technician_id,
                    "estimated_start": dt_to_raw(wo.estimated_start),
                    "estimated_end": dt_to_raw(wo.estimated_end),
                    "status": wo.status.value,
                    "actual_start": dt_to_raw(wo.actual_start),
                    "actual_end": dt_to_raw(wo.actual_end),
                }
                for wo in appointment.work_orders
            ],
            "tracking": [
                {
                    "status": t.status.value,
                    "note": t.note,
                    "actor_id": t.actor_id,
                    "recorded_at": dt_to_raw(t.recorded_at),
                }
                for t in appointment.tracking
            ],
        }

    @staticmethod
    def _to_domain(raw: dict) -> Appointment:
        return Appointment(
            id=raw["id"],
            request_id=raw["request_id"],
            start=dt_from_raw(raw["start"]),
            end=dt_from_raw(raw["end"]),
            note=raw.get("note", ""),
            status=AppointmentStatus(raw["status"]),
            created_at=dt_from_raw(raw["created_at"]),
            work_orders=[
                WorkOrder(
                    technician_id=wo["technician_id"],
                    estimated_start=dt_from_raw(wo["estimated_start"]),
                    estimated_end=dt_from_raw(wo["estimated_end"]),
                    status=WorkOrderStatus(wo["status"]),
                    actual_start=dt_from_raw(wo.get("actual_start")),
                    actual_end=dt_from_raw(wo.get("actual_end")),
                )
                for wo in raw.get("work_orders", [])
            ],
            tracking=[
                AppointmentTracking(
                    status=AppointmentStatus(t["status"]),
                    note=t["note"],
                    actor_id=t["actor_id"],
                    recorded_at=dt_from_raw(t["recorded_at"]),
                )
                for t in raw.get("tracking", [])
            ],
        )

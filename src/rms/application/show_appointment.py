"""Application service: Show Appointment use case."""

from __future__ import annotations

from rms.application.dto import AppointmentDTO, WorkOrderDTO
from rms.application.lookups import get_appointment
from rms.application.runner import TransactionRunner
from rms.domain.repository.unit_of_work import UnitOfWork


class ShowAppointmentHandler:

    def __init__(self, runner: TransactionRunner) -> None:
        self._runner = runner

    def handle(self, appointment_id: int) -> AppointmentDTO:

        def query(uow: UnitOfWork) -> AppointmentDTO:
            appointment = get_appointment(uow, appointment_id)
            return AppointmentDTO(
                id=appointment.id,
                request_id=appointment.request_id,
                status=appointment.status.value,
                start=appointment.start.isoformat(),
                end=appointment.end.isoformat(),
                work_orders=[
                    WorkOrderDTO(
                        technician_id=wo.technician_id,
                        status=wo.status.value,
                        actual_start=wo.actual_start.isoformat() if wo.actual_start else None,
                        actual_end=wo.actual_end.isoformat() if wo.actual_end else None,
                    )
                    for wo in appointment.work_orders
                ],
            )

        return self._runner.read(query)

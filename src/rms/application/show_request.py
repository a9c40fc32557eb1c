"""Application service: Show Request use case."""

from __future__ import annotations

from rms.application.dto import RequestDTO, TrackingDTO
from rms.application.lookups import get_request
from rms.application.runner import TransactionRunner
from rms.domain.model.repair_request import RepairRequest, RequestStatus
from rms.domain.repository.unit_of_work import UnitOfWork
from rms.domain.service.request_reconciliation import RequestReconciliationService


class ShowRequestHandler:

    def __init__(self, runner: TransactionRunner) -> None:
        self._runner = runner

    def handle(self, request_id: int) -> RequestDTO:

        def query(uow: UnitOfWork) -> RequestDTO:
            request = get_request(uow, request_id)
            blockers: list[str] = []
            if request.status is RequestStatus.IN_PROGRESS:
                blockers = RequestReconciliationService(uow).blockers(request)
            return RequestDTO(
                id=request.id,
                requester_id=request.requester_id,
                origin=request.origin.value,
                status=request.status.value,
                description=request.description,
                target=_describe_target(request),
                created_at=request.created_at.isoformat(),
                is_emergency=request.is_emergency,
                parent_request_id=request.parent_request_id,
                acceptance_time=request.acceptance_time.isoformat() if request.acceptance_time else None,
                verification_media_ids=list(request.verification_media_ids),
                tracking=[
                    TrackingDTO(t.status.value, t.note, t.actor_id, t.recorded_at.isoformat())
                    for t in request.tracking
                ],
                appointment_ids=[a.id for a in uow.appointments.list_for_request(request.id)],
                invoice_ids=[i.id for i in uow.invoices.list_for_request(request.id)],
                blockers=blockers,
            )

        return self._runner.read(query)


def _describe_target(request: RepairRequest) -> str:
    if request.apartment_id is not None:
        return f"apartment #{request.apartment_id}"
    if request.maintenance_schedule_id is not None:
        return (
            f"common-area object #{request.common_area_object_id} "
            f"(schedule #{request.maintenance_schedule_id})"
        )
    return f"common-area object #{request.common_area_object_id}"

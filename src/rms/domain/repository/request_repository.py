"""Abstract repository for the RepairRequest aggregate."""

from __future__ import annotations

from abc import ABC, abstractmethod

from rms.domain.model.repair_request import RepairRequest, RequestStatus


class RepairRequestRepository(ABC):

    @abstractmethod
    def get_by_id(self, request_id: int) -> RepairRequest | None:
        """Return the request, or None if it does not exist."""

    @abstractmethod
    def list_by_status(self, *statuses: RequestStatus) -> list[RepairRequest]:
        """Return every request currently in one of ``statuses``."""

    @abstractmethod
    def save(self, request: RepairRequest) -> None:
        """Persist a new or updated request. Assigns an id if missing."""

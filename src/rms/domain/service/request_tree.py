"""Follow-up links between repair requests.

Requests reference their parent by id only. A link is refused if the
proposed parent is the request itself or one of its descendants, which
is detected by walking the parent's ancestors before writing.
"""

from __future__ import annotations

from rms.domain.exceptions import EntityNotFoundError, ValidationError
from rms.domain.model.repair_request import RepairRequest
from rms.domain.repository.request_repository import RepairRequestRepository


class RequestTreeService:

    def __init__(self, request_repo: RepairRequestRepository) -> None:
        self._request_repo = request_repo

    def validate_parent(self, request_id: int | None, parent_id: int) -> RepairRequest:
        """Return the parent request if ``request_id`` may point at it."""
        parent = self._request_repo.get_by_id(parent_id)
        if parent is None:
            raise EntityNotFoundError(f"Parent request #{parent_id} not found")
        if request_id is None:
            return parent

        seen: set[int] = set()
        cursor: RepairRequest | None = parent
        while cursor is not None:
            if cursor.id == request_id:
                raise ValidationError(
                    f"Request #{parent_id} descends from request #{request_id}; "
                    f"linking it as parent would create a cycle"
                )
            if cursor.id in seen:
                break
            seen.add(cursor.id)
            if cursor.parent_request_id is None:
                break
            cursor = self._request_repo.get_by_id(cursor.parent_request_id)
        return parent

    def ancestors(self, request: RepairRequest) -> list[int]:
        """Ids from the direct parent up to the root."""
        chain: list[int] = []
        parent_id = request.parent_request_id
        while parent_id is not None and parent_id not in chain:
            chain.append(parent_id)
            parent = self._request_repo.get_by_id(parent_id)
            parent_id = parent.parent_request_id if parent is not None else None
        return chain

"""Domain-level exceptions.

All business rule violations are expressed as subclasses of DomainException
so the CLI layer can catch them uniformly and display user-friendly messages.
Each subclass carries a machine-readable ``code`` plus the structured fields
a caller needs to render a precise message.
"""

from __future__ import annotations


class DomainException(Exception):
    """Base class for all domain errors."""

    code = "DOMAIN_ERROR"


class ValidationError(DomainException):
    """A business rule or invariant was violated."""

    code = "VALIDATION_ERROR"


class EntityNotFoundError(DomainException):
    """A requested entity does not exist."""

    code = "ENTITY_NOT_FOUND"


class UnauthorizedActorError(DomainException):
    """The acting user's role (or identity) may not perform this operation."""

    code = "UNAUTHORIZED_ACTOR"


class InvalidTransitionError(DomainException):
    """A status change is not permitted from the entity's current status."""

    code = "INVALID_TRANSITION"

    def __init__(self, entity: str, entity_id, current: str, requested: str) -> None:
        self.entity = entity
        self.entity_id = entity_id
        self.current = current
        self.requested = requested
        super().__init__(
            f"{entity} #{entity_id} cannot move from {current} to {requested}"
        )


class OutOfOrderApprovalError(DomainException):
    code = "OUT_OF_ORDER_APPROVAL"

    def __init__(self, report_id, expected_role: str, actual_role: str) -> None:
        self.report_id = report_id
        self.expected_role = expected_role
        self.actual_role = actual_role
        super().__init__(
            f"Report #{report_id} expects approval from {expected_role}, "
            f"got {actual_role}"
        )


class AlreadyFinalizedError(DomainException):
    code = "ALREADY_FINALIZED"

    def __init__(self, report_id, status: str) -> None:
        self.report_id = report_id
        self.status = status
        super().__init__(f"Report #{report_id} is already finalized ({status})")


class InsufficientStockError(DomainException):
    code = "INSUFFICIENT_STOCK"

    def __init__(self, accessory_id, accessory_name: str, requested: int, available: int) -> None:
        self.accessory_id = accessory_id
        self.accessory_name = accessory_name
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock for {accessory_name} "
            f"(need {requested}, have {available} available)"
        )


class InsufficientTechniciansError(DomainException):
    code = "INSUFFICIENT_TECHNICIANS"

    def __init__(self, appointment_id, required: int, supplied: int) -> None:
        self.appointment_id = appointment_id
        self.required = required
        self.supplied = supplied
        super().__init__(
            f"Appointment #{appointment_id} needs {required} technician(s), "
            f"got {supplied}"
        )


class AmountMismatchError(DomainException):
    """Invoice total diverges from the sum of its lines. Never auto-corrected."""

    code = "AMOUNT_MISMATCH"

    def __init__(self, invoice_id, recorded, computed) -> None:
        self.invoice_id = invoice_id
        self.recorded = recorded
        self.computed = computed
        super().__init__(
            f"Invoice #{invoice_id} total {recorded} does not match "
            f"line sum {computed}"
        )


class ConcurrentModificationError(DomainException):
    code = "CONCURRENT_MODIFICATION"

    def __init__(self, detail: str, attempts: int = 1) -> None:
        self.detail = detail
        self.attempts = attempts
        super().__init__(f"Concurrent modification: {detail} (after {attempts} attempt(s))")

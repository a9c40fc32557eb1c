"""Invoice aggregate and its line items.

Business rules enforced here:
  - Lines can only be added or removed while the invoice is DRAFT.
  - ``total_amount`` is recomputed after every line mutation and must
    always equal the sum of the lines.
  - An (accessory, source) pair may appear only once per invoice.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum

from rms.domain.exceptions import AmountMismatchError, ValidationError
from rms.domain.model.value_objects import Money, Quantity
from rms.domain.model.workflow import ensure_transition


class InvoiceStatus(Enum):
    DRAFT = "DRAFT"
    APPROVED = "APPROVED"
    AWAITING_PAYMENT = "AWAITING_PAYMENT"
    PAID = "PAID"
    CANCELLED = "CANCELLED"


INVOICE_TRANSITIONS: dict[InvoiceStatus, frozenset[InvoiceStatus]] = {
    InvoiceStatus.DRAFT: frozenset({InvoiceStatus.APPROVED, InvoiceStatus.CANCELLED}),
    InvoiceStatus.APPROVED: frozenset({InvoiceStatus.AWAITING_PAYMENT, InvoiceStatus.PAID}),
    InvoiceStatus.AWAITING_PAYMENT: frozenset({InvoiceStatus.PAID}),
    InvoiceStatus.PAID: frozenset(),
    InvoiceStatus.CANCELLED: frozenset(),
}


class InvoiceType(Enum):
    INTERNAL_REPAIR = "INTERNAL_REPAIR"
    EXTERNAL_CONTRACTOR = "EXTERNAL_CONTRACTOR"


class AccessorySource(Enum):
    FROM_STOCK = "FROM_STOCK"
    TO_BE_PURCHASED = "TO_BE_PURCHASED"


@dataclass(frozen=True)
class InvoiceAccessory:
    """An accessory line; ``name`` and ``price`` are snapshots."""

    accessory_id: int | None
    name: str
    quantity: Quantity
    price: Money
    source: AccessorySource

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise ValidationError("Accessory line name is required")
        if self.source is AccessorySource.FROM_STOCK and self.accessory_id is None:
            raise ValidationError("A stock line must reference an accessory")

    @property
    def line_total(self) -> Money:
        return self.price * self.quantity.value


@dataclass(frozen=True)
class InvoiceService:
    """Flat labour or service fee."""

    name: str
    price: Money

    def __post_init__(self) -> None:
        if not self.name or not self.name.strip():
            raise ValidationError("Service line name is required")


@dataclass(frozen=True)
class Contract:
    """Outsourcing contract behind an EXTERNAL_CONTRACTOR invoice.

    ``document_ref`` is an opaque key of the signed contract file.
    """

    contractor_name: str
    code: str
    start_date: date
    end_date: date | None = None
    amount: Money | None = None
    description: str = ""
    document_ref: str | None = None

    def __post_init__(self) -> None:
        if not self.contractor_name or not self.contractor_name.strip():
            raise ValidationError("Contractor name is required")
        if not self.code or not self.code.strip():
            raise ValidationError("Contract code is required")
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValidationError("Contract cannot end before it starts")


@dataclass
class Invoice:
    """Aggregate root for the costing of one repair request."""

    id: int | None
    request_id: int
    inspection_report_id: int
    is_chargeable: bool
    type: InvoiceType
    status: InvoiceStatus = InvoiceStatus.DRAFT
    total_amount: Money = field(default_factory=Money.zero)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    accessories: list[InvoiceAccessory] = field(default_factory=list)
    services: list[InvoiceService] = field(default_factory=list)
    cancel_reason: str = ""
    contract: Contract | None = None

    # --- Factory --------------------------------------------------------------

    @staticmethod
    def draft_for(
        request_id: int,
        inspection_report_id: int,
        is_chargeable: bool,
        invoice_type: InvoiceType,
        now: datetime,
    ) -> Invoice:
        return Invoice(
            id=None,
            request_id=request_id,
            inspection_report_id=inspection_report_id,
            is_chargeable=is_chargeable,
            type=invoice_type,
            created_at=now,
        )

    # --- Queries --------------------------------------------------------------

    @property
    def computed_total(self) -> Money:
        return Money.sum(
            [line.line_total for line in self.accessories] + [svc.price for svc in self.services]
        )

    @property
    def stock_lines(self) -> list[InvoiceAccessory]:
        return [a for a in self.accessories if a.source is AccessorySource.FROM_STOCK]

    @property
    def purchase_lines(self) -> list[InvoiceAccessory]:
        return [
            a for a in self.accessories
            if a.source is AccessorySource.TO_BE_PURCHASED and a.accessory_id is not None
        ]

    @property
    def accessory_ids(self) -> list[int]:
        return sorted({a.accessory_id for a in self.accessories if a.accessory_id is not None})

    @property
    def is_settled(self) -> bool:
        return self.status is InvoiceStatus.PAID

    def verify_total(self, expected: Money | None = None) -> None:
        """Raise AmountMismatchError if the stored or expected total is off.

        A mismatch is reported, never corrected.
        """
        computed = self.computed_total
        if self.total_amount != computed:
            raise AmountMismatchError(self.id, self.total_amount, computed)
        if expected is not None and expected != computed:
            raise AmountMismatchError(self.id, expected, computed)

    # --- Line editing ---------------------------------------------------------

    def add_accessory(self, line: InvoiceAccessory) -> None:
        self._require_draft()
        if line.accessory_id is not None:
            for existing in self.accessories:
                if existing.accessory_id == line.accessory_id and existing.source is line.source:
                    raise ValidationError(
                        f"Invoice #{self.id} already has a {line.source.value} line "
                        f"for accessory #{line.accessory_id}"
                    )
        self.accessories.append(line)
        self._recompute()

    def add_service(self, line: InvoiceService) -> None:
        self._require_draft()
        self.services.append(line)
        self._recompute()

    def remove_accessory(self, position: int) -> InvoiceAccessory:
        """Remove the accessory line at 1-based ``position``."""
        self._require_draft()
        removed = self.accessories.pop(self._index(position, len(self.accessories)))
        self._recompute()
        return removed

    def remove_service(self, position: int) -> InvoiceService:
        self._require_draft()
        removed = self.services.pop(self._index(position, len(self.services)))
        self._recompute()
        return removed

    def reclassify(self, is_chargeable: bool, invoice_type: InvoiceType) -> None:
        """Follow a reworked inspection report's fault owner and solution."""
        self._require_draft()
        self.is_chargeable = is_chargeable
        self.type = invoice_type
        if invoice_type is not InvoiceType.EXTERNAL_CONTRACTOR:
            self.contract = None

    def attach_contract(self, contract: Contract) -> None:
        """Record the contract an outsourced repair is billed under."""
        self._require_draft()
        if self.type is not InvoiceType.EXTERNAL_CONTRACTOR:
            raise ValidationError(
                f"Invoice #{self.id} is {self.type.value}; only contractor invoices carry a contract"
            )
        self.contract = contract

    # --- State transitions ----------------------------------------------------

    def approve(self) -> None:
        self._move(InvoiceStatus.APPROVED)

    def await_payment(self) -> None:
        self._move(InvoiceStatus.AWAITING_PAYMENT)

    def mark_paid(self) -> None:
        self._move(InvoiceStatus.PAID)

    def cancel(self, reason: str) -> None:
        if not reason or not reason.strip():
            raise ValidationError("A cancellation reason is required")
        self._move(InvoiceStatus.CANCELLED)
        self.cancel_reason = reason.strip()

    # --- Internal helpers -----------------------------------------------------

    def _recompute(self) -> None:
        self.total_amount = self.computed_total

    def _require_draft(self) -> None:
        if self.status is not InvoiceStatus.DRAFT:
            raise ValidationError(
                f"Invoice #{self.id} is {self.status.value}; lines can only "
                f"change while it is DRAFT"
            )

    def _index(self, position: int, size: int) -> int:
        if not 1 <= position <= size:
            raise ValidationError(f"Invoice #{self.id} has no line {position}")
        return position - 1

    def _move(self, target: InvoiceStatus) -> None:
        ensure_transition(INVOICE_TRANSITIONS, "Invoice", self.id, self.status, target)
        self.status = target

"""
Invoice aggregate - invoice and its line items.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Mapping, Optional, Sequence

from domain.common.dates import ensure_utc
from domain.common.exceptions import DomainValidationException
from domain.common.money import Number, round_half_up, to_decimal


class InvoiceStatus(str, Enum):
    DRAFT = "draft"
    OPEN = "open"
    PAID = "paid"
    VOID = "void"
    UNCOLLECTIBLE = "uncollectible"


TERMINAL_INVOICE_STATUSES = frozenset({InvoiceStatus.PAID, InvoiceStatus.VOID, InvoiceStatus.UNCOLLECTIBLE})


@dataclass(frozen=True)
class InvoiceLineInput:
    """Caller-supplied data for a new line; the amount is derived."""

    description: str
    quantity: Number
    unit_amount: int
    price_id: Optional[str] = None
    period_start: Optional[datetime] = None
    period_end: Optional[datetime] = None
    metadata: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class InvoiceLine:
    """Invoice line. `amount == round(quantity * unit_amount)` always holds."""

    id: str
    invoice_id: str
    description: str
    quantity: Number
    unit_amount: int
    amount: int
    price_id: Optional[str] = None
    period_start: Optional[datetime] = None
    period_end: Optional[datetime] = None
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "period_start", ensure_utc(self.period_start))
        object.__setattr__(self, "period_end", ensure_utc(self.period_end))
        expected = round_half_up(to_decimal(self.quantity) * Decimal(self.unit_amount))
        if self.amount != expected:
            raise DomainValidationException(
                f"Line amount {self.amount} does not match quantity x unit amount ({expected})",
                field="amount",
                details={"line_id": self.id, "expected": expected},
            )


@dataclass(frozen=True)
class Invoice:
    """
    Invoice aggregate root.

    Business rules:
    1. total = max(0, subtotal - discount) + tax
    2. amount_due = max(0, total - amount_paid)
    3. Created as draft; only finalize opens it (needs lines and total > 0)
    4. paid, void and uncollectible are terminal
    5. Lines may only change while draft
    6. Recalculations reuse the stored tax_rate and tax basis
    """

    id: str
    customer_id: str
    currency: str
    status: InvoiceStatus = InvoiceStatus.DRAFT
    number: Optional[str] = None
    subtotal: int = 0
    tax: int = 0
    discount: int = 0
    tax_rate: Number = 0
    tax_on_discounted_subtotal: bool = False
    total: int = 0
    amount_due: int = 0
    amount_paid: int = 0
    lines: Sequence[InvoiceLine] = ()
    due_date: Optional[datetime] = None
    period_start: Optional[datetime] = None
    period_end: Optional[datetime] = None
    subscription_id: Optional[str] = None
    created_at: Optional[datetime] = None
    finalized_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    voided_at: Optional[datetime] = None
    marked_uncollectible_at: Optional[datetime] = None
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "status", InvoiceStatus(self.status))
        object.__setattr__(self, "lines", tuple(self.lines))
        object.__setattr__(self, "currency", (self.currency or "").upper())
        for name in (
            "due_date",
            "period_start",
            "period_end",
            "created_at",
            "finalized_at",
            "paid_at",
            "voided_at",
            "marked_uncollectible_at",
        ):
            object.__setattr__(self, name, ensure_utc(getattr(self, name)))
        self._validate_amounts()

    def _validate_amounts(self) -> None:
        if self.tax_rate < 0:
            raise DomainValidationException(f"Tax rate cannot be negative: {self.tax_rate}", field="tax_rate")
        for name in ("tax", "discount", "amount_paid"):
            if getattr(self, name) < 0:
                raise DomainValidationException(f"{name} cannot be negative", field=name)
        expected_total = max(0, self.subtotal - self.discount) + self.tax
        if self.total != expected_total:
            raise DomainValidationException(
                f"Invoice total {self.total} does not match subtotal/discount/tax ({expected_total})",
                field="total",
            )
        expected_due = max(0, self.total - self.amount_paid)
        if self.amount_due != expected_due:
            raise DomainValidationException(
                f"Invoice amount due {self.amount_due} does not match total - amount paid ({expected_due})",
                field="amount_due",
            )

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_INVOICE_STATUSES

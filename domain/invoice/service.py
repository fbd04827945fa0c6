"""
Invoice domain service - totals, validation and the status machine.

Status machine:
    draft --finalize--> open --pay--> paid
    draft|open|uncollectible --void--> void
    draft|open --mark_uncollectible--> uncollectible

Every transition has a `can_*` pre-flight check returning a TransitionCheck
and a transition function that raises IllegalStateTransitionException when
called against a state the check rejects.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional, Sequence, Union

from domain.common.dates import ceil_days, ensure_utc
from domain.common.exceptions import DomainValidationException, IllegalStateTransitionException
from domain.common.money import Number, is_integral, percent_of, round_half_up, to_decimal
from domain.common.results import TransitionCheck, ValidationResult
from shared.codes import BusinessCode
from .entity import Invoice, InvoiceLine, InvoiceLineInput, InvoiceStatus


@dataclass(frozen=True)
class LineItemCalculation:
    quantity: Number
    unit_amount: int
    amount: int


@dataclass(frozen=True)
class InvoiceTotals:
    subtotal: int
    tax: int
    discount: int
    total: int
    amount_due: int


# ==================== Calculations ====================


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool)


def calculate_line_item_amount(line: InvoiceLineInput) -> LineItemCalculation:
    """`amount = round(quantity * unit_amount)`; quantity may be fractional."""
    if not _is_number(line.quantity) or line.quantity <= 0:
        raise DomainValidationException(
            f"Quantity must be a positive number: {line.quantity!r}",
            field="quantity",
        )
    if not _is_number(line.unit_amount) or line.unit_amount < 0 or not is_integral(line.unit_amount):
        raise DomainValidationException(
            f"Unit amount must be a non-negative integer in minor units: {line.unit_amount!r}",
            field="unit_amount",
        )
    unit_amount = int(line.unit_amount)
    amount = round_half_up(to_decimal(line.quantity) * Decimal(unit_amount))
    return LineItemCalculation(quantity=line.quantity, unit_amount=unit_amount, amount=amount)


def _line_amount(line: Union[InvoiceLine, int]) -> int:
    return line if isinstance(line, int) else line.amount


def calculate_invoice_totals(
    lines: Iterable[Union[InvoiceLine, int]],
    tax_rate: Number = 0,
    discount: int = 0,
    amount_paid: int = 0,
    *,
    tax_on_discounted_subtotal: bool = False,
) -> InvoiceTotals:
    """
    Compute invoice totals from lines (or bare line amounts).

    - subtotal = sum of line amounts
    - tax = round(subtotal * tax_rate / 100), on the pre-discount subtotal
      unless `tax_on_discounted_subtotal` is set; a negative basis taxes as 0
    - total = max(0, subtotal - discount) + tax
    - amount_due = max(0, total - amount_paid)
    """
    if tax_rate < 0:
        raise DomainValidationException(f"Tax rate cannot be negative: {tax_rate}", field="tax_rate")
    if discount < 0:
        raise DomainValidationException(f"Discount cannot be negative: {discount}", field="discount")
    if amount_paid < 0:
        raise DomainValidationException(f"Amount paid cannot be negative: {amount_paid}", field="amount_paid")

    subtotal = sum(_line_amount(line) for line in lines)
    discounted_subtotal = max(0, subtotal - discount)
    tax_basis = discounted_subtotal if tax_on_discounted_subtotal else subtotal
    tax = percent_of(max(0, tax_basis), tax_rate)
    total = discounted_subtotal + tax
    return InvoiceTotals(
        subtotal=subtotal,
        tax=tax,
        discount=discount,
        total=total,
        amount_due=max(0, total - amount_paid),
    )


def create_invoice_lines(invoice_id: str, inputs: Sequence[InvoiceLineInput]) -> tuple[InvoiceLine, ...]:
    lines = []
    for index, item in enumerate(inputs):
        calc = calculate_line_item_amount(item)
        lines.append(
            InvoiceLine(
                id=f"{invoice_id}_line_{index}",
                invoice_id=invoice_id,
                description=item.description,
                quantity=calc.quantity,
                unit_amount=calc.unit_amount,
                amount=calc.amount,
                price_id=item.price_id,
                period_start=item.period_start,
                period_end=item.period_end,
                metadata=dict(item.metadata),
            )
        )
    return tuple(lines)


def create_draft_invoice(
    invoice_id: str,
    customer_id: str,
    currency: str,
    now: datetime,
    line_inputs: Sequence[InvoiceLineInput] = (),
    *,
    tax_rate: Number = 0,
    discount: int = 0,
    number: Optional[str] = None,
    due_date: Optional[datetime] = None,
    period_start: Optional[datetime] = None,
    period_end: Optional[datetime] = None,
    subscription_id: Optional[str] = None,
    tax_on_discounted_subtotal: bool = False,
) -> Invoice:
    lines = create_invoice_lines(invoice_id, line_inputs)
    totals = calculate_invoice_totals(
        lines, tax_rate, discount, tax_on_discounted_subtotal=tax_on_discounted_subtotal
    )
    return Invoice(
        id=invoice_id,
        customer_id=customer_id,
        currency=currency,
        status=InvoiceStatus.DRAFT,
        number=number,
        subtotal=totals.subtotal,
        tax=totals.tax,
        discount=totals.discount,
        tax_rate=tax_rate,
        tax_on_discounted_subtotal=tax_on_discounted_subtotal,
        total=totals.total,
        amount_due=totals.amount_due,
        amount_paid=0,
        lines=lines,
        due_date=due_date,
        period_start=period_start,
        period_end=period_end,
        subscription_id=subscription_id,
        created_at=now,
    )


def with_totals(
    invoice: Invoice,
    lines: Sequence[InvoiceLine],
    tax_rate: Optional[Number] = None,
    *,
    tax_on_discounted_subtotal: Optional[bool] = None,
) -> Invoice:
    """
    Return the invoice carrying `lines`, with totals recomputed.

    Omitted `tax_rate` / `tax_on_discounted_subtotal` fall back to the values
    stored on the invoice; passed values replace them.
    """
    if tax_rate is None:
        tax_rate = invoice.tax_rate
    if tax_on_discounted_subtotal is None:
        tax_on_discounted_subtotal = invoice.tax_on_discounted_subtotal
    totals = calculate_invoice_totals(
        lines,
        tax_rate,
        invoice.discount,
        invoice.amount_paid,
        tax_on_discounted_subtotal=tax_on_discounted_subtotal,
    )
    return replace(
        invoice,
        lines=tuple(lines),
        tax_rate=tax_rate,
        tax_on_discounted_subtotal=tax_on_discounted_subtotal,
        subtotal=totals.subtotal,
        tax=totals.tax,
        total=totals.total,
        amount_due=totals.amount_due,
    )


# ==================== Status predicates ====================


def invoice_is_draft(invoice: Invoice) -> bool:
    return invoice.status == InvoiceStatus.DRAFT


def invoice_is_open(invoice: Invoice) -> bool:
    return invoice.status == InvoiceStatus.OPEN


def invoice_is_paid(invoice: Invoice) -> bool:
    return invoice.status == InvoiceStatus.PAID


def invoice_is_void(invoice: Invoice) -> bool:
    return invoice.status == InvoiceStatus.VOID


def invoice_is_uncollectible(invoice: Invoice) -> bool:
    return invoice.status == InvoiceStatus.UNCOLLECTIBLE


def is_past_due(invoice: Invoice, now: datetime) -> bool:
    if invoice.status != InvoiceStatus.OPEN or invoice.due_date is None:
        return False
    return ensure_utc(now) > invoice.due_date


def get_days_until_due(invoice: Invoice, now: datetime) -> Optional[int]:
    """Whole days until the due date (partial days round up; negative once overdue)."""
    if invoice.due_date is None:
        return None
    return ceil_days(invoice.due_date - ensure_utc(now))


def has_outstanding_balance(invoice: Invoice) -> bool:
    return invoice.status == InvoiceStatus.OPEN and invoice.amount_due > 0


def get_invoice_period_days(invoice: Invoice) -> Optional[int]:
    if invoice.period_start is None or invoice.period_end is None:
        return None
    return ceil_days(invoice.period_end - invoice.period_start)


def _format_date(moment: datetime) -> str:
    return f"{moment:%b} {moment.day}, {moment.year}"


def get_invoice_period_description(invoice: Invoice) -> Optional[str]:
    """e.g. 'Jan 1, 2024 - Feb 1, 2024'"""
    if invoice.period_start is None or invoice.period_end is None:
        return None
    return f"{_format_date(invoice.period_start)} - {_format_date(invoice.period_end)}"


# ==================== Pre-flight checks ====================


def can_be_finalized(invoice: Invoice) -> TransitionCheck:
    if invoice.status != InvoiceStatus.DRAFT:
        return TransitionCheck.deny("Only draft invoices can be finalized")
    if not invoice.lines:
        return TransitionCheck.deny("Invoice must have at least one line item")
    if invoice.total <= 0:
        return TransitionCheck.deny("Invoice total must be greater than zero")
    return TransitionCheck.allow()


def can_be_voided(invoice: Invoice) -> TransitionCheck:
    if invoice.status == InvoiceStatus.PAID:
        return TransitionCheck.deny("Paid invoices cannot be voided. Use refund instead.")
    if invoice.status == InvoiceStatus.VOID:
        return TransitionCheck.deny("Invoice is already voided")
    return TransitionCheck.allow()


def can_be_modified(invoice: Invoice) -> bool:
    return invoice.status == InvoiceStatus.DRAFT


def can_be_paid(invoice: Invoice) -> TransitionCheck:
    if invoice.status != InvoiceStatus.OPEN:
        return TransitionCheck.deny("Only open invoices can be paid")
    return TransitionCheck.allow()


def can_be_marked_uncollectible(invoice: Invoice) -> TransitionCheck:
    if invoice.is_terminal:
        return TransitionCheck.deny(f"Invoice is already {invoice.status.value}")
    return TransitionCheck.allow()


def _require(check: TransitionCheck, invoice: Invoice, target: InvoiceStatus, code: int) -> None:
    if not check.allowed:
        raise IllegalStateTransitionException(
            "invoice",
            invoice.status.value,
            target.value,
            check.error,
            code=code,
        )


# ==================== Transitions ====================


def replace_invoice_lines(
    invoice: Invoice,
    line_inputs: Sequence[InvoiceLineInput],
    tax_rate: Optional[Number] = None,
    *,
    tax_on_discounted_subtotal: Optional[bool] = None,
) -> Invoice:
    """Swap the lines of a draft invoice and recompute its totals."""
    if not can_be_modified(invoice):
        raise IllegalStateTransitionException(
            "invoice",
            invoice.status.value,
            invoice.status.value,
            "Only draft invoices can be modified",
            code=BusinessCode.INVOICE_NOT_MODIFIABLE,
        )
    return with_totals(
        invoice,
        create_invoice_lines(invoice.id, line_inputs),
        tax_rate,
        tax_on_discounted_subtotal=tax_on_discounted_subtotal,
    )


def finalize_invoice(invoice: Invoice, now: datetime, number: Optional[str] = None) -> Invoice:
    _require(can_be_finalized(invoice), invoice, InvoiceStatus.OPEN, BusinessCode.INVOICE_NOT_FINALIZABLE)
    return replace(
        invoice,
        status=InvoiceStatus.OPEN,
        number=number or invoice.number,
        finalized_at=now,
    )


def mark_invoice_paid(invoice: Invoice, now: datetime) -> Invoice:
    """Settle the full outstanding balance."""
    _require(can_be_paid(invoice), invoice, InvoiceStatus.PAID, BusinessCode.ILLEGAL_STATE_TRANSITION)
    return replace(
        invoice,
        status=InvoiceStatus.PAID,
        amount_paid=max(invoice.total, invoice.amount_paid),
        amount_due=0,
        paid_at=now,
    )


def record_invoice_payment(invoice: Invoice, amount: int, now: datetime) -> Invoice:
    """Apply a (possibly partial) payment; the invoice becomes paid once nothing is due."""
    _require(can_be_paid(invoice), invoice, InvoiceStatus.PAID, BusinessCode.ILLEGAL_STATE_TRANSITION)
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise DomainValidationException(f"Payment amount must be a positive integer: {amount!r}", field="amount")

    amount_paid = invoice.amount_paid + amount
    amount_due = max(0, invoice.total - amount_paid)
    if amount_due == 0:
        return replace(invoice, status=InvoiceStatus.PAID, amount_paid=amount_paid, amount_due=0, paid_at=now)
    return replace(invoice, amount_paid=amount_paid, amount_due=amount_due)


def void_invoice(invoice: Invoice, now: datetime) -> Invoice:
    _require(can_be_voided(invoice), invoice, InvoiceStatus.VOID, BusinessCode.INVOICE_NOT_VOIDABLE)
    return replace(invoice, status=InvoiceStatus.VOID, voided_at=now)


def mark_invoice_uncollectible(invoice: Invoice, now: datetime) -> Invoice:
    _require(
        can_be_marked_uncollectible(invoice),
        invoice,
        InvoiceStatus.UNCOLLECTIBLE,
        BusinessCode.ILLEGAL_STATE_TRANSITION,
    )
    return replace(invoice, status=InvoiceStatus.UNCOLLECTIBLE, marked_uncollectible_at=now)


# ==================== Validation ====================


def validate_line_item(line: InvoiceLineInput) -> ValidationResult:
    errors: list[str] = []

    if not line.description or not str(line.description).strip():
        errors.append("Line item description is required")

    if not _is_number(line.quantity) or line.quantity <= 0:
        errors.append("Quantity must be a positive number")

    if not _is_number(line.unit_amount) or line.unit_amount < 0:
        errors.append("Unit amount must be a non-negative number")

    if not is_integral(line.unit_amount):
        errors.append("Unit amount must be an integer (in cents)")

    return ValidationResult.from_errors(errors)


def validate_invoice_lines(lines: Optional[Sequence[InvoiceLineInput]]) -> ValidationResult:
    """Validate every line; errors are prefixed with the 1-based line number."""
    if not lines:
        return ValidationResult.from_errors(["At least one line item is required"])

    errors: list[str] = []
    for index, line in enumerate(lines, start=1):
        result = validate_line_item(line)
        errors.extend(f"Line {index}: {error}" for error in result.errors)
    return ValidationResult.from_errors(errors)

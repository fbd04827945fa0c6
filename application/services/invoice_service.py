"""
Application service orchestrating invoice use-cases.

Holds the invoice numbering policy and the tax basis choice; every call
takes `now` from the caller and the allocated sequence number from whoever
owns persistence.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from core.logging_config import get_logger
from domain.common.dates import ceil_days, ensure_utc
from domain.common.exceptions import DomainValidationException, IllegalStateTransitionException
from domain.common.money import Number
from domain.invoice import (
    DEFAULT_INVOICE_NUMBER_CONFIG,
    Invoice,
    InvoiceLineInput,
    InvoiceNumberConfig,
    ProrationResult,
    calculate_invoice_proration,
    can_be_modified,
    create_draft_invoice,
    create_proration_line_items,
    finalize_invoice,
    generate_invoice_number,
    mark_invoice_uncollectible,
    record_invoice_payment,
    validate_invoice_lines,
    void_invoice,
    with_totals,
)
from shared.codes import BusinessCode


logger = get_logger(__name__)


class InvoiceService:
    def __init__(
        self,
        number_config: InvoiceNumberConfig = DEFAULT_INVOICE_NUMBER_CONFIG,
        *,
        tax_on_discounted_subtotal: bool = False,
    ) -> None:
        self.number_config = number_config
        self.tax_on_discounted_subtotal = tax_on_discounted_subtotal

    def create_draft(
        self,
        invoice_id: str,
        customer_id: str,
        currency: str,
        line_inputs: Sequence[InvoiceLineInput],
        now: datetime,
        *,
        tax_rate: Number = 0,
        discount: int = 0,
        due_date: Optional[datetime] = None,
        period_start: Optional[datetime] = None,
        period_end: Optional[datetime] = None,
        subscription_id: Optional[str] = None,
    ) -> Invoice:
        result = validate_invoice_lines(line_inputs)
        if not result.valid:
            logger.warning("invoice_lines_invalid", invoice_id=invoice_id, errors=list(result.errors))
            raise DomainValidationException(
                result.error or "Invalid invoice lines",
                field="lines",
                details={"errors": list(result.errors)},
            )
        invoice = create_draft_invoice(
            invoice_id,
            customer_id,
            currency,
            now,
            line_inputs,
            tax_rate=tax_rate,
            discount=discount,
            due_date=due_date,
            period_start=period_start,
            period_end=period_end,
            subscription_id=subscription_id,
            tax_on_discounted_subtotal=self.tax_on_discounted_subtotal,
        )
        logger.info(
            "invoice_draft_created",
            invoice_id=invoice.id,
            customer_id=customer_id,
            lines=len(invoice.lines),
            total=invoice.total,
            currency=invoice.currency,
        )
        return invoice

    def next_number(self, sequence: int, now: datetime, tenant_id: Optional[str] = None) -> str:
        year = ensure_utc(now).year if self.number_config.include_year else None
        return generate_invoice_number(sequence, self.number_config, tenant_id=tenant_id, year=year)

    def finalize(
        self,
        invoice: Invoice,
        sequence: int,
        now: datetime,
        tenant_id: Optional[str] = None,
    ) -> Invoice:
        """Assign the next invoice number and move draft -> open."""
        number = self.next_number(sequence, now, tenant_id)
        try:
            finalized = finalize_invoice(invoice, now, number)
        except IllegalStateTransitionException as exc:
            logger.warning("invoice_finalize_rejected", invoice_id=invoice.id, status=invoice.status.value, reason=exc.reason)
            raise
        logger.info(
            "invoice_finalized",
            invoice_id=finalized.id,
            number=finalized.number,
            total=finalized.total,
            amount_due=finalized.amount_due,
        )
        return finalized

    def record_payment(self, invoice: Invoice, amount: int, now: datetime) -> Invoice:
        try:
            updated = record_invoice_payment(invoice, amount, now)
        except IllegalStateTransitionException as exc:
            logger.warning("invoice_payment_rejected", invoice_id=invoice.id, status=invoice.status.value, reason=exc.reason)
            raise
        logger.info(
            "invoice_payment_recorded",
            invoice_id=updated.id,
            amount=amount,
            amount_due=updated.amount_due,
            status=updated.status.value,
        )
        return updated

    def void(self, invoice: Invoice, now: datetime) -> Invoice:
        try:
            voided = void_invoice(invoice, now)
        except IllegalStateTransitionException as exc:
            logger.warning("invoice_void_rejected", invoice_id=invoice.id, status=invoice.status.value, reason=exc.reason)
            raise
        logger.info("invoice_voided", invoice_id=voided.id)
        return voided

    def mark_uncollectible(self, invoice: Invoice, now: datetime) -> Invoice:
        updated = mark_invoice_uncollectible(invoice, now)
        logger.info("invoice_marked_uncollectible", invoice_id=updated.id, amount_due=updated.amount_due)
        return updated

    def apply_plan_change(
        self,
        invoice: Invoice,
        current_plan_name: str,
        new_plan_name: str,
        old_amount: int,
        new_amount: int,
        period_start: datetime,
        period_end: datetime,
        now: datetime,
        tax_rate: Optional[Number] = None,
    ) -> tuple[Invoice, ProrationResult]:
        """
        Prorate a mid-period plan change onto a draft invoice.

        Days are counted in whole days (partial days round up) from `now` to
        the end of the period. Tax follows the draft's own rate and basis
        unless `tax_rate` is given.
        """
        if not can_be_modified(invoice):
            raise IllegalStateTransitionException(
                "invoice",
                invoice.status.value,
                invoice.status.value,
                "Only draft invoices can be modified",
                code=BusinessCode.INVOICE_NOT_MODIFIABLE,
            )
        start, end, moment = ensure_utc(period_start), ensure_utc(period_end), ensure_utc(now)
        total_days = ceil_days(end - start)
        days_remaining = min(total_days, max(0, ceil_days(end - moment)))
        proration = calculate_invoice_proration(old_amount, new_amount, days_remaining, total_days)

        lines = create_proration_line_items(invoice.id, current_plan_name, new_plan_name, proration, moment, end)
        updated = with_totals(invoice, [*invoice.lines, *lines], tax_rate)
        logger.info(
            "invoice_proration_applied",
            invoice_id=invoice.id,
            days_remaining=days_remaining,
            total_days=total_days,
            net_amount=proration.net_amount,
        )
        return updated, proration

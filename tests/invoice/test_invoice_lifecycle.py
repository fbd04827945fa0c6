import pytest

from domain.common.exceptions import DomainValidationException, IllegalStateTransitionException
from domain.invoice import (
    Invoice,
    InvoiceLineInput,
    InvoiceStatus,
    can_be_finalized,
    can_be_marked_uncollectible,
    can_be_modified,
    can_be_paid,
    can_be_voided,
    create_draft_invoice,
    finalize_invoice,
    get_days_until_due,
    get_invoice_period_days,
    get_invoice_period_description,
    has_outstanding_balance,
    is_past_due,
    mark_invoice_paid,
    mark_invoice_uncollectible,
    record_invoice_payment,
    replace_invoice_lines,
    void_invoice,
)
from shared.codes import BusinessCode


@pytest.fixture
def draft(now, utc):
    return create_draft_invoice(
        "inv_1",
        "cus_1",
        "usd",
        now,
        [InvoiceLineInput("Pro plan", 1, 1000), InvoiceLineInput("Extra seat", 1, 500)],
        tax_rate=10,
        due_date=utc(2024, 1, 30),
        period_start=utc(2024, 1, 1),
        period_end=utc(2024, 2, 1),
    )


def test_draft_totals(draft):
    assert draft.status == InvoiceStatus.DRAFT
    assert draft.currency == "USD"
    assert (draft.subtotal, draft.tax, draft.total, draft.amount_due) == (1500, 150, 1650, 1650)
    assert can_be_modified(draft)


def test_invoice_rejects_inconsistent_totals():
    with pytest.raises(DomainValidationException):
        Invoice(id="inv", customer_id="cus", currency="USD", subtotal=1000, total=900, amount_due=900)


def test_finalize_requires_lines_and_positive_total(now):
    empty = create_draft_invoice("inv_2", "cus_1", "USD", now)
    check = can_be_finalized(empty)
    assert not check.allowed
    assert check.error == "Invoice must have at least one line item"

    free = create_draft_invoice("inv_3", "cus_1", "USD", now, [InvoiceLineInput("Free", 1, 0)])
    assert can_be_finalized(free).error == "Invoice total must be greater than zero"

    with pytest.raises(IllegalStateTransitionException) as exc_info:
        finalize_invoice(empty, now)
    assert exc_info.value.code == BusinessCode.INVOICE_NOT_FINALIZABLE


def test_finalize_then_pay(draft, now, utc):
    opened = finalize_invoice(draft, now, "INV-2024-000001")
    assert opened.status == InvoiceStatus.OPEN
    assert opened.number == "INV-2024-000001"
    assert opened.finalized_at == now
    assert not can_be_modified(opened)
    assert not can_be_finalized(opened).allowed
    assert has_outstanding_balance(opened)

    paid = mark_invoice_paid(opened, utc(2024, 1, 20))
    assert paid.status == InvoiceStatus.PAID
    assert paid.amount_paid == 1650
    assert paid.amount_due == 0
    assert paid.is_terminal


def test_partial_payments(draft, now):
    opened = finalize_invoice(draft, now)
    partial = record_invoice_payment(opened, 650, now)
    assert partial.status == InvoiceStatus.OPEN
    assert partial.amount_due == 1000

    settled = record_invoice_payment(partial, 1000, now)
    assert settled.status == InvoiceStatus.PAID
    assert settled.amount_due == 0
    assert settled.paid_at == now


def test_draft_cannot_be_paid(draft, now):
    assert can_be_paid(draft).error == "Only open invoices can be paid"
    with pytest.raises(IllegalStateTransitionException):
        mark_invoice_paid(draft, now)


def test_void_rules(draft, now):
    opened = finalize_invoice(draft, now)
    voided = void_invoice(opened, now)
    assert voided.status == InvoiceStatus.VOID
    assert voided.voided_at == now
    assert can_be_voided(voided).error == "Invoice is already voided"

    paid = mark_invoice_paid(opened, now)
    check = can_be_voided(paid)
    assert check.error == "Paid invoices cannot be voided. Use refund instead."
    with pytest.raises(IllegalStateTransitionException) as exc_info:
        void_invoice(paid, now)
    assert exc_info.value.code == BusinessCode.INVOICE_NOT_VOIDABLE
    assert exc_info.value.details["from"] == "paid"


def test_uncollectible_can_still_be_voided(draft, now):
    bad_debt = mark_invoice_uncollectible(finalize_invoice(draft, now), now)
    assert bad_debt.status == InvoiceStatus.UNCOLLECTIBLE
    assert not can_be_marked_uncollectible(bad_debt).allowed
    assert can_be_voided(bad_debt).allowed


def test_replace_lines_only_on_draft(draft, now):
    updated = replace_invoice_lines(draft, [InvoiceLineInput("Team plan", 2, 2000)], tax_rate=10)
    assert (updated.subtotal, updated.tax, updated.total) == (4000, 400, 4400)

    with pytest.raises(IllegalStateTransitionException) as exc_info:
        replace_invoice_lines(finalize_invoice(draft, now), [InvoiceLineInput("x", 1, 1)])
    assert exc_info.value.code == BusinessCode.INVOICE_NOT_MODIFIABLE


def test_replace_lines_keeps_stored_tax_rate(draft):
    assert draft.tax_rate == 10
    updated = replace_invoice_lines(draft, [InvoiceLineInput("Team plan", 2, 2000)])
    assert (updated.subtotal, updated.tax, updated.total) == (4000, 400, 4400)
    assert updated.tax_rate == 10

    untaxed = replace_invoice_lines(draft, [InvoiceLineInput("Team plan", 2, 2000)], tax_rate=0)
    assert (untaxed.tax, untaxed.tax_rate) == (0, 0)
    assert replace_invoice_lines(untaxed, [InvoiceLineInput("Seat", 1, 500)]).tax == 0


def test_recalculation_keeps_tax_basis(now):
    draft = create_draft_invoice(
        "inv_3",
        "cus_1",
        "USD",
        now,
        [InvoiceLineInput("Pro plan", 1, 1000)],
        tax_rate=10,
        discount=200,
        tax_on_discounted_subtotal=True,
    )
    assert draft.tax == 80
    updated = replace_invoice_lines(draft, [InvoiceLineInput("Pro plan", 2, 1000)])
    assert (updated.subtotal, updated.tax, updated.total) == (2000, 180, 1980)


def test_invoice_rejects_negative_tax_rate():
    with pytest.raises(DomainValidationException):
        Invoice(id="inv", customer_id="cus", currency="USD", tax_rate=-1)


def test_due_dates_and_period(draft, now, utc):
    opened = finalize_invoice(draft, now)
    assert not is_past_due(opened, utc(2024, 1, 30))
    assert is_past_due(opened, utc(2024, 1, 30, 0, 0, 1))
    assert not is_past_due(draft, utc(2024, 3, 1))
    assert get_days_until_due(opened, now) == 15
    assert get_days_until_due(opened, utc(2024, 2, 2)) == -3
    assert get_invoice_period_days(draft) == 31
    assert get_invoice_period_description(draft) == "Jan 1, 2024 - Feb 1, 2024"

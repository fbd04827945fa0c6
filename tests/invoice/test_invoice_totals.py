import pytest

from domain.common.exceptions import DomainValidationException
from domain.invoice import (
    InvoiceLineInput,
    calculate_invoice_totals,
    calculate_line_item_amount,
    create_invoice_lines,
    validate_invoice_lines,
    validate_line_item,
)


def test_line_totals_with_tax():
    totals = calculate_invoice_totals([1000, 500], tax_rate=10)
    assert totals.subtotal == 1500
    assert totals.tax == 150
    assert totals.total == 1650
    assert totals.amount_due == 1650


def test_tax_is_on_pre_discount_subtotal_by_default():
    totals = calculate_invoice_totals([1000], tax_rate=10, discount=200)
    assert totals.tax == 100
    assert totals.total == 900


def test_tax_on_discounted_subtotal_option():
    totals = calculate_invoice_totals([1000], tax_rate=10, discount=200, tax_on_discounted_subtotal=True)
    assert totals.tax == 80
    assert totals.total == 880


def test_discount_larger_than_subtotal():
    totals = calculate_invoice_totals([500], discount=800)
    assert totals.total == 0
    assert totals.amount_due == 0


@pytest.mark.parametrize("amount_paid", [0, 1, 1649, 1650, 5000])
def test_amount_due_never_negative(amount_paid):
    totals = calculate_invoice_totals([1000, 500], tax_rate=10, amount_paid=amount_paid)
    assert totals.amount_due == max(0, totals.total - amount_paid)
    assert totals.amount_due >= 0


def test_negative_inputs_are_rejected():
    with pytest.raises(DomainValidationException):
        calculate_invoice_totals([1000], tax_rate=-1)
    with pytest.raises(DomainValidationException):
        calculate_invoice_totals([1000], discount=-1)


def test_line_item_amount_rounds_fractional_quantity():
    calc = calculate_line_item_amount(InvoiceLineInput("Storage", quantity=1.5, unit_amount=333))
    # 499.5 rounds half up
    assert calc.amount == 500


def test_line_item_amount_rejects_fractional_unit_amount():
    with pytest.raises(DomainValidationException) as exc_info:
        calculate_line_item_amount(InvoiceLineInput("Seat", quantity=1, unit_amount=9.99))
    assert exc_info.value.field == "unit_amount"


def test_create_invoice_lines_ids_and_amounts():
    lines = create_invoice_lines(
        "inv_1",
        [InvoiceLineInput("Seat", quantity=3, unit_amount=1000), InvoiceLineInput("Setup", 1, 2500)],
    )
    assert [line.id for line in lines] == ["inv_1_line_0", "inv_1_line_1"]
    assert [line.amount for line in lines] == [3000, 2500]


def test_validate_line_item_collects_errors():
    result = validate_line_item(InvoiceLineInput("", quantity=0, unit_amount=10.5))
    assert not result.valid
    assert "Line item description is required" in result.errors
    assert "Quantity must be a positive number" in result.errors
    assert "Unit amount must be an integer (in cents)" in result.errors


def test_validate_invoice_lines_prefixes_line_numbers():
    result = validate_invoice_lines([InvoiceLineInput("Seat", 1, 1000), InvoiceLineInput("Bad", -1, 100)])
    assert result.errors == ("Line 2: Quantity must be a positive number",)
    assert validate_invoice_lines([]).error == "At least one line item is required"

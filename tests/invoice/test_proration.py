import pytest

from domain.common.exceptions import DomainValidationException
from domain.invoice import calculate_invoice_proration, create_proration_line_items


@pytest.mark.parametrize("old, new", [(1000, 2000), (2000, 1000), (999, 0), (0, 4999)])
@pytest.mark.parametrize("days", [1, 28, 30, 31])
def test_full_period_remaining_is_identity(old, new, days):
    result = calculate_invoice_proration(old, new, days, days)
    assert result.unused_credit == old
    assert result.new_plan_prorated == new
    assert result.net_amount == new - old


def test_nothing_remaining_is_zero():
    result = calculate_invoice_proration(1000, 2000, 0, 30)
    assert (result.unused_credit, result.new_plan_prorated, result.net_amount) == (0, 0, 0)


def test_upgrade_half_way():
    result = calculate_invoice_proration(1000, 3000, 15, 30)
    assert result.unused_credit == 500
    assert result.new_plan_prorated == 1500
    assert result.net_amount == 1000
    assert result.is_charge


def test_downgrade_is_credit():
    # 2000 * 10 / 30 = 666.67, 1000 * 10 / 30 = 333.33
    result = calculate_invoice_proration(2000, 1000, 10, 30)
    assert result.unused_credit == 667
    assert result.new_plan_prorated == 333
    assert result.net_amount == -334
    assert result.is_credit


@pytest.mark.parametrize("days_remaining, total", [(1, 0), (31, 30), (-1, 30)])
def test_invalid_periods(days_remaining, total):
    with pytest.raises(DomainValidationException):
        calculate_invoice_proration(1000, 2000, days_remaining, total)


def test_proration_line_items(utc):
    proration = calculate_invoice_proration(1000, 3000, 15, 30)
    credit, charge = create_proration_line_items(
        "inv_1", "Basic", "Pro", proration, utc(2024, 1, 16), utc(2024, 1, 31)
    )
    assert credit.id == "inv_1_proration_credit"
    assert credit.amount == -500
    assert credit.description == "Unused time on Basic"
    assert credit.metadata == {"proration": True, "type": "credit"}
    assert charge.id == "inv_1_proration_charge"
    assert charge.amount == 1500
    assert charge.metadata["type"] == "charge"


def test_zero_lines_are_omitted(utc):
    proration = calculate_invoice_proration(0, 3000, 15, 30)
    lines = create_proration_line_items("inv_1", "Free", "Pro", proration, utc(2024, 1, 16), utc(2024, 1, 31))
    assert [line.metadata["type"] for line in lines] == ["charge"]

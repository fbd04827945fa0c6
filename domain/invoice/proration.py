"""Proration for mid-cycle plan changes."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from domain.common.exceptions import DomainValidationException
from domain.common.money import prorate
from .entity import InvoiceLine


@dataclass(frozen=True)
class ProrationResult:
    unused_credit: int
    new_plan_prorated: int
    net_amount: int

    @property
    def is_charge(self) -> bool:
        return self.net_amount > 0

    @property
    def is_credit(self) -> bool:
        return self.net_amount < 0


def calculate_invoice_proration(
    old_amount: int,
    new_amount: int,
    days_remaining: int,
    total_days_in_period: int,
) -> ProrationResult:
    """
    Split a plan change over the unused part of the current period.

    unused_credit = round(old_amount * days_remaining / total_days)
    new_plan_prorated = round(new_amount * days_remaining / total_days)
    net_amount = new_plan_prorated - unused_credit (positive charges, negative credits)
    """
    if total_days_in_period <= 0:
        raise DomainValidationException(
            f"Total days in period must be positive: {total_days_in_period}",
            field="total_days_in_period",
        )
    if days_remaining < 0 or days_remaining > total_days_in_period:
        raise DomainValidationException(
            f"Days remaining must be between 0 and {total_days_in_period}: {days_remaining}",
            field="days_remaining",
        )
    if old_amount < 0 or new_amount < 0:
        raise DomainValidationException("Plan amounts cannot be negative", field="amount")

    unused_credit = prorate(old_amount, days_remaining, total_days_in_period)
    new_plan_prorated = prorate(new_amount, days_remaining, total_days_in_period)
    return ProrationResult(
        unused_credit=unused_credit,
        new_plan_prorated=new_plan_prorated,
        net_amount=new_plan_prorated - unused_credit,
    )


def create_proration_line_items(
    invoice_id: str,
    current_plan_name: str,
    new_plan_name: str,
    proration: ProrationResult,
    period_start: datetime,
    period_end: datetime,
) -> list[InvoiceLine]:
    """Credit line for unused time and charge line for the new plan; zero lines are omitted."""
    lines: list[InvoiceLine] = []

    if proration.unused_credit > 0:
        lines.append(
            InvoiceLine(
                id=f"{invoice_id}_proration_credit",
                invoice_id=invoice_id,
                description=f"Unused time on {current_plan_name}",
                quantity=1,
                unit_amount=-proration.unused_credit,
                amount=-proration.unused_credit,
                period_start=period_start,
                period_end=period_end,
                metadata={"proration": True, "type": "credit"},
            )
        )

    if proration.new_plan_prorated > 0:
        lines.append(
            InvoiceLine(
                id=f"{invoice_id}_proration_charge",
                invoice_id=invoice_id,
                description=f"Remaining time on {new_plan_name}",
                quantity=1,
                unit_amount=proration.new_plan_prorated,
                amount=proration.new_plan_prorated,
                period_start=period_start,
                period_end=period_end,
                metadata={"proration": True, "type": "charge"},
            )
        )

    return lines

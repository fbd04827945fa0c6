"""
Marketplace domain service - vendor status, payout scheduling and payout lifecycle.

Every time-dependent function takes the reference time explicitly.
"""
from __future__ import annotations

import calendar
import uuid
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Iterable, Optional

from domain.common.dates import end_of_day, ensure_utc, start_of_day
from domain.common.exceptions import DomainValidationException, IllegalStateTransitionException
from domain.common.results import TransitionCheck
from .entity import (
    PayoutInterval,
    PayoutPeriod,
    PayoutSchedule,
    PayoutStatus,
    Vendor,
    VendorPayout,
    VendorStatus,
)

DEFAULT_COMMISSION_RATE = 10.0


@dataclass(frozen=True)
class MarketplaceOptions:
    """Platform-wide commission defaults; per-vendor values take precedence."""

    default_commission_rate: float = DEFAULT_COMMISSION_RATE
    min_commission: Optional[int] = None
    max_commission: Optional[int] = None
    default_minimum_payout_amount: int = 0

    def __post_init__(self) -> None:
        if not 0 <= self.default_commission_rate <= 100:
            raise DomainValidationException(
                f"Commission rate must be between 0 and 100: {self.default_commission_rate}",
                field="default_commission_rate",
            )
        if (
            self.min_commission is not None
            and self.max_commission is not None
            and self.min_commission > self.max_commission
        ):
            raise DomainValidationException("min_commission cannot exceed max_commission", field="min_commission")


DEFAULT_MARKETPLACE_OPTIONS = MarketplaceOptions()


@dataclass(frozen=True)
class PayoutEligibility:
    eligible: bool
    reason: Optional[str] = None
    next_eligible_date: Optional[datetime] = None


# ==================== Vendor status ====================


def vendor_is_active(vendor: Vendor) -> bool:
    return vendor.status == VendorStatus.ACTIVE and vendor.deleted_at is None


def vendor_is_pending(vendor: Vendor) -> bool:
    return vendor.status == VendorStatus.PENDING


def vendor_is_suspended(vendor: Vendor) -> bool:
    return vendor.status == VendorStatus.SUSPENDED


def vendor_can_receive_payments(vendor: Vendor) -> bool:
    return vendor_is_active(vendor) and len(vendor.provider_account_ids) > 0


def get_vendor_commission_rate(vendor: Vendor, default_rate: float = DEFAULT_COMMISSION_RATE) -> float:
    return vendor.commission_rate if vendor.commission_rate is not None else default_rate


# ==================== Payout schedule ====================


def _days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def _month_day(year: int, month: int, day: int, like: datetime) -> datetime:
    return like.replace(year=year, month=month, day=min(day, _days_in_month(year, month)))


def get_next_payout_date(schedule: PayoutSchedule, from_date: datetime) -> datetime:
    """
    Next payout moment strictly after `from_date`, at midnight UTC.

    - daily: the following midnight
    - weekly: the next `day_of_week` (default Monday)
    - monthly: the next `day_of_month` (default the 1st), clamped to short months
    """
    midnight = start_of_day(from_date)

    if schedule.interval == PayoutInterval.DAILY:
        return midnight + timedelta(days=1)

    if schedule.interval == PayoutInterval.WEEKLY:
        target = schedule.day_of_week if schedule.day_of_week is not None else 0
        days_ahead = (target - midnight.weekday()) % 7 or 7
        return midnight + timedelta(days=days_ahead)

    target_day = schedule.day_of_month or 1
    candidate = _month_day(midnight.year, midnight.month, target_day, midnight)
    if candidate > ensure_utc(from_date):
        return candidate
    year, month = (midnight.year + 1, 1) if midnight.month == 12 else (midnight.year, midnight.month + 1)
    return _month_day(year, month, target_day, midnight.replace(day=1))


def get_payout_period(schedule: PayoutSchedule, for_date: datetime) -> PayoutPeriod:
    """Payout window containing `for_date`."""
    moment = ensure_utc(for_date)

    if schedule.interval == PayoutInterval.DAILY:
        return PayoutPeriod(start=start_of_day(moment), end=end_of_day(moment))

    if schedule.interval == PayoutInterval.WEEKLY:
        target = schedule.day_of_week if schedule.day_of_week is not None else 0
        start = start_of_day(moment) - timedelta(days=(moment.weekday() - target) % 7)
        return PayoutPeriod(start=start, end=end_of_day(start + timedelta(days=6)))

    start = start_of_day(moment).replace(day=1)
    last_day = _days_in_month(moment.year, moment.month)
    return PayoutPeriod(start=start, end=end_of_day(start.replace(day=last_day)))


def is_within_payout_period(moment: datetime, period: PayoutPeriod) -> bool:
    return period.contains(moment)


# ==================== Payout eligibility ====================


def check_payout_eligibility(
    vendor: Vendor,
    pending_amount: int,
    now: datetime,
    minimum_payout_amount: Optional[int] = None,
) -> PayoutEligibility:
    """
    Decide whether `pending_amount` can be paid out to `vendor` now.

    Checked in order: vendor active -> provider account present -> minimum
    amount reached. The minimum defaults to the vendor's own threshold.
    """
    if not vendor_is_active(vendor):
        return PayoutEligibility(eligible=False, reason="Vendor is not active")

    if not vendor_can_receive_payments(vendor):
        return PayoutEligibility(eligible=False, reason="Vendor has no payment account configured")

    minimum = vendor.minimum_payout_amount if minimum_payout_amount is None else minimum_payout_amount
    if pending_amount < minimum:
        return PayoutEligibility(
            eligible=False,
            reason=f"Minimum payout amount of {minimum} not reached",
            next_eligible_date=get_next_payout_date(vendor.payout_schedule, now),
        )

    return PayoutEligibility(eligible=True)


# ==================== Payout lifecycle ====================

_PAYOUT_TRANSITIONS: dict[PayoutStatus, frozenset[PayoutStatus]] = {
    PayoutStatus.PENDING: frozenset({PayoutStatus.PROCESSING, PayoutStatus.PAID, PayoutStatus.FAILED}),
    PayoutStatus.PROCESSING: frozenset({PayoutStatus.PAID, PayoutStatus.FAILED}),
    PayoutStatus.PAID: frozenset(),
    PayoutStatus.FAILED: frozenset(),
}


def new_payout_id() -> str:
    return f"po_{uuid.uuid4().hex}"


def create_payout(
    vendor_id: str,
    amount: int,
    currency: str,
    period: PayoutPeriod,
    now: datetime,
    payout_id: Optional[str] = None,
) -> VendorPayout:
    return VendorPayout(
        id=payout_id or new_payout_id(),
        vendor_id=vendor_id,
        amount=amount,
        currency=currency.upper(),
        status=PayoutStatus.PENDING,
        period_start=period.start,
        period_end=period.end,
        provider_payout_ids={},
        created_at=now,
    )


def can_transition_payout(payout: VendorPayout, target: PayoutStatus) -> TransitionCheck:
    if target in _PAYOUT_TRANSITIONS[payout.status]:
        return TransitionCheck.allow()
    return TransitionCheck.deny(f"Payout cannot move from {payout.status.value} to {target.value}")


def _transition(payout: VendorPayout, target: PayoutStatus) -> None:
    check = can_transition_payout(payout, target)
    if not check.allowed:
        raise IllegalStateTransitionException("payout", payout.status.value, target.value, check.error)


def mark_payout_processing(payout: VendorPayout) -> VendorPayout:
    _transition(payout, PayoutStatus.PROCESSING)
    return replace(payout, status=PayoutStatus.PROCESSING)


def mark_payout_paid(
    payout: VendorPayout,
    now: datetime,
    provider: Optional[str] = None,
    provider_payout_id: Optional[str] = None,
) -> VendorPayout:
    _transition(payout, PayoutStatus.PAID)
    provider_payout_ids = dict(payout.provider_payout_ids)
    if provider and provider_payout_id:
        provider_payout_ids[provider] = provider_payout_id
    return replace(
        payout,
        status=PayoutStatus.PAID,
        paid_at=now,
        provider_payout_ids=provider_payout_ids,
        failure_reason=None,
    )


def mark_payout_failed(payout: VendorPayout, reason: Optional[str] = None) -> VendorPayout:
    _transition(payout, PayoutStatus.FAILED)
    return replace(payout, status=PayoutStatus.FAILED, failure_reason=reason)


# ==================== Reporting ====================


def calculate_vendor_earnings(payouts: Iterable[VendorPayout]) -> int:
    """Total already paid out."""
    return sum(p.amount for p in payouts if p.status == PayoutStatus.PAID)


def calculate_pending_earnings(payouts: Iterable[VendorPayout]) -> int:
    """Total scheduled but not yet paid."""
    return sum(p.amount for p in payouts if p.status in (PayoutStatus.PENDING, PayoutStatus.PROCESSING))


def filter_payouts_by_status(payouts: Iterable[VendorPayout], status: PayoutStatus) -> list[VendorPayout]:
    return [p for p in payouts if p.status == status]


def filter_payouts_by_date_range(
    payouts: Iterable[VendorPayout],
    start: datetime,
    end: datetime,
) -> list[VendorPayout]:
    start_utc, end_utc = ensure_utc(start), ensure_utc(end)
    if start_utc > end_utc:
        raise DomainValidationException("Date range start must not be after end", field="start")
    return [p for p in payouts if p.created_at is not None and start_utc <= p.created_at <= end_utc]

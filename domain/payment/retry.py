"""
Payment retry and grace-period state machine.

A failure streak for one customer/subscription moves through:

    none -> retrying (attempt 1..max_attempts) -> succeeded
                                               -> grace_period -> exhausted

Nothing here reads the clock; `now` is always passed in.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Any, Iterable, Optional, Sequence

from domain.common.dates import add_days, ceil_days, ensure_utc
from domain.common.exceptions import DomainValidationException
from .entity import Payment, PaymentStatus, SETTLED_PAYMENT_STATUSES


@dataclass(frozen=True)
class PaymentRetryConfig:
    """
    Retry policy.

    retry_intervals: days after the first failure for each retry attempt
    max_attempts: retries allowed before the streak stops retrying
    grace_period_days: days of continued access after the first failure
    grace_expiration_warning_days: days-remaining values that trigger a warning
    """

    retry_intervals: Sequence[int] = (1, 3, 5, 7)
    max_attempts: int = 4
    grace_period_days: int = 7
    notify_on_each_failure: bool = True
    notify_before_grace_expires: bool = True
    grace_expiration_warning_days: Sequence[int] = (2, 1)

    def __post_init__(self) -> None:
        object.__setattr__(self, "retry_intervals", tuple(self.retry_intervals))
        object.__setattr__(self, "grace_expiration_warning_days", tuple(self.grace_expiration_warning_days))
        if not self.retry_intervals:
            raise DomainValidationException("retry_intervals must not be empty", field="retry_intervals")
        if any(days < 0 for days in self.retry_intervals):
            raise DomainValidationException("retry_intervals must be non-negative", field="retry_intervals")
        if self.max_attempts < 0:
            raise DomainValidationException("max_attempts cannot be negative", field="max_attempts")
        if self.grace_period_days < 0:
            raise DomainValidationException("grace_period_days cannot be negative", field="grace_period_days")


DEFAULT_RETRY_CONFIG = PaymentRetryConfig()


def create_payment_retry_config(
    base: PaymentRetryConfig = DEFAULT_RETRY_CONFIG,
    **overrides: Any,
) -> PaymentRetryConfig:
    return replace(base, **overrides)


class RetryPhase(str, Enum):
    RETRYING = "retrying"
    GRACE_PERIOD = "grace_period"
    EXHAUSTED = "exhausted"


@dataclass(frozen=True)
class RetryState:
    attempt_number: int
    first_failure_at: datetime
    last_failure_at: datetime
    next_retry_at: Optional[datetime]
    grace_ends_at: datetime
    grace_expired: bool
    grace_days_remaining: int
    max_retries_reached: bool

    @property
    def phase(self) -> RetryPhase:
        if self.grace_expired:
            return RetryPhase.EXHAUSTED
        if self.max_retries_reached:
            return RetryPhase.GRACE_PERIOD
        return RetryPhase.RETRYING


def calculate_next_retry_date(
    first_failure_at: datetime,
    attempt_number: int,
    config: PaymentRetryConfig,
) -> Optional[datetime]:
    """
    `first_failure_at + retry_intervals[attempt_number]` days, or None once
    `attempt_number >= max_attempts`. Attempts past the end of the interval
    list reuse the last interval.
    """
    if attempt_number < 0:
        raise DomainValidationException(f"Attempt number cannot be negative: {attempt_number}", field="attempt_number")
    if attempt_number >= config.max_attempts:
        return None
    index = min(attempt_number, len(config.retry_intervals) - 1)
    return add_days(first_failure_at, config.retry_intervals[index])


def calculate_grace_end_date(first_failure_at: datetime, grace_period_days: int) -> datetime:
    return add_days(first_failure_at, grace_period_days)


def is_grace_period_expired(first_failure_at: datetime, grace_period_days: int, now: datetime) -> bool:
    """True from the exact grace end moment onward."""
    return ensure_utc(now) >= calculate_grace_end_date(first_failure_at, grace_period_days)


def get_grace_days_remaining(first_failure_at: datetime, grace_period_days: int, now: datetime) -> int:
    """Whole days left in the grace period, partial days rounded up, never negative."""
    grace_end = calculate_grace_end_date(first_failure_at, grace_period_days)
    return max(0, ceil_days(grace_end - ensure_utc(now)))


def should_send_grace_warning(
    days_remaining: int,
    config: PaymentRetryConfig,
    already_sent_days: Iterable[int] = (),
) -> bool:
    """True when `days_remaining` hits a configured threshold not yet notified."""
    if not config.notify_before_grace_expires:
        return False
    if days_remaining not in config.grace_expiration_warning_days:
        return False
    return days_remaining not in set(already_sent_days)


def _current_failure_streak(payments: Iterable[Payment]) -> list[Payment]:
    """Failed payments after the most recent settled one, oldest first."""
    ordered = sorted(payments, key=lambda p: p.created_at)
    streak: list[Payment] = []
    for payment in ordered:
        if payment.status in SETTLED_PAYMENT_STATUSES:
            streak = []
        elif payment.status == PaymentStatus.FAILED:
            streak.append(payment)
    return streak


def get_retry_state(
    payments: Iterable[Payment],
    config: PaymentRetryConfig,
    now: datetime,
) -> Optional[RetryState]:
    """
    Derive the retry state from a customer's/subscription's payment history.

    Only the current streak counts: failures after the last successful payment.
    Returns None when there is no such failure (state `none`).
    """
    streak = _current_failure_streak(payments)
    if not streak:
        return None

    first_failure_at = streak[0].created_at
    attempt_number = len(streak)
    return RetryState(
        attempt_number=attempt_number,
        first_failure_at=first_failure_at,
        last_failure_at=streak[-1].created_at,
        next_retry_at=calculate_next_retry_date(first_failure_at, attempt_number, config),
        grace_ends_at=calculate_grace_end_date(first_failure_at, config.grace_period_days),
        grace_expired=is_grace_period_expired(first_failure_at, config.grace_period_days, now),
        grace_days_remaining=get_grace_days_remaining(first_failure_at, config.grace_period_days, now),
        max_retries_reached=attempt_number >= config.max_attempts,
    )


def has_access_during_grace(subscription_status: str, retry_state: Optional[RetryState]) -> bool:
    """Active/trialing subscriptions keep access; past_due ones only until grace expires."""
    status = getattr(subscription_status, "value", subscription_status)
    if status in ("active", "trialing"):
        return True
    if status == "past_due" and retry_state is not None:
        return not retry_state.grace_expired
    return False

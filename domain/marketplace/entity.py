"""
Marketplace entities - vendors and their payouts.

Entities are immutable snapshots; state changes return a new instance.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional

from domain.common.dates import ensure_utc
from domain.common.exceptions import DomainValidationException


class VendorStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    SUSPENDED = "suspended"


class PayoutStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    PAID = "paid"
    FAILED = "failed"


class PayoutInterval(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


@dataclass(frozen=True)
class PayoutSchedule:
    """When a vendor gets paid. `day_of_week` uses Monday=0 ... Sunday=6."""

    interval: PayoutInterval = PayoutInterval.MONTHLY
    day_of_month: Optional[int] = None
    day_of_week: Optional[int] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "interval", PayoutInterval(self.interval))
        if self.day_of_month is not None and not 1 <= self.day_of_month <= 31:
            raise DomainValidationException(
                f"day_of_month must be between 1 and 31: {self.day_of_month}",
                field="day_of_month",
            )
        if self.day_of_week is not None and not 0 <= self.day_of_week <= 6:
            raise DomainValidationException(
                f"day_of_week must be between 0 and 6: {self.day_of_week}",
                field="day_of_week",
            )


@dataclass(frozen=True)
class PayoutPeriod:
    start: datetime
    end: datetime

    def contains(self, moment: datetime) -> bool:
        return self.start <= ensure_utc(moment) <= self.end


@dataclass(frozen=True)
class Vendor:
    """
    Marketplace seller.

    Business rules:
    1. Only active, non-deleted vendors receive payments
    2. A vendor needs at least one provider account to be paid out
    3. `commission_rate` is a percentage; None means the platform default
    """

    id: str
    name: str
    status: VendorStatus = VendorStatus.PENDING
    commission_rate: Optional[float] = None
    payout_schedule: PayoutSchedule = field(default_factory=PayoutSchedule)
    minimum_payout_amount: int = 0
    provider_account_ids: Mapping[str, str] = field(default_factory=dict)
    email: Optional[str] = None
    created_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "status", VendorStatus(self.status))
        object.__setattr__(self, "created_at", ensure_utc(self.created_at))
        object.__setattr__(self, "deleted_at", ensure_utc(self.deleted_at))
        if self.commission_rate is not None and not 0 <= self.commission_rate <= 100:
            raise DomainValidationException(
                f"Commission rate must be between 0 and 100: {self.commission_rate}",
                field="commission_rate",
            )
        if self.minimum_payout_amount < 0:
            raise DomainValidationException(
                f"Minimum payout amount cannot be negative: {self.minimum_payout_amount}",
                field="minimum_payout_amount",
            )


@dataclass(frozen=True)
class VendorPayout:
    """Scheduled disbursement of a vendor's accumulated earnings."""

    id: str
    vendor_id: str
    amount: int
    currency: str
    status: PayoutStatus
    period_start: datetime
    period_end: datetime
    provider_payout_ids: Mapping[str, str] = field(default_factory=dict)
    paid_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    failure_reason: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "status", PayoutStatus(self.status))
        if self.amount <= 0:
            raise DomainValidationException(
                f"Payout amount must be greater than 0: {self.amount}",
                field="amount",
            )
        object.__setattr__(self, "period_start", ensure_utc(self.period_start))
        object.__setattr__(self, "period_end", ensure_utc(self.period_end))
        object.__setattr__(self, "paid_at", ensure_utc(self.paid_at))
        object.__setattr__(self, "created_at", ensure_utc(self.created_at))

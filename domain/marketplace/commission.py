"""
Commission and revenue split calculations.

Business rules:
1. Every split conserves money: the parts always add up to the gross amount.
2. Percentages are rounded once, half up; any rounding remainder goes to the
   platform.
3. Split fee modes are mutually exclusive and modelled as separate types.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Sequence, Union

from domain.common.exceptions import DomainValidationException
from domain.common.money import Number, percent_of, prorate, round_half_up, to_decimal


def _require_amount(amount: int, field: str = "amount") -> None:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
        raise DomainValidationException(
            f"Amount must be a non-negative integer in minor units: {amount!r}",
            field=field,
        )


def _require_percentage(value: Number, field: str) -> None:
    if value < 0 or value > 100:
        raise DomainValidationException(
            f"Percentage must be between 0 and 100: {value}",
            field=field,
        )


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(value, high))


# ==================== Commission ====================


def calculate_platform_commission(
    amount: int,
    rate_percent: Number,
    *,
    min_commission: Optional[int] = None,
    max_commission: Optional[int] = None,
) -> int:
    """
    Platform commission on `amount`.

    `round(amount * rate_percent / 100)`, then clamped to the optional
    `[min_commission, max_commission]` window.
    """
    _require_amount(amount)
    commission = percent_of(amount, rate_percent)
    if min_commission is not None:
        commission = max(commission, min_commission)
    if max_commission is not None:
        commission = min(commission, max_commission)
    return commission


def calculate_vendor_amount(
    amount: int,
    rate_percent: Number,
    *,
    min_commission: Optional[int] = None,
    max_commission: Optional[int] = None,
) -> int:
    commission = calculate_platform_commission(
        amount,
        rate_percent,
        min_commission=min_commission,
        max_commission=max_commission,
    )
    return amount - commission


# ==================== Single vendor split ====================


@dataclass(frozen=True)
class FixedPlatformFee:
    """The platform keeps a fixed fee; the vendor gets the rest."""

    fee: int


@dataclass(frozen=True)
class VendorPercentage:
    """The vendor gets `percentage` of the amount; the platform the remainder."""

    percentage: Number


@dataclass(frozen=True)
class PlatformFeePercentage:
    """The platform keeps `percentage` of the amount, bounded by optional min/max fees."""

    percentage: Number
    min_fee: Optional[int] = None
    max_fee: Optional[int] = None


SplitConfig = Union[FixedPlatformFee, VendorPercentage, PlatformFeePercentage]


@dataclass(frozen=True)
class SplitResult:
    total_amount: int
    vendor_amount: int
    platform_fee: int
    currency: str
    vendor_id: Optional[str] = None


def calculate_split(
    amount: int,
    config: SplitConfig,
    currency: str,
    vendor_id: Optional[str] = None,
) -> SplitResult:
    """
    Split a gross amount between a vendor and the platform.

    The platform fee is clamped to `[0, amount]` and the vendor receives
    `amount - platform_fee`, so `vendor_amount + platform_fee == amount`.
    """
    _require_amount(amount)

    if isinstance(config, FixedPlatformFee):
        platform_fee = config.fee
    elif isinstance(config, VendorPercentage):
        _require_percentage(config.percentage, "vendor_percentage")
        platform_fee = amount - percent_of(amount, config.percentage)
    elif isinstance(config, PlatformFeePercentage):
        _require_percentage(config.percentage, "platform_fee_percentage")
        platform_fee = percent_of(amount, config.percentage)
        if config.min_fee is not None:
            platform_fee = max(platform_fee, config.min_fee)
        if config.max_fee is not None:
            platform_fee = min(platform_fee, config.max_fee)
    else:
        raise DomainValidationException(
            f"Unsupported split configuration: {type(config).__name__}",
            field="config",
        )

    platform_fee = _clamp(platform_fee, 0, amount)
    return SplitResult(
        total_amount=amount,
        vendor_amount=amount - platform_fee,
        platform_fee=platform_fee,
        currency=currency,
        vendor_id=vendor_id,
    )


# ==================== Multi vendor split ====================


@dataclass(frozen=True)
class VendorShare:
    """One vendor's share: either a fixed `amount` or a `percentage` of the total."""

    vendor_id: str
    amount: Optional[int] = None
    percentage: Optional[Number] = None

    def __post_init__(self) -> None:
        if (self.amount is None) == (self.percentage is None):
            raise DomainValidationException(
                f"Vendor share for {self.vendor_id!r} needs exactly one of amount or percentage",
                field="shares",
                details={"vendor_id": self.vendor_id},
            )


@dataclass(frozen=True)
class VendorPayoutShare:
    vendor_id: str
    amount: int
    platform_fee: int


@dataclass(frozen=True)
class MultiVendorSplitResult:
    total_amount: int
    vendor_payouts: tuple[VendorPayoutShare, ...]
    platform_fee: int
    currency: str


def _allocate(total: int, weights: Sequence[int]) -> list[int]:
    """Distribute `total` proportionally to `weights` using cumulative rounding.

    Parts are never negative and always sum to `total`.
    """
    weight_sum = sum(weights)
    if not weights or weight_sum == 0:
        return [0] * len(weights)
    parts: list[int] = []
    running_weight = 0
    allocated = 0
    for weight in weights:
        running_weight += weight
        boundary = prorate(total, running_weight, weight_sum)
        parts.append(boundary - allocated)
        allocated = boundary
    return parts


def calculate_multi_vendor_split(
    total_amount: int,
    shares: Sequence[VendorShare],
    currency: str,
    *,
    platform_fee_percentage: Optional[Number] = None,
    min_platform_fee: Optional[int] = None,
) -> MultiVendorSplitResult:
    """
    Split one payment across several vendors.

    Business rules:
    1. Whatever the vendor shares leave unclaimed goes to the platform.
    2. When a platform percentage or minimum fee demands more than that,
       vendor shares are scaled down proportionally.
    3. `sum(vendor amounts) + platform_fee == total_amount`.
    4. The platform fee is attributed back to vendors in proportion to their
       payout (informational `platform_fee` on each payout share).
    """
    _require_amount(total_amount, "total_amount")

    priced: list[tuple[str, int]] = []
    for share in shares:
        if share.amount is not None:
            _require_amount(share.amount, "amount")
            priced.append((share.vendor_id, share.amount))
        else:
            _require_percentage(share.percentage, "percentage")
            priced.append((share.vendor_id, percent_of(total_amount, share.percentage)))

    requested = sum(amount for _, amount in priced)
    if requested > total_amount:
        raise DomainValidationException(
            f"Vendor shares {requested} exceed total amount {total_amount}",
            field="shares",
            details={"requested": requested, "total_amount": total_amount},
        )

    platform_fee = total_amount - requested
    if platform_fee_percentage is not None:
        platform_fee = max(platform_fee, percent_of(total_amount, platform_fee_percentage))
    if min_platform_fee is not None:
        platform_fee = max(platform_fee, min_platform_fee)
    platform_fee = _clamp(platform_fee, 0, total_amount)

    available = total_amount - platform_fee
    if available == requested:
        vendor_amounts = [amount for _, amount in priced]
    else:
        vendor_amounts = _allocate(available, [amount for _, amount in priced])
    # unclaimed cents from an empty share list stay with the platform
    platform_fee = total_amount - sum(vendor_amounts)

    fee_parts = _allocate(platform_fee, vendor_amounts)
    payouts = tuple(
        VendorPayoutShare(vendor_id=vendor_id, amount=amount, platform_fee=fee)
        for (vendor_id, _), amount, fee in zip(priced, vendor_amounts, fee_parts)
    )
    return MultiVendorSplitResult(
        total_amount=total_amount,
        vendor_payouts=payouts,
        platform_fee=platform_fee,
        currency=currency,
    )


# ==================== Revenue shares ====================


@dataclass(frozen=True)
class RevenueShareConfig:
    vendor_rate: Number
    platform_rate: Number
    affiliate_rate: Optional[Number] = None
    referral_rate: Optional[Number] = None


@dataclass(frozen=True)
class RevenueShares:
    vendor_amount: int
    platform_amount: int
    affiliate_amount: int = 0
    referral_amount: int = 0

    @property
    def total(self) -> int:
        return self.vendor_amount + self.platform_amount + self.affiliate_amount + self.referral_amount


def calculate_revenue_shares(
    amount: int,
    config: RevenueShareConfig,
    affiliate_id: Optional[str] = None,
    referral_id: Optional[str] = None,
) -> RevenueShares:
    """
    Split revenue between vendor, platform, and optional affiliate/referral parties.

    Affiliate and referral cuts are taken as a percentage of the full amount,
    only when both the party id and its rate are present. What remains is split
    between vendor and platform in the ratio `vendor_rate : platform_rate`;
    the vendor share is rounded and the platform takes the remainder.
    """
    _require_amount(amount)
    base = to_decimal(config.vendor_rate) + to_decimal(config.platform_rate)
    if config.vendor_rate < 0 or config.platform_rate < 0 or base <= 0:
        raise DomainValidationException(
            "Vendor and platform rates must be non-negative and not both zero",
            field="config",
            details={"vendor_rate": str(config.vendor_rate), "platform_rate": str(config.platform_rate)},
        )

    affiliate_amount = 0
    if affiliate_id and config.affiliate_rate:
        _require_percentage(config.affiliate_rate, "affiliate_rate")
        affiliate_amount = percent_of(amount, config.affiliate_rate)

    referral_amount = 0
    if referral_id and config.referral_rate:
        _require_percentage(config.referral_rate, "referral_rate")
        referral_amount = percent_of(amount, config.referral_rate)

    remaining = amount - affiliate_amount - referral_amount
    if remaining < 0:
        raise DomainValidationException(
            "Affiliate and referral shares exceed the amount",
            field="config",
            details={"affiliate_amount": affiliate_amount, "referral_amount": referral_amount},
        )

    vendor_amount = round_half_up(Decimal(remaining) * to_decimal(config.vendor_rate) / base)
    return RevenueShares(
        vendor_amount=vendor_amount,
        platform_amount=remaining - vendor_amount,
        affiliate_amount=affiliate_amount,
        referral_amount=referral_amount,
    )

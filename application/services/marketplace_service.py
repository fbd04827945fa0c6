"""
Marketplace use-cases: splitting a vendor sale and requesting vendor payouts.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from core.logging_config import billing_context, get_logger
from domain.common.exceptions import IllegalStateTransitionException, PayoutNotEligibleException
from domain.marketplace import (
    DEFAULT_MARKETPLACE_OPTIONS,
    FixedPlatformFee,
    MarketplaceOptions,
    SplitResult,
    Vendor,
    VendorPayout,
    calculate_platform_commission,
    calculate_split,
    check_payout_eligibility,
    create_payout,
    get_payout_period,
    get_vendor_commission_rate,
    mark_payout_failed,
    mark_payout_paid,
    mark_payout_processing,
)


logger = get_logger(__name__)


class MarketplaceService:
    def __init__(self, options: MarketplaceOptions = DEFAULT_MARKETPLACE_OPTIONS) -> None:
        self.options = options

    def split_sale(self, vendor: Vendor, amount: int, currency: str) -> SplitResult:
        """Split a sale using the vendor's commission rate (or the platform default)."""
        rate = get_vendor_commission_rate(vendor, self.options.default_commission_rate)
        fee = calculate_platform_commission(
            amount,
            rate,
            min_commission=self.options.min_commission,
            max_commission=self.options.max_commission,
        )
        result = calculate_split(amount, FixedPlatformFee(fee), currency, vendor.id)
        logger.info(
            "payment_split_calculated",
            vendor_id=vendor.id,
            amount=amount,
            commission_rate=rate,
            platform_fee=result.platform_fee,
            vendor_amount=result.vendor_amount,
        )
        return result

    def request_payout(
        self,
        vendor: Vendor,
        pending_amount: int,
        currency: str,
        now: datetime,
        payout_id: Optional[str] = None,
    ) -> VendorPayout:
        with billing_context(vendor_id=vendor.id):
            minimum = vendor.minimum_payout_amount or self.options.default_minimum_payout_amount
            eligibility = check_payout_eligibility(vendor, pending_amount, now, minimum)
            if not eligibility.eligible:
                next_date = eligibility.next_eligible_date.isoformat() if eligibility.next_eligible_date else None
                logger.info(
                    "payout_ineligible",
                    pending_amount=pending_amount,
                    reason=eligibility.reason,
                    next_eligible_date=next_date,
                )
                raise PayoutNotEligibleException(vendor.id, eligibility.reason or "Payout not eligible", next_date)

            period = get_payout_period(vendor.payout_schedule, now)
            payout = create_payout(vendor.id, pending_amount, currency, period, now, payout_id)
            logger.info(
                "payout_created",
                payout_id=payout.id,
                amount=payout.amount,
                period_start=period.start.isoformat(),
                period_end=period.end.isoformat(),
            )
            return payout

    def start_payout(self, payout: VendorPayout) -> VendorPayout:
        updated = mark_payout_processing(payout)
        logger.info("payout_processing", payout_id=payout.id, vendor_id=payout.vendor_id)
        return updated

    def settle_payout(
        self,
        payout: VendorPayout,
        now: datetime,
        provider: Optional[str] = None,
        provider_payout_id: Optional[str] = None,
    ) -> VendorPayout:
        try:
            updated = mark_payout_paid(payout, now, provider, provider_payout_id)
        except IllegalStateTransitionException as exc:
            logger.warning("payout_settle_rejected", payout_id=payout.id, status=payout.status.value, reason=exc.reason)
            raise
        logger.info("payout_paid", payout_id=payout.id, vendor_id=payout.vendor_id, amount=payout.amount, provider=provider)
        return updated

    def fail_payout(self, payout: VendorPayout, reason: Optional[str] = None) -> VendorPayout:
        updated = mark_payout_failed(payout, reason)
        logger.warning("payout_failed", payout_id=payout.id, vendor_id=payout.vendor_id, reason=reason)
        return updated

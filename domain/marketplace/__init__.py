from .commission import (
    FixedPlatformFee,
    MultiVendorSplitResult,
    PlatformFeePercentage,
    RevenueShareConfig,
    RevenueShares,
    SplitConfig,
    SplitResult,
    VendorPayoutShare,
    VendorPercentage,
    VendorShare,
    calculate_multi_vendor_split,
    calculate_platform_commission,
    calculate_revenue_shares,
    calculate_split,
    calculate_vendor_amount,
)
from .entity import (
    PayoutInterval,
    PayoutPeriod,
    PayoutSchedule,
    PayoutStatus,
    Vendor,
    VendorPayout,
    VendorStatus,
)
from .service import (
    DEFAULT_COMMISSION_RATE,
    DEFAULT_MARKETPLACE_OPTIONS,
    MarketplaceOptions,
    PayoutEligibility,
    calculate_pending_earnings,
    calculate_vendor_earnings,
    can_transition_payout,
    check_payout_eligibility,
    create_payout,
    filter_payouts_by_date_range,
    filter_payouts_by_status,
    get_next_payout_date,
    get_payout_period,
    get_vendor_commission_rate,
    is_within_payout_period,
    mark_payout_failed,
    mark_payout_paid,
    mark_payout_processing,
    vendor_can_receive_payments,
    vendor_is_active,
    vendor_is_pending,
    vendor_is_suspended,
)

__all__ = [
    "DEFAULT_COMMISSION_RATE",
    "DEFAULT_MARKETPLACE_OPTIONS",
    "FixedPlatformFee",
    "MarketplaceOptions",
    "MultiVendorSplitResult",
    "PayoutEligibility",
    "PayoutInterval",
    "PayoutPeriod",
    "PayoutSchedule",
    "PayoutStatus",
    "PlatformFeePercentage",
    "RevenueShareConfig",
    "RevenueShares",
    "SplitConfig",
    "SplitResult",
    "Vendor",
    "VendorPayout",
    "VendorPayoutShare",
    "VendorPercentage",
    "VendorShare",
    "VendorStatus",
    "calculate_multi_vendor_split",
    "calculate_pending_earnings",
    "calculate_platform_commission",
    "calculate_revenue_shares",
    "calculate_split",
    "calculate_vendor_amount",
    "calculate_vendor_earnings",
    "can_transition_payout",
    "check_payout_eligibility",
    "create_payout",
    "filter_payouts_by_date_range",
    "filter_payouts_by_status",
    "get_next_payout_date",
    "get_payout_period",
    "get_vendor_commission_rate",
    "is_within_payout_period",
    "mark_payout_failed",
    "mark_payout_paid",
    "mark_payout_processing",
    "vendor_can_receive_payments",
    "vendor_is_active",
    "vendor_is_pending",
    "vendor_is_suspended",
]

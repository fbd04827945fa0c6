from .entity import PromoCode, PromoCodeType, PromoCodeUsage
from .service import (
    REJECTION_MESSAGES,
    AppliedDiscount,
    DiscountCalculation,
    PromoCodeValidation,
    PromoRejection,
    SkippedDiscount,
    StackingMode,
    calculate_discount_amount,
    calculate_discounts,
    calculate_promo_discount,
    deactivate_promo_code,
    get_remaining_uses,
    promo_code_is_exhausted,
    promo_code_is_expired,
    record_promo_usage,
    validate_promo_code,
)

__all__ = [
    "AppliedDiscount",
    "DiscountCalculation",
    "SkippedDiscount",
    "StackingMode",
    "calculate_discounts",
    "PromoCode",
    "PromoCodeType",
    "PromoCodeUsage",
    "PromoCodeValidation",
    "PromoRejection",
    "REJECTION_MESSAGES",
    "calculate_discount_amount",
    "calculate_promo_discount",
    "deactivate_promo_code",
    "get_remaining_uses",
    "promo_code_is_exhausted",
    "promo_code_is_expired",
    "record_promo_usage",
    "validate_promo_code",
]

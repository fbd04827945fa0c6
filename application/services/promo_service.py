"""
Promo code redemption use-case.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from core.logging_config import get_logger
from domain.common.exceptions import PromoCodeRejectedException
from domain.promo import (
    PromoCode,
    PromoCodeUsage,
    calculate_promo_discount,
    record_promo_usage,
    validate_promo_code,
)


logger = get_logger(__name__)


@dataclass(frozen=True)
class PromoRedemption:
    promo_code: PromoCode
    usage: PromoCodeUsage
    discount_amount: int


class PromoService:
    def _require_redeemable(
        self,
        entered_code: str,
        code: Optional[PromoCode],
        customer_id: Optional[str],
        now: datetime,
        usage_history: Iterable[PromoCodeUsage],
        **context,
    ) -> PromoCode:
        result = validate_promo_code(code, customer_id, now, usage_history, **context)
        if result.valid and result.promo_code is not None:
            return result.promo_code
        rejection = result.rejection.value if result.rejection else None
        logger.info("promo_code_rejected", promo_code=entered_code, customer_id=customer_id, rejection=rejection)
        raise PromoCodeRejectedException(entered_code, result.reason or "Promo code rejected", rejection)

    def quote(
        self,
        entered_code: str,
        code: Optional[PromoCode],
        customer_id: Optional[str],
        amount: int,
        now: datetime,
        usage_history: Iterable[PromoCodeUsage] = (),
        *,
        currency: Optional[str] = None,
        plan_id: Optional[str] = None,
        product_ids: Optional[Iterable[str]] = None,
    ) -> int:
        """Discount `code` would give on `amount`; raises when it cannot be redeemed."""
        promo = self._require_redeemable(
            entered_code,
            code,
            customer_id,
            now,
            usage_history,
            currency=currency,
            plan_id=plan_id,
            product_ids=product_ids,
        )
        return calculate_promo_discount(promo, amount)

    def redeem(
        self,
        entered_code: str,
        code: Optional[PromoCode],
        customer_id: str,
        amount: int,
        currency: str,
        now: datetime,
        usage_history: Iterable[PromoCodeUsage] = (),
        *,
        plan_id: Optional[str] = None,
        product_ids: Optional[Iterable[str]] = None,
    ) -> PromoRedemption:
        promo = self._require_redeemable(
            entered_code,
            code,
            customer_id,
            now,
            usage_history,
            currency=currency,
            plan_id=plan_id,
            product_ids=product_ids,
        )
        discount = calculate_promo_discount(promo, amount)
        updated, usage = record_promo_usage(promo, customer_id, discount, currency, now)
        logger.info(
            "promo_code_redeemed",
            promo_code=updated.code,
            customer_id=customer_id,
            discount_amount=discount,
            used_count=updated.used_count,
        )
        return PromoRedemption(promo_code=updated, usage=usage, discount_amount=discount)

"""
Promo code evaluation.

Redeemability is decided from the code, the customer, an explicit `now`
and the customer's usage history; persistence of usages is the caller's job.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Iterable, Optional, Sequence

from domain.common.dates import ensure_utc
from domain.common.exceptions import DomainValidationException, IllegalStateTransitionException
from domain.common.money import percent_of
from .entity import PromoCode, PromoCodeType, PromoCodeUsage


class PromoRejection(str, Enum):
    NOT_FOUND = "not_found"
    INACTIVE = "inactive"
    EXPIRED = "expired"
    NOT_STARTED = "not_started"
    NEW_CUSTOMERS_ONLY = "new_customers_only"
    PER_CUSTOMER_LIMIT = "per_customer_limit"
    MAX_USES = "max_uses"
    CURRENCY_MISMATCH = "currency_mismatch"
    PLAN_NOT_APPLICABLE = "plan_not_applicable"
    PRODUCT_NOT_APPLICABLE = "product_not_applicable"


REJECTION_MESSAGES: dict[PromoRejection, str] = {
    PromoRejection.NOT_FOUND: "Promo code not found",
    PromoRejection.INACTIVE: "Promo code is not active",
    PromoRejection.EXPIRED: "Promo code has expired",
    PromoRejection.NOT_STARTED: "Promo code is not yet valid",
    PromoRejection.NEW_CUSTOMERS_ONLY: "Promo code is valid for new customers only",
    PromoRejection.PER_CUSTOMER_LIMIT: "Promo code usage limit per customer reached",
    PromoRejection.MAX_USES: "Promo code has reached maximum uses",
    PromoRejection.CURRENCY_MISMATCH: "Promo code is not valid for this currency",
    PromoRejection.PLAN_NOT_APPLICABLE: "Promo code is not valid for this plan",
    PromoRejection.PRODUCT_NOT_APPLICABLE: "Promo code is not valid for these products",
}


@dataclass(frozen=True)
class PromoCodeValidation:
    valid: bool
    reason: Optional[str] = None
    rejection: Optional[PromoRejection] = None
    promo_code: Optional[PromoCode] = None

    @classmethod
    def reject(
        cls,
        rejection: PromoRejection,
        promo_code: Optional[PromoCode] = None,
        reason: Optional[str] = None,
    ) -> "PromoCodeValidation":
        return cls(
            valid=False,
            reason=reason or REJECTION_MESSAGES[rejection],
            rejection=rejection,
            promo_code=promo_code,
        )

    def __bool__(self) -> bool:
        return self.valid


def validate_promo_code(
    code: Optional[PromoCode],
    customer_id: Optional[str],
    now: datetime,
    usage_history: Iterable[PromoCodeUsage] = (),
    *,
    currency: Optional[str] = None,
    plan_id: Optional[str] = None,
    product_ids: Optional[Iterable[str]] = None,
) -> PromoCodeValidation:
    """
    Decide whether `code` is redeemable by `customer_id` at `now`.

    Checks run in priority order and the first failure wins:
    not found -> inactive -> expired -> not yet started -> new customers only
    -> per-customer limit -> global max uses -> currency -> plan -> products.

    `usage_history` is the customer's redemption history (any code). Customer
    checks are skipped when no customer is given; the currency, plan and
    product checks are skipped when the purchase context omits them.
    """
    if code is None:
        return PromoCodeValidation.reject(PromoRejection.NOT_FOUND)

    if not code.active:
        return PromoCodeValidation.reject(PromoRejection.INACTIVE, code)

    moment = ensure_utc(now)
    if code.expires_at is not None and moment > code.expires_at:
        return PromoCodeValidation.reject(PromoRejection.EXPIRED, code)

    if code.starts_at is not None and moment < code.starts_at:
        return PromoCodeValidation.reject(PromoRejection.NOT_STARTED, code)

    if customer_id:
        customer_usages = [u for u in usage_history if u.customer_id == customer_id]

        if code.new_customers_only and customer_usages:
            return PromoCodeValidation.reject(PromoRejection.NEW_CUSTOMERS_ONLY, code)

        if code.max_per_customer is not None:
            used_by_customer = sum(1 for u in customer_usages if u.promo_code_id == code.id)
            if used_by_customer >= code.max_per_customer:
                return PromoCodeValidation.reject(PromoRejection.PER_CUSTOMER_LIMIT, code)

    if promo_code_is_exhausted(code):
        return PromoCodeValidation.reject(PromoRejection.MAX_USES, code)

    if (
        currency
        and code.type == PromoCodeType.FIXED_AMOUNT
        and code.currency is not None
        and code.currency != currency.upper()
    ):
        return PromoCodeValidation.reject(
            PromoRejection.CURRENCY_MISMATCH,
            code,
            f"Promo code is only valid for {code.currency} currency",
        )

    if plan_id and code.applicable_plan_ids and plan_id not in code.applicable_plan_ids:
        return PromoCodeValidation.reject(PromoRejection.PLAN_NOT_APPLICABLE, code)

    if product_ids is not None and code.applicable_product_ids:
        if code.applicable_product_ids.isdisjoint(product_ids):
            return PromoCodeValidation.reject(PromoRejection.PRODUCT_NOT_APPLICABLE, code)

    return PromoCodeValidation(valid=True, promo_code=code)


def calculate_discount_amount(promo_type: PromoCodeType, value: int, amount: int) -> int:
    """
    Discount produced by a promo of `promo_type`/`value` on `amount`.

    Percentage: `round(amount * value / 100)` with value clamped to 0-100.
    Fixed amount: `min(value, amount)`, never more than the amount discounted.
    """
    if amount < 0:
        raise DomainValidationException(f"Amount cannot be negative: {amount}", field="amount")
    promo_type = PromoCodeType(promo_type)
    if promo_type == PromoCodeType.PERCENTAGE:
        return percent_of(amount, min(100, max(0, value)))
    return min(amount, max(0, value))


def calculate_promo_discount(code: PromoCode, amount: int) -> int:
    return calculate_discount_amount(code.type, code.value, amount)


def promo_code_is_expired(code: PromoCode, now: datetime) -> bool:
    return code.expires_at is not None and ensure_utc(now) > code.expires_at


def promo_code_is_exhausted(code: PromoCode) -> bool:
    return code.max_uses is not None and code.used_count >= code.max_uses


def get_remaining_uses(code: PromoCode) -> Optional[int]:
    if code.max_uses is None:
        return None
    return max(0, code.max_uses - code.used_count)


def record_promo_usage(
    code: PromoCode,
    customer_id: str,
    discount_amount: int,
    currency: str,
    now: datetime,
    usage_id: Optional[str] = None,
) -> tuple[PromoCode, PromoCodeUsage]:
    """
    Register one redemption.

    Returns the code with `used_count` incremented together with the usage
    record, so both stay in step. Recording beyond `max_uses` is refused.
    """
    if promo_code_is_exhausted(code):
        raise IllegalStateTransitionException(
            "promo_code",
            f"used_count={code.used_count}",
            f"used_count={code.used_count + 1}",
            REJECTION_MESSAGES[PromoRejection.MAX_USES],
        )
    if discount_amount < 0:
        raise DomainValidationException(
            f"Discount amount cannot be negative: {discount_amount}",
            field="discount_amount",
        )
    usage = PromoCodeUsage(
        id=usage_id or f"pcu_{uuid.uuid4().hex}",
        promo_code_id=code.id,
        customer_id=customer_id,
        discount_amount=discount_amount,
        currency=currency.upper(),
        used_at=now,
    )
    return replace(code, used_count=code.used_count + 1), usage


def deactivate_promo_code(code: PromoCode) -> PromoCode:
    if not code.active:
        return code
    return replace(code, active=False)


# ==================== Stacking ====================


class StackingMode(str, Enum):
    NONE = "none"
    BEST = "best"
    ADDITIVE = "additive"
    MULTIPLICATIVE = "multiplicative"


@dataclass(frozen=True)
class AppliedDiscount:
    promo_code_id: str
    code: str
    discount_amount: int


@dataclass(frozen=True)
class SkippedDiscount:
    code: str
    reason: str


@dataclass(frozen=True)
class DiscountCalculation:
    original_amount: int
    discount_amount: int
    final_amount: int
    applied: tuple[AppliedDiscount, ...] = ()
    skipped: tuple[SkippedDiscount, ...] = ()


def _applied(code: PromoCode, amount: int) -> AppliedDiscount:
    return AppliedDiscount(promo_code_id=code.id, code=code.code, discount_amount=calculate_promo_discount(code, amount))


def calculate_discounts(
    amount: int,
    codes: Sequence[PromoCode],
    now: datetime,
    *,
    stacking_mode: StackingMode = StackingMode.BEST,
    customer_id: Optional[str] = None,
    usage_history: Iterable[PromoCodeUsage] = (),
    currency: Optional[str] = None,
    plan_id: Optional[str] = None,
    product_ids: Optional[Iterable[str]] = None,
) -> DiscountCalculation:
    """
    Combine several promo codes on one `amount`.

    Codes failing `validate_promo_code` are skipped with their rejection
    reason. The remaining codes combine per `stacking_mode`:

    - none: only the first valid code applies
    - best: only the largest discount applies (earliest wins ties)
    - additive: stackable discounts on `amount` are summed, capped at `amount`
    - multiplicative: stackable discounts apply one after another to what
      is left

    Codes with `stackable=False` are skipped in the additive and
    multiplicative modes.
    """
    if amount < 0:
        raise DomainValidationException(f"Amount cannot be negative: {amount}", field="amount")
    stacking_mode = StackingMode(stacking_mode)
    history = tuple(usage_history)
    products = tuple(product_ids) if product_ids is not None else None

    applied: list[AppliedDiscount] = []
    skipped: list[SkippedDiscount] = []
    valid: list[PromoCode] = []
    for code in codes:
        result = validate_promo_code(
            code,
            customer_id,
            now,
            history,
            currency=currency,
            plan_id=plan_id,
            product_ids=products,
        )
        if result.valid:
            valid.append(code)
        else:
            skipped.append(SkippedDiscount(code.code, result.reason or "Invalid"))

    discount = 0
    if stacking_mode == StackingMode.NONE and valid:
        first, rest = valid[0], valid[1:]
        applied.append(_applied(first, amount))
        skipped.extend(SkippedDiscount(code.code, "Discount stacking not allowed") for code in rest)
        discount = applied[0].discount_amount
    elif stacking_mode == StackingMode.BEST and valid:
        candidates = [_applied(code, amount) for code in valid]
        best = candidates[0]
        for candidate in candidates[1:]:
            if candidate.discount_amount > best.discount_amount:
                best = candidate
        applied.append(best)
        skipped.extend(SkippedDiscount(c.code, "Better discount applied") for c in candidates if c is not best)
        discount = best.discount_amount
    elif stacking_mode == StackingMode.ADDITIVE:
        for code in valid:
            if not code.stackable:
                skipped.append(SkippedDiscount(code.code, "Promo code does not allow stacking"))
                continue
            applied.append(_applied(code, amount))
        discount = min(amount, sum(a.discount_amount for a in applied))
    elif stacking_mode == StackingMode.MULTIPLICATIVE:
        remaining = amount
        for code in valid:
            if not code.stackable:
                skipped.append(SkippedDiscount(code.code, "Promo code does not allow stacking"))
                continue
            if remaining == 0:
                skipped.append(SkippedDiscount(code.code, "Nothing left to discount"))
                continue
            step = _applied(code, remaining)
            applied.append(step)
            remaining -= step.discount_amount
        discount = amount - remaining

    return DiscountCalculation(
        original_amount=amount,
        discount_amount=discount,
        final_amount=max(0, amount - discount),
        applied=tuple(applied),
        skipped=tuple(skipped),
    )

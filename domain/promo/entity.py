"""
Promo code entities.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, FrozenSet, Mapping, Optional

from domain.common.dates import ensure_utc
from domain.common.exceptions import DomainValidationException


class PromoCodeType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED_AMOUNT = "fixed_amount"


@dataclass(frozen=True)
class PromoCode:
    """
    Redeemable discount code.

    Business rules:
    1. `used_count` equals the number of usage records for the code
    2. A code is redeemable only while active, inside its date window,
       and below its usage limits
    3. Percentage values are 0-100; fixed amounts are minor units
    4. A fixed amount code with a `currency` only applies in that currency
    5. Empty applicable plan/product sets mean the code applies to anything
    """

    id: str
    code: str
    type: PromoCodeType
    value: int
    active: bool = True
    used_count: int = 0
    max_uses: Optional[int] = None
    max_per_customer: Optional[int] = None
    starts_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    new_customers_only: bool = False
    currency: Optional[str] = None
    applicable_plan_ids: FrozenSet[str] = frozenset()
    applicable_product_ids: FrozenSet[str] = frozenset()
    stackable: bool = True
    created_at: Optional[datetime] = None
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "type", PromoCodeType(self.type))
        object.__setattr__(self, "starts_at", ensure_utc(self.starts_at))
        object.__setattr__(self, "expires_at", ensure_utc(self.expires_at))
        object.__setattr__(self, "created_at", ensure_utc(self.created_at))
        object.__setattr__(self, "currency", self.currency.upper() if self.currency else None)
        object.__setattr__(self, "applicable_plan_ids", frozenset(self.applicable_plan_ids))
        object.__setattr__(self, "applicable_product_ids", frozenset(self.applicable_product_ids))
        if not self.code or not self.code.strip():
            raise DomainValidationException("Promo code must not be empty", field="code")
        if self.value < 0:
            raise DomainValidationException(f"Promo value cannot be negative: {self.value}", field="value")
        if self.type == PromoCodeType.PERCENTAGE and self.value > 100:
            raise DomainValidationException(
                f"Percentage promo value must not exceed 100: {self.value}",
                field="value",
            )
        if self.used_count < 0:
            raise DomainValidationException(f"Used count cannot be negative: {self.used_count}", field="used_count")


@dataclass(frozen=True)
class PromoCodeUsage:
    """One redemption of a promo code."""

    id: str
    promo_code_id: str
    customer_id: str
    discount_amount: int
    currency: str
    used_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "used_at", ensure_utc(self.used_at))

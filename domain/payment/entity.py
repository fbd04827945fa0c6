"""
Payment entity - one charge attempt against a customer.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional

from domain.common.dates import ensure_utc
from domain.common.exceptions import DomainValidationException


class PaymentStatus(str, Enum):
    """Payment status"""
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    REFUNDED = "refunded"
    PARTIALLY_REFUNDED = "partially_refunded"


# statuses that prove the customer was successfully charged
SETTLED_PAYMENT_STATUSES = frozenset(
    {PaymentStatus.SUCCEEDED, PaymentStatus.REFUNDED, PaymentStatus.PARTIALLY_REFUNDED}
)


@dataclass(frozen=True)
class Payment:
    """
    Payment snapshot.

    Business rules:
    1. Amount is a positive integer in minor units
    2. Currency is a 3-letter code
    3. created_at orders the failure history used for retries
    """

    id: str
    customer_id: str
    amount: int
    currency: str
    status: PaymentStatus
    created_at: datetime
    subscription_id: Optional[str] = None
    invoice_id: Optional[str] = None
    failure_code: Optional[str] = None
    failure_message: Optional[str] = None
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "status", PaymentStatus(self.status))
        object.__setattr__(self, "created_at", ensure_utc(self.created_at))
        self._validate_amount()
        self._validate_currency()

    def _validate_amount(self) -> None:
        """Business rule: amount must be greater than 0"""
        if isinstance(self.amount, bool) or not isinstance(self.amount, int) or self.amount <= 0:
            raise DomainValidationException(
                f"Payment amount must be a positive integer: {self.amount!r}",
                field="amount",
            )

    def _validate_currency(self) -> None:
        """Business rule: currency code must be 3 letters"""
        if not self.currency or len(self.currency) != 3 or not self.currency.isalpha():
            raise DomainValidationException(
                f"Invalid currency code: {self.currency}",
                field="currency",
            )
        object.__setattr__(self, "currency", self.currency.upper())

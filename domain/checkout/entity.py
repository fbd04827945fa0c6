"""Checkout session entity - an ephemeral cart awaiting payment."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional, Sequence

from domain.common.dates import ensure_utc


class CheckoutMode(str, Enum):
    PAYMENT = "payment"
    SUBSCRIPTION = "subscription"


class CheckoutStatus(str, Enum):
    OPEN = "open"
    COMPLETE = "complete"
    EXPIRED = "expired"


@dataclass(frozen=True)
class CheckoutLineItem:
    price_id: str
    quantity: int = 1


@dataclass(frozen=True)
class CheckoutPrice:
    """Price lookup entry used to total a cart."""

    id: str
    unit_amount: int
    currency: str


@dataclass(frozen=True)
class CreateCheckoutInput:
    mode: CheckoutMode
    line_items: Sequence[CheckoutLineItem]
    success_url: str
    cancel_url: str
    customer_id: Optional[str] = None
    customer_email: Optional[str] = None
    expires_in_minutes: Optional[int] = None
    metadata: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class CheckoutSession:
    """
    Checkout session snapshot.

    Business rules:
    1. Only an open session that has not reached `expires_at` is usable
    2. complete and expired are terminal
    3. Line items are keyed by price_id; a price appears at most once
    """

    id: str
    mode: CheckoutMode
    currency: str
    line_items: Sequence[CheckoutLineItem]
    success_url: str
    cancel_url: str
    expires_at: datetime
    created_at: datetime
    status: CheckoutStatus = CheckoutStatus.OPEN
    customer_id: Optional[str] = None
    customer_email: Optional[str] = None
    payment_id: Optional[str] = None
    subscription_id: Optional[str] = None
    provider_session_ids: Mapping[str, str] = field(default_factory=dict)
    metadata: Mapping[str, Any] = field(default_factory=dict)
    livemode: bool = True
    completed_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "mode", CheckoutMode(self.mode))
        object.__setattr__(self, "status", CheckoutStatus(self.status))
        object.__setattr__(self, "line_items", tuple(self.line_items))
        object.__setattr__(self, "expires_at", ensure_utc(self.expires_at))
        object.__setattr__(self, "created_at", ensure_utc(self.created_at))
        object.__setattr__(self, "completed_at", ensure_utc(self.completed_at))

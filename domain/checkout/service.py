"""
Checkout domain service - session lifecycle, cart mutation and URL helpers.

Lifecycle:
    open --complete--> complete
    open --expire (explicit, or on read once now >= expires_at)--> expired
"""
from __future__ import annotations

import math
import uuid
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Mapping, Optional, Sequence
from urllib.parse import parse_qs, parse_qsl, urlencode, urlsplit, urlunsplit

from domain.common.dates import ensure_utc
from domain.common.exceptions import DomainValidationException, IllegalStateTransitionException
from domain.common.money import Number, percent_of
from domain.common.results import TransitionCheck, ValidationResult
from shared.codes import BusinessCode
from .entity import (
    CheckoutLineItem,
    CheckoutMode,
    CheckoutPrice,
    CheckoutSession,
    CheckoutStatus,
    CreateCheckoutInput,
)

SESSION_ID_PARAM = "session_id"
CANCELED_PARAM = "canceled"


@dataclass(frozen=True)
class CheckoutOptions:
    default_expiration_minutes: int = 30
    require_customer: bool = False
    allowed_modes: Optional[frozenset[CheckoutMode]] = None


DEFAULT_CHECKOUT_OPTIONS = CheckoutOptions()


@dataclass(frozen=True)
class CheckoutTotals:
    subtotal: int
    discount: int
    tax: int
    total: int
    currency: str


# ==================== Session creation ====================


def new_checkout_session_id() -> str:
    return f"cs_{uuid.uuid4().hex}"


def create_checkout_session(
    data: CreateCheckoutInput,
    now: datetime,
    options: CheckoutOptions = DEFAULT_CHECKOUT_OPTIONS,
    *,
    currency: str = "USD",
    livemode: bool = True,
    session_id: Optional[str] = None,
) -> CheckoutSession:
    """Open a session expiring `expires_in_minutes` (or the default) after `now`."""
    minutes = data.expires_in_minutes if data.expires_in_minutes is not None else options.default_expiration_minutes
    if minutes <= 0:
        raise DomainValidationException(f"Expiration must be positive: {minutes}", field="expires_in_minutes")
    created_at = ensure_utc(now)
    return CheckoutSession(
        id=session_id or new_checkout_session_id(),
        mode=data.mode,
        currency=currency.upper(),
        line_items=tuple(data.line_items),
        success_url=data.success_url,
        cancel_url=data.cancel_url,
        expires_at=created_at + timedelta(minutes=minutes),
        created_at=created_at,
        status=CheckoutStatus.OPEN,
        customer_id=data.customer_id,
        customer_email=data.customer_email,
        metadata=dict(data.metadata),
        livemode=livemode,
    )


# ==================== Status ====================


def checkout_is_expired(session: CheckoutSession, now: datetime) -> bool:
    return session.status == CheckoutStatus.EXPIRED or ensure_utc(now) >= session.expires_at


def checkout_is_open(session: CheckoutSession, now: datetime) -> bool:
    return session.status == CheckoutStatus.OPEN and ensure_utc(now) < session.expires_at


def checkout_is_complete(session: CheckoutSession) -> bool:
    return session.status == CheckoutStatus.COMPLETE


def get_time_remaining(session: CheckoutSession, now: datetime) -> timedelta:
    return max(timedelta(0), session.expires_at - ensure_utc(now))


def get_minutes_remaining(session: CheckoutSession, now: datetime) -> int:
    return math.ceil(get_time_remaining(session, now).total_seconds() / 60)


# ==================== Validation ====================


def _is_valid_url(url: Optional[str]) -> bool:
    if not url or not isinstance(url, str):
        return False
    try:
        parts = urlsplit(url)
    except ValueError:
        return False
    return bool(parts.scheme) and bool(parts.netloc)


def validate_checkout_input(
    data: CreateCheckoutInput,
    options: CheckoutOptions = DEFAULT_CHECKOUT_OPTIONS,
) -> ValidationResult:
    """Collect every problem with `data`; nothing is raised."""
    errors: list[str] = []

    try:
        mode: Optional[CheckoutMode] = CheckoutMode(data.mode)
    except ValueError:
        mode = None
        errors.append(f"Checkout mode '{data.mode}' is not supported")

    if mode is not None and options.allowed_modes is not None and mode not in options.allowed_modes:
        errors.append(f"Checkout mode '{mode.value}' is not allowed")

    if options.require_customer and not data.customer_id and not data.customer_email:
        errors.append("Customer ID or email is required")

    line_items = list(data.line_items or ())
    if not line_items:
        errors.append("At least one line item is required")

    for index, item in enumerate(line_items, start=1):
        if not item.price_id or not str(item.price_id).strip():
            errors.append(f"Line item {index}: Price ID is required")
        if not isinstance(item.quantity, int) or isinstance(item.quantity, bool) or item.quantity < 1:
            errors.append(f"Line item {index}: Quantity must be at least 1")

    if not data.success_url:
        errors.append("Success URL is required")
    elif not _is_valid_url(data.success_url):
        errors.append("Success URL is not a valid URL")

    if not data.cancel_url:
        errors.append("Cancel URL is required")
    elif not _is_valid_url(data.cancel_url):
        errors.append("Cancel URL is not a valid URL")

    if mode == CheckoutMode.SUBSCRIPTION and len(line_items) != 1:
        errors.append("Subscription mode requires exactly one line item")

    return ValidationResult.from_errors(errors)


# ==================== Transitions ====================


def can_complete_checkout(session: CheckoutSession, now: datetime) -> TransitionCheck:
    if session.status != CheckoutStatus.OPEN:
        return TransitionCheck.deny(f"Cannot complete checkout: session is {session.status.value}")
    if checkout_is_expired(session, now):
        return TransitionCheck.deny("Cannot complete checkout: session has expired")
    return TransitionCheck.allow()


def complete_checkout(
    session: CheckoutSession,
    now: datetime,
    payment_id: Optional[str] = None,
    subscription_id: Optional[str] = None,
) -> CheckoutSession:
    """Mark the session complete; a subscription id is kept only in subscription mode."""
    check = can_complete_checkout(session, now)
    if not check.allowed:
        raise IllegalStateTransitionException(
            "checkout_session",
            session.status.value,
            CheckoutStatus.COMPLETE.value,
            check.error,
            code=BusinessCode.CHECKOUT_NOT_COMPLETABLE,
        )
    keep_subscription = session.mode == CheckoutMode.SUBSCRIPTION and subscription_id is not None
    return replace(
        session,
        status=CheckoutStatus.COMPLETE,
        payment_id=payment_id or session.payment_id,
        subscription_id=subscription_id if keep_subscription else session.subscription_id,
        completed_at=ensure_utc(now),
    )


def expire_checkout(session: CheckoutSession) -> CheckoutSession:
    if session.status == CheckoutStatus.EXPIRED:
        return session
    if session.status == CheckoutStatus.COMPLETE:
        raise IllegalStateTransitionException(
            "checkout_session",
            session.status.value,
            CheckoutStatus.EXPIRED.value,
            "Completed checkout sessions cannot expire",
        )
    return replace(session, status=CheckoutStatus.EXPIRED)


def refresh_checkout_status(session: CheckoutSession, now: datetime) -> CheckoutSession:
    """Expire-on-read: an open session past `expires_at` becomes expired."""
    if session.status == CheckoutStatus.OPEN and ensure_utc(now) >= session.expires_at:
        return replace(session, status=CheckoutStatus.EXPIRED)
    return session


def add_provider_session(session: CheckoutSession, provider: str, provider_session_id: str) -> CheckoutSession:
    provider_session_ids = dict(session.provider_session_ids)
    provider_session_ids[provider] = provider_session_id
    return replace(session, provider_session_ids=provider_session_ids)


# ==================== Line items ====================


def _require_open_cart(session: CheckoutSession) -> None:
    if session.status != CheckoutStatus.OPEN:
        raise IllegalStateTransitionException(
            "checkout_session",
            session.status.value,
            session.status.value,
            f"Cannot modify line items: session is {session.status.value}",
        )


def add_line_item(session: CheckoutSession, item: CheckoutLineItem) -> CheckoutSession:
    """Add `item`; an existing price_id has its quantity increased instead."""
    _require_open_cart(session)
    if item.quantity < 1:
        raise DomainValidationException(f"Quantity must be at least 1: {item.quantity}", field="quantity")

    items = list(session.line_items)
    for index, existing in enumerate(items):
        if existing.price_id == item.price_id:
            items[index] = replace(existing, quantity=existing.quantity + item.quantity)
            return replace(session, line_items=tuple(items))
    items.append(item)
    return replace(session, line_items=tuple(items))


def remove_line_item(session: CheckoutSession, price_id: str) -> CheckoutSession:
    _require_open_cart(session)
    return replace(session, line_items=tuple(i for i in session.line_items if i.price_id != price_id))


def update_line_item_quantity(session: CheckoutSession, price_id: str, quantity: int) -> CheckoutSession:
    """Set the quantity for `price_id`; anything below 1 removes the item."""
    if quantity < 1:
        return remove_line_item(session, price_id)
    _require_open_cart(session)
    return replace(
        session,
        line_items=tuple(
            replace(item, quantity=quantity) if item.price_id == price_id else item
            for item in session.line_items
        ),
    )


def get_total_quantity(session: CheckoutSession) -> int:
    return sum(item.quantity for item in session.line_items)


# ==================== Customer ====================


def set_checkout_customer(
    session: CheckoutSession,
    customer_id: str,
    customer_email: Optional[str] = None,
) -> CheckoutSession:
    return replace(
        session,
        customer_id=customer_id,
        customer_email=customer_email if customer_email is not None else session.customer_email,
    )


def checkout_has_customer(session: CheckoutSession) -> bool:
    return session.customer_id is not None


# ==================== Totals ====================


def calculate_checkout_totals(
    line_items: Sequence[CheckoutLineItem],
    prices: Mapping[str, CheckoutPrice],
    discount_amount: int = 0,
    tax_rate: Number = 0,
    currency: str = "USD",
) -> CheckoutTotals:
    """
    Total a cart from a price lookup.

    The discount is capped at the subtotal and tax (percent) applies to the
    discounted amount. Unknown prices and mixed currencies are rejected.
    """
    subtotal = 0
    cart_currency: Optional[str] = None
    for item in line_items:
        price = prices.get(item.price_id)
        if price is None:
            raise DomainValidationException(f"Unknown price: {item.price_id}", field="price_id")
        if cart_currency is not None and price.currency.upper() != cart_currency:
            raise DomainValidationException(
                "All line items must share one currency",
                field="currency",
                details={"expected": cart_currency, "got": price.currency},
            )
        cart_currency = price.currency.upper()
        subtotal += price.unit_amount * item.quantity

    discount = min(subtotal, max(0, discount_amount))
    taxable = subtotal - discount
    tax = percent_of(taxable, tax_rate)
    return CheckoutTotals(
        subtotal=subtotal,
        discount=discount,
        tax=tax,
        total=taxable + tax,
        currency=cart_currency or currency.upper(),
    )


# ==================== URL helpers ====================


def _set_query_params(url: str, params: Sequence[tuple[str, str]]) -> str:
    if not _is_valid_url(url):
        raise DomainValidationException(f"Invalid URL: {url}", field="url")
    parts = urlsplit(url)
    query = parse_qsl(parts.query, keep_blank_values=True)
    for key, value in params:
        updated: list[tuple[str, str]] = []
        placed = False
        for existing_key, existing_value in query:
            if existing_key != key:
                updated.append((existing_key, existing_value))
            elif not placed:
                updated.append((key, value))
                placed = True
        if not placed:
            updated.append((key, value))
        query = updated
    return urlunsplit(parts._replace(query=urlencode(query)))


def build_success_url(base_url: str, session_id: str) -> str:
    return _set_query_params(base_url, [(SESSION_ID_PARAM, session_id)])


def build_cancel_url(base_url: str, session_id: str) -> str:
    return _set_query_params(base_url, [(SESSION_ID_PARAM, session_id), (CANCELED_PARAM, "true")])


def extract_session_id_from_url(url: str) -> Optional[str]:
    if not _is_valid_url(url):
        return None
    values = parse_qs(urlsplit(url).query).get(SESSION_ID_PARAM)
    return values[0] if values else None

"""
Application service orchestrating checkout sessions.
"""
from __future__ import annotations

from datetime import datetime
from typing import Mapping, Optional

from core.logging_config import get_logger
from domain.checkout import (
    DEFAULT_CHECKOUT_OPTIONS,
    CheckoutOptions,
    CheckoutPrice,
    CheckoutSession,
    CheckoutStatus,
    CheckoutTotals,
    CreateCheckoutInput,
    build_cancel_url,
    build_success_url,
    calculate_checkout_totals,
    complete_checkout,
    create_checkout_session,
    expire_checkout,
    refresh_checkout_status,
    validate_checkout_input,
)
from domain.common.exceptions import DomainValidationException, IllegalStateTransitionException
from domain.common.money import Number


logger = get_logger(__name__)


class CheckoutService:
    def __init__(self, options: CheckoutOptions = DEFAULT_CHECKOUT_OPTIONS, default_currency: str = "USD") -> None:
        self.options = options
        self.default_currency = default_currency.upper()

    def create_session(
        self,
        data: CreateCheckoutInput,
        now: datetime,
        *,
        currency: Optional[str] = None,
        livemode: bool = True,
        session_id: Optional[str] = None,
    ) -> CheckoutSession:
        result = validate_checkout_input(data, self.options)
        if not result.valid:
            logger.warning("checkout_input_invalid", mode=str(data.mode), errors=list(result.errors))
            raise DomainValidationException(
                result.error or "Invalid checkout input",
                field="checkout",
                details={"errors": list(result.errors)},
            )
        session = create_checkout_session(
            data,
            now,
            self.options,
            currency=currency or self.default_currency,
            livemode=livemode,
            session_id=session_id,
        )
        logger.info(
            "checkout_session_created",
            session_id=session.id,
            mode=session.mode.value,
            items=len(session.line_items),
            expires_at=session.expires_at.isoformat(),
        )
        return session

    def redirect_urls(self, session: CheckoutSession) -> tuple[str, str]:
        """Success and cancel URLs carrying the session id."""
        return build_success_url(session.success_url, session.id), build_cancel_url(session.cancel_url, session.id)

    def complete(
        self,
        session: CheckoutSession,
        now: datetime,
        payment_id: Optional[str] = None,
        subscription_id: Optional[str] = None,
    ) -> CheckoutSession:
        try:
            completed = complete_checkout(session, now, payment_id, subscription_id)
        except IllegalStateTransitionException as exc:
            logger.warning("checkout_complete_rejected", session_id=session.id, status=session.status.value, reason=exc.reason)
            raise
        logger.info(
            "checkout_completed",
            session_id=completed.id,
            payment_id=completed.payment_id,
            subscription_id=completed.subscription_id,
        )
        return completed

    def expire(self, session: CheckoutSession) -> CheckoutSession:
        expired = expire_checkout(session)
        if expired is not session:
            logger.info("checkout_expired", session_id=session.id)
        return expired

    def refresh(self, session: CheckoutSession, now: datetime) -> CheckoutSession:
        refreshed = refresh_checkout_status(session, now)
        if refreshed.status != session.status and refreshed.status == CheckoutStatus.EXPIRED:
            logger.info("checkout_expired", session_id=session.id, expires_at=session.expires_at.isoformat())
        return refreshed

    def totals(
        self,
        session: CheckoutSession,
        prices: Mapping[str, CheckoutPrice],
        discount_amount: int = 0,
        tax_rate: Number = 0,
    ) -> CheckoutTotals:
        return calculate_checkout_totals(session.line_items, prices, discount_amount, tax_rate, session.currency)

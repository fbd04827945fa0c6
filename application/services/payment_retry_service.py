"""
Dunning decisions for failed recurring payments.

The service reads a customer's/subscription's payment history, derives the
retry state and tells the caller what to do next. Scheduling jobs and
sending emails stay with the caller.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Iterable, Optional

from core.logging_config import billing_context, get_logger
from domain.common.dates import ensure_utc
from domain.payment import (
    DEFAULT_RETRY_CONFIG,
    Payment,
    PaymentRetryConfig,
    RetryPhase,
    RetryState,
    get_retry_state,
    has_access_during_grace,
    should_send_grace_warning,
)


logger = get_logger(__name__)


class DunningAction(str, Enum):
    NONE = "none"
    RETRY_PAYMENT = "retry_payment"
    WAIT_FOR_RETRY = "wait_for_retry"
    AWAIT_GRACE_END = "await_grace_end"
    SUSPEND_ACCESS = "suspend_access"


@dataclass(frozen=True)
class DunningDecision:
    action: DunningAction
    state: Optional[RetryState] = None
    has_access: bool = True
    send_failure_notice: bool = False
    send_grace_warning: bool = False


class PaymentRetryService:
    def __init__(self, config: PaymentRetryConfig = DEFAULT_RETRY_CONFIG) -> None:
        self.config = config

    def get_state(self, payments: Iterable[Payment], now: datetime) -> Optional[RetryState]:
        return get_retry_state(payments, self.config, now)

    def evaluate(
        self,
        payments: Iterable[Payment],
        now: datetime,
        *,
        subscription_status: str = "past_due",
        warnings_sent: Iterable[int] = (),
        last_failure_notified_at: Optional[datetime] = None,
        subject_id: Optional[str] = None,
    ) -> DunningDecision:
        """
        Decide the next dunning step.

        `warnings_sent` lists the days-remaining thresholds already notified
        for the current streak so a warning is never sent twice.
        `last_failure_notified_at` is the failure time covered by the last
        failure notice; a notice is only due for a newer failure.
        """
        with billing_context(subject_id=subject_id):
            return self._evaluate(payments, now, subscription_status, warnings_sent, last_failure_notified_at)

    def _evaluate(
        self,
        payments: Iterable[Payment],
        now: datetime,
        subscription_status: str,
        warnings_sent: Iterable[int],
        last_failure_notified_at: Optional[datetime],
    ) -> DunningDecision:
        state = get_retry_state(payments, self.config, now)
        if state is None:
            logger.debug("payment_retry_evaluated", action=DunningAction.NONE.value)
            return DunningDecision(action=DunningAction.NONE)

        phase = state.phase
        if phase == RetryPhase.EXHAUSTED:
            action = DunningAction.SUSPEND_ACCESS
        elif phase == RetryPhase.GRACE_PERIOD:
            action = DunningAction.AWAIT_GRACE_END
        elif state.next_retry_at is not None and ensure_utc(now) >= state.next_retry_at:
            action = DunningAction.RETRY_PAYMENT
        else:
            action = DunningAction.WAIT_FOR_RETRY

        notified_at = ensure_utc(last_failure_notified_at)
        send_notice = self.config.notify_on_each_failure and (
            notified_at is None or state.last_failure_at > notified_at
        )
        send_warning = phase != RetryPhase.EXHAUSTED and should_send_grace_warning(
            state.grace_days_remaining, self.config, warnings_sent
        )
        decision = DunningDecision(
            action=action,
            state=state,
            has_access=has_access_during_grace(subscription_status, state),
            send_failure_notice=send_notice,
            send_grace_warning=send_warning,
        )
        logger.info(
            "payment_retry_evaluated",
            action=action.value,
            phase=phase.value,
            attempt_number=state.attempt_number,
            next_retry_at=state.next_retry_at.isoformat() if state.next_retry_at else None,
            grace_days_remaining=state.grace_days_remaining,
            has_access=decision.has_access,
            send_failure_notice=send_notice,
        )
        if action == DunningAction.SUSPEND_ACCESS:
            logger.warning("payment_grace_expired", grace_ends_at=state.grace_ends_at.isoformat())
        return decision

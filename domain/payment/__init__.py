from .entity import SETTLED_PAYMENT_STATUSES, Payment, PaymentStatus
from .retry import (
    DEFAULT_RETRY_CONFIG,
    PaymentRetryConfig,
    RetryPhase,
    RetryState,
    calculate_grace_end_date,
    calculate_next_retry_date,
    create_payment_retry_config,
    get_grace_days_remaining,
    get_retry_state,
    has_access_during_grace,
    is_grace_period_expired,
    should_send_grace_warning,
)
from .service import (
    MAX_PAYMENT_AMOUNT,
    calculate_remaining_amount,
    is_full_refund,
    payment_failed,
    payment_failure_reason,
    payment_is_pending,
    payment_is_refundable,
    payment_succeeded,
    payment_was_refunded,
    validate_payment_amount,
    validate_refund_amount,
)

__all__ = [
    "DEFAULT_RETRY_CONFIG",
    "MAX_PAYMENT_AMOUNT",
    "Payment",
    "PaymentRetryConfig",
    "PaymentStatus",
    "RetryPhase",
    "RetryState",
    "SETTLED_PAYMENT_STATUSES",
    "calculate_grace_end_date",
    "calculate_next_retry_date",
    "calculate_remaining_amount",
    "create_payment_retry_config",
    "get_grace_days_remaining",
    "get_retry_state",
    "has_access_during_grace",
    "is_full_refund",
    "is_grace_period_expired",
    "payment_failed",
    "payment_failure_reason",
    "payment_is_pending",
    "payment_is_refundable",
    "payment_succeeded",
    "payment_was_refunded",
    "should_send_grace_warning",
    "validate_payment_amount",
    "validate_refund_amount",
]

"""
Shared business codes used across layers (Domain/Core/Application).

This package exposes BusinessCode at `shared.codes` so the domain layer and
the outer layers agree on one numeric vocabulary for failures.
"""
from enum import IntEnum


class BusinessCode(IntEnum):
    """Unified business status codes (single source of truth)."""

    # Success
    SUCCESS = 0

    # Parameter errors (1xxxx)
    PARAM_ERROR = 10000
    PARAM_MISSING = 10001
    PARAM_TYPE_ERROR = 10002
    PARAM_VALIDATION_ERROR = 10003

    # Business errors (2xxxx)
    BUSINESS_ERROR = 20000
    NOT_FOUND = 20006  # Generic resource not found
    ILLEGAL_STATE_TRANSITION = 20100

    # Billing errors (21xxx)
    INVOICE_NOT_FINALIZABLE = 21000
    INVOICE_NOT_VOIDABLE = 21001
    INVOICE_NOT_MODIFIABLE = 21002
    CHECKOUT_NOT_COMPLETABLE = 21100
    PROMO_CODE_REJECTED = 21200
    PAYOUT_NOT_ELIGIBLE = 21300


__all__ = ["BusinessCode"]

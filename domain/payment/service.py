"""
Payment helpers - status predicates and amount validation.
"""
from __future__ import annotations

from typing import Optional

from domain.common.money import is_integral
from domain.common.results import ValidationResult
from .entity import Payment, PaymentStatus

MAX_PAYMENT_AMOUNT = 99_999_999


def payment_succeeded(payment: Payment) -> bool:
    return payment.status == PaymentStatus.SUCCEEDED


def payment_failed(payment: Payment) -> bool:
    return payment.status == PaymentStatus.FAILED


def payment_is_pending(payment: Payment) -> bool:
    return payment.status == PaymentStatus.PENDING


def payment_is_refundable(payment: Payment) -> bool:
    return payment.status == PaymentStatus.SUCCEEDED


def payment_was_refunded(payment: Payment) -> bool:
    return payment.status in (PaymentStatus.REFUNDED, PaymentStatus.PARTIALLY_REFUNDED)


def payment_failure_reason(payment: Payment) -> Optional[str]:
    if payment.status != PaymentStatus.FAILED:
        return None
    return payment.failure_message or payment.failure_code or "Unknown error"


def is_full_refund(payment: Payment, refund_amount: int) -> bool:
    return refund_amount >= payment.amount


def calculate_remaining_amount(payment: Payment, refund_amount: int) -> int:
    return max(0, payment.amount - refund_amount)


def validate_payment_amount(amount: object) -> ValidationResult:
    """Amount must be a positive integer of minor units no larger than MAX_PAYMENT_AMOUNT."""
    if isinstance(amount, bool) or not isinstance(amount, (int, float)) or amount != amount:
        return ValidationResult.from_errors(["Amount must be a valid number"])
    if amount <= 0:
        return ValidationResult.from_errors(["Amount must be greater than zero"])
    if not is_integral(amount):
        return ValidationResult.from_errors(["Amount must be an integer (in cents)"])
    if amount > MAX_PAYMENT_AMOUNT:
        return ValidationResult.from_errors(["Amount exceeds maximum allowed value"])
    return ValidationResult.ok()


def validate_refund_amount(payment: Payment, refund_amount: object) -> ValidationResult:
    result = validate_payment_amount(refund_amount)
    if not result.valid:
        return result
    if refund_amount > payment.amount:
        return ValidationResult.from_errors(["Refund amount cannot exceed original payment amount"])
    return ValidationResult.ok()

"""Business exceptions for the billing domain.

The domain layer raises these for caller bugs (invalid arguments to a
computation, transitions applied to a state their pre-flight check rejects).
User-facing validation problems are returned as values instead.
"""
from __future__ import annotations

from typing import Optional
from shared.codes import BusinessCode


class BusinessException(Exception):
    """Base business exception"""

    def __init__(
        self,
        code: int,
        message: str,
        error_type: str = "BusinessError",
        details: Optional[dict] = None,
        field: Optional[str] = None,
        message_key: Optional[str] = None,
        format_params: Optional[dict] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.error_type = error_type
        self.details = details
        self.field = field
        self.message_key = message_key
        self.format_params = format_params
        super().__init__(self.message)


class DomainValidationException(BusinessException):
    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        details: dict | None = None,
        message_key: str | None = None,
        format_params: dict | None = None,
    ):
        super().__init__(
            code=BusinessCode.PARAM_VALIDATION_ERROR,
            message=message,
            error_type="DomainValidationError",
            details=details,
            field=field,
            message_key=message_key or "validation.domain",
            format_params=format_params,
        )


class IllegalStateTransitionException(BusinessException):
    """Raised when a transition is applied to a state that does not allow it."""

    def __init__(
        self,
        entity: str,
        current: str,
        target: str,
        reason: Optional[str] = None,
        *,
        code: int = BusinessCode.ILLEGAL_STATE_TRANSITION,
    ):
        details = {"entity": entity, "from": current, "to": target}
        if reason:
            details["reason"] = reason
        super().__init__(
            code=code,
            message=reason or f"Cannot transition {entity} from {current} to {target}",
            error_type="IllegalStateTransition",
            details=details,
            field="status",
            message_key="state.transition.illegal",
            format_params={"entity": entity, "from": current, "to": target},
        )
        self.entity = entity
        self.current = current
        self.target = target
        self.reason = reason


class PromoCodeRejectedException(BusinessException):
    def __init__(self, code: str, reason: str, rejection: Optional[str] = None):
        super().__init__(
            code=BusinessCode.PROMO_CODE_REJECTED,
            message=reason,
            error_type="PromoCodeRejected",
            details={"promo_code": code, "rejection": rejection},
            field="promo_code",
            message_key="promo.rejected",
            format_params={"code": code},
        )
        self.rejection = rejection


class PayoutNotEligibleException(BusinessException):
    def __init__(self, vendor_id: str, reason: str, next_eligible_date: Optional[str] = None):
        details = {"vendor_id": vendor_id}
        if next_eligible_date:
            details["next_eligible_date"] = next_eligible_date
        super().__init__(
            code=BusinessCode.PAYOUT_NOT_ELIGIBLE,
            message=reason,
            error_type="PayoutNotEligible",
            details=details,
            message_key="payout.not_eligible",
            format_params={"vendor_id": vendor_id},
        )

from .exceptions import (
    BusinessException,
    DomainValidationException,
    IllegalStateTransitionException,
    PayoutNotEligibleException,
    PromoCodeRejectedException,
)
from .results import TransitionCheck, ValidationResult

__all__ = [
    "BusinessException",
    "DomainValidationException",
    "IllegalStateTransitionException",
    "PayoutNotEligibleException",
    "PromoCodeRejectedException",
    "TransitionCheck",
    "ValidationResult",
]

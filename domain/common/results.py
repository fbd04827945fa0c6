"""Result values returned by validations and pre-flight transition checks."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    errors: tuple[str, ...] = ()

    @classmethod
    def ok(cls) -> "ValidationResult":
        return cls(valid=True)

    @classmethod
    def from_errors(cls, errors: Iterable[str]) -> "ValidationResult":
        collected = tuple(errors)
        return cls(valid=not collected, errors=collected)

    @property
    def error(self) -> Optional[str]:
        """First error, for callers that surface a single message."""
        return self.errors[0] if self.errors else None

    def __bool__(self) -> bool:
        return self.valid


@dataclass(frozen=True)
class TransitionCheck:
    """Outcome of a `can_*` check; `error` explains a refusal."""

    allowed: bool
    error: Optional[str] = None

    @classmethod
    def allow(cls) -> "TransitionCheck":
        return cls(allowed=True)

    @classmethod
    def deny(cls, error: str) -> "TransitionCheck":
        return cls(allowed=False, error=error)

    def __bool__(self) -> bool:
        return self.allowed

"""Invoice number formatting, e.g. ACME-INV-2024-000042."""
from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Optional

from domain.common.exceptions import DomainValidationException


@dataclass(frozen=True)
class InvoiceNumberConfig:
    prefix: str = "INV"
    include_year: bool = True
    # consumed by whoever allocates sequences; the formatter only prints them
    reset_annually: bool = True
    sequence_digits: int = 6
    separator: str = "-"
    include_tenant_prefix: bool = False

    def __post_init__(self) -> None:
        if self.sequence_digits < 1:
            raise DomainValidationException(
                f"sequence_digits must be at least 1: {self.sequence_digits}",
                field="sequence_digits",
            )


DEFAULT_INVOICE_NUMBER_CONFIG = InvoiceNumberConfig()


def create_invoice_number_config(
    base: InvoiceNumberConfig = DEFAULT_INVOICE_NUMBER_CONFIG,
    **overrides: Any,
) -> InvoiceNumberConfig:
    return replace(base, **overrides)


def generate_invoice_number(
    sequence: int,
    config: InvoiceNumberConfig,
    *,
    tenant_id: Optional[str] = None,
    year: Optional[int] = None,
) -> str:
    """
    Build `[TENANT]{sep}PREFIX{sep}[YEAR]{sep}SEQUENCE`.

    The year must be passed when the config includes it; the sequence is
    zero-padded to `sequence_digits` (longer sequences are never truncated).
    """
    if isinstance(sequence, bool) or not isinstance(sequence, int) or sequence < 0:
        raise DomainValidationException(f"Sequence must be a non-negative integer: {sequence!r}", field="sequence")

    parts: list[str] = []
    if config.include_tenant_prefix and tenant_id:
        parts.append(tenant_id.upper())

    parts.append(config.prefix)

    if config.include_year:
        if year is None:
            raise DomainValidationException("Year is required when include_year is enabled", field="year")
        parts.append(str(year))

    parts.append(str(sequence).zfill(config.sequence_digits))
    return config.separator.join(parts)

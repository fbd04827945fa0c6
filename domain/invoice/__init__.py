from .entity import (
    TERMINAL_INVOICE_STATUSES,
    Invoice,
    InvoiceLine,
    InvoiceLineInput,
    InvoiceStatus,
)
from .numbering import (
    DEFAULT_INVOICE_NUMBER_CONFIG,
    InvoiceNumberConfig,
    create_invoice_number_config,
    generate_invoice_number,
)
from .proration import ProrationResult, calculate_invoice_proration, create_proration_line_items
from .service import (
    InvoiceTotals,
    LineItemCalculation,
    calculate_invoice_totals,
    calculate_line_item_amount,
    can_be_finalized,
    can_be_marked_uncollectible,
    can_be_modified,
    can_be_paid,
    can_be_voided,
    create_draft_invoice,
    create_invoice_lines,
    finalize_invoice,
    get_days_until_due,
    get_invoice_period_days,
    get_invoice_period_description,
    has_outstanding_balance,
    invoice_is_draft,
    invoice_is_open,
    invoice_is_paid,
    invoice_is_uncollectible,
    invoice_is_void,
    is_past_due,
    mark_invoice_paid,
    mark_invoice_uncollectible,
    record_invoice_payment,
    replace_invoice_lines,
    validate_invoice_lines,
    validate_line_item,
    void_invoice,
    with_totals,
)

__all__ = [
    "DEFAULT_INVOICE_NUMBER_CONFIG",
    "Invoice",
    "InvoiceLine",
    "InvoiceLineInput",
    "InvoiceNumberConfig",
    "InvoiceStatus",
    "InvoiceTotals",
    "LineItemCalculation",
    "ProrationResult",
    "TERMINAL_INVOICE_STATUSES",
    "calculate_invoice_proration",
    "calculate_invoice_totals",
    "calculate_line_item_amount",
    "can_be_finalized",
    "can_be_marked_uncollectible",
    "can_be_modified",
    "can_be_paid",
    "can_be_voided",
    "create_draft_invoice",
    "create_invoice_lines",
    "create_invoice_number_config",
    "create_proration_line_items",
    "finalize_invoice",
    "generate_invoice_number",
    "get_days_until_due",
    "get_invoice_period_days",
    "get_invoice_period_description",
    "has_outstanding_balance",
    "invoice_is_draft",
    "invoice_is_open",
    "invoice_is_paid",
    "invoice_is_uncollectible",
    "invoice_is_void",
    "is_past_due",
    "mark_invoice_paid",
    "mark_invoice_uncollectible",
    "record_invoice_payment",
    "replace_invoice_lines",
    "validate_invoice_lines",
    "validate_line_item",
    "void_invoice",
    "with_totals",
]

from .entity import (
    CheckoutLineItem,
    CheckoutMode,
    CheckoutPrice,
    CheckoutSession,
    CheckoutStatus,
    CreateCheckoutInput,
)
from .service import (
    DEFAULT_CHECKOUT_OPTIONS,
    CheckoutOptions,
    CheckoutTotals,
    add_line_item,
    add_provider_session,
    build_cancel_url,
    build_success_url,
    calculate_checkout_totals,
    can_complete_checkout,
    checkout_has_customer,
    checkout_is_complete,
    checkout_is_expired,
    checkout_is_open,
    complete_checkout,
    create_checkout_session,
    expire_checkout,
    extract_session_id_from_url,
    get_minutes_remaining,
    get_time_remaining,
    get_total_quantity,
    refresh_checkout_status,
    remove_line_item,
    set_checkout_customer,
    update_line_item_quantity,
    validate_checkout_input,
)

__all__ = [
    "DEFAULT_CHECKOUT_OPTIONS",
    "CheckoutLineItem",
    "CheckoutMode",
    "CheckoutOptions",
    "CheckoutPrice",
    "CheckoutSession",
    "CheckoutStatus",
    "CheckoutTotals",
    "CreateCheckoutInput",
    "add_line_item",
    "add_provider_session",
    "build_cancel_url",
    "build_success_url",
    "calculate_checkout_totals",
    "can_complete_checkout",
    "checkout_has_customer",
    "checkout_is_complete",
    "checkout_is_expired",
    "checkout_is_open",
    "complete_checkout",
    "create_checkout_session",
    "expire_checkout",
    "extract_session_id_from_url",
    "get_minutes_remaining",
    "get_time_remaining",
    "get_total_quantity",
    "refresh_checkout_status",
    "remove_line_item",
    "set_checkout_customer",
    "update_line_item_quantity",
    "validate_checkout_input",
]

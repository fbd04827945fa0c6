from core.config import Settings, settings

from .checkout_service import CheckoutService
from .invoice_service import InvoiceService
from .marketplace_service import MarketplaceService
from .payment_retry_service import DunningAction, DunningDecision, PaymentRetryService
from .promo_service import PromoRedemption, PromoService


def build_services(cfg: Settings = settings) -> dict:
    """Composition root: services wired with the configured billing policies."""
    billing = cfg.billing
    return {
        "invoice": InvoiceService(billing.invoice_number.to_domain()),
        "payment_retry": PaymentRetryService(billing.retry.to_domain()),
        "checkout": CheckoutService(billing.checkout.to_domain(), billing.checkout.default_currency),
        "promo": PromoService(),
        "marketplace": MarketplaceService(billing.marketplace.to_domain()),
    }


__all__ = [
    "CheckoutService",
    "DunningAction",
    "DunningDecision",
    "InvoiceService",
    "MarketplaceService",
    "PaymentRetryService",
    "PromoRedemption",
    "PromoService",
    "build_services",
]

from datetime import timedelta

import pytest
from structlog.contextvars import get_contextvars

from application.services import marketplace_service, payment_retry_service
from application.services import (
    CheckoutService,
    DunningAction,
    InvoiceService,
    MarketplaceService,
    PaymentRetryService,
    PromoService,
    build_services,
)
from core.config import Settings
from domain.checkout import CheckoutLineItem, CheckoutMode, CheckoutOptions, CheckoutStatus, CreateCheckoutInput
from domain.common.exceptions import (
    DomainValidationException,
    IllegalStateTransitionException,
    PayoutNotEligibleException,
    PromoCodeRejectedException,
)
from domain.invoice import InvoiceLineInput, InvoiceStatus, create_invoice_number_config
from domain.marketplace import MarketplaceOptions, PayoutStatus, Vendor, VendorStatus
from domain.payment import Payment, PaymentStatus, create_payment_retry_config
from domain.promo import PromoCode, PromoCodeType
from shared.codes import BusinessCode


class RecordingLogger:
    """Stands in for a module logger; keeps each event with the id bound at call time."""

    def __init__(self):
        self.events = []

    def _record(self, event, **kw):
        context = get_contextvars()
        self.events.append((event, context.get("subject_id") or context.get("vendor_id")))

    debug = info = warning = _record


def test_build_services_uses_settings():
    cfg = Settings(_env_file=None, billing={"invoice_number": {"prefix": "ACME"}, "retry": {"max_attempts": 2}})
    services = build_services(cfg)
    assert services["invoice"].number_config.prefix == "ACME"
    assert services["payment_retry"].config.max_attempts == 2
    assert isinstance(services["checkout"], CheckoutService)
    assert isinstance(services["promo"], PromoService)
    assert isinstance(services["marketplace"], MarketplaceService)


class TestInvoiceService:
    def test_create_draft_rejects_invalid_lines(self, now):
        svc = InvoiceService()
        with pytest.raises(DomainValidationException) as exc_info:
            svc.create_draft("inv_1", "cus_1", "USD", [InvoiceLineInput("", 1, 100)], now)
        assert exc_info.value.details == {"errors": ["Line 1: Line item description is required"]}

    def test_finalize_assigns_number(self, now):
        svc = InvoiceService(create_invoice_number_config(include_tenant_prefix=True))
        draft = svc.create_draft("inv_1", "cus_1", "USD", [InvoiceLineInput("Pro", 1, 2900)], now, tax_rate=10)
        opened = svc.finalize(draft, 17, now, tenant_id="acme")
        assert opened.status == InvoiceStatus.OPEN
        assert opened.number == "ACME-INV-2024-000017"
        assert opened.total == 3190

        paid = svc.record_payment(opened, 3190, now)
        assert paid.status == InvoiceStatus.PAID
        with pytest.raises(IllegalStateTransitionException):
            svc.void(paid, now)

    def test_finalize_empty_draft_is_rejected(self, now):
        svc = InvoiceService()
        draft = svc.create_draft("inv_1", "cus_1", "USD", [InvoiceLineInput("Free", 1, 0)], now)
        with pytest.raises(IllegalStateTransitionException) as exc_info:
            svc.finalize(draft, 1, now)
        assert exc_info.value.code == BusinessCode.INVOICE_NOT_FINALIZABLE

    def test_apply_plan_change(self, utc):
        svc = InvoiceService()
        start, end = utc(2024, 1, 1), utc(2024, 1, 31)
        draft = svc.create_draft("inv_1", "cus_1", "USD", [InvoiceLineInput("Basic", 1, 1000)], start)
        updated, proration = svc.apply_plan_change(draft, "Basic", "Pro", 1000, 3000, start, end, utc(2024, 1, 16))
        assert (proration.unused_credit, proration.new_plan_prorated, proration.net_amount) == (500, 1500, 1000)
        assert len(updated.lines) == 3
        assert updated.subtotal == 2000
        assert updated.total == 2000

        opened = svc.finalize(updated, 1, utc(2024, 1, 16))
        with pytest.raises(IllegalStateTransitionException):
            svc.apply_plan_change(opened, "Basic", "Pro", 1000, 3000, start, end, utc(2024, 1, 16))

    def test_plan_change_keeps_draft_tax(self, utc):
        svc = InvoiceService()
        start, end = utc(2024, 1, 1), utc(2024, 1, 31)
        draft = svc.create_draft("inv_1", "cus_1", "USD", [InvoiceLineInput("Basic", 1, 1000)], start, tax_rate=10)
        assert draft.tax == 100

        updated, _ = svc.apply_plan_change(draft, "Basic", "Pro", 1000, 3000, start, end, utc(2024, 1, 16))
        assert (updated.subtotal, updated.tax, updated.total) == (2000, 200, 2200)

        overridden, _ = svc.apply_plan_change(draft, "Basic", "Pro", 1000, 3000, start, end, utc(2024, 1, 16), tax_rate=5)
        assert overridden.tax == 100


class TestPaymentRetryService:
    @staticmethod
    def failed(created_at):
        return Payment(
            id=f"pay_{created_at:%d}",
            customer_id="cus_1",
            amount=2900,
            currency="USD",
            status=PaymentStatus.FAILED,
            created_at=created_at,
        )

    def test_no_failures(self, now):
        decision = PaymentRetryService().evaluate([], now)
        assert decision.action == DunningAction.NONE
        assert decision.state is None
        assert decision.has_access

    def test_waits_then_retries(self, utc):
        svc = PaymentRetryService()
        history = [self.failed(utc(2024, 1, 1))]

        waiting = svc.evaluate(history, utc(2024, 1, 1, 12))
        assert waiting.action == DunningAction.WAIT_FOR_RETRY
        assert waiting.state.next_retry_at == utc(2024, 1, 4)
        assert waiting.send_failure_notice

        due = svc.evaluate(history, utc(2024, 1, 4))
        assert due.action == DunningAction.RETRY_PAYMENT
        assert not due.send_grace_warning

    def test_grace_warning_sent_once(self, utc):
        svc = PaymentRetryService()
        history = [self.failed(utc(2024, 1, 1))]
        assert svc.evaluate(history, utc(2024, 1, 6)).send_grace_warning
        assert not svc.evaluate(history, utc(2024, 1, 6), warnings_sent=[2]).send_grace_warning

    def test_suspends_after_grace(self, utc):
        svc = PaymentRetryService()
        history = [self.failed(utc(2024, 1, d)) for d in (1, 2, 3, 4)]

        in_grace = svc.evaluate(history, utc(2024, 1, 5))
        assert in_grace.action == DunningAction.AWAIT_GRACE_END
        assert in_grace.has_access

        suspended = svc.evaluate(history, utc(2024, 1, 8), subscription_status="past_due")
        assert suspended.action == DunningAction.SUSPEND_ACCESS
        assert not suspended.has_access

    def test_failure_notice_only_for_new_failures(self, utc):
        svc = PaymentRetryService()
        first = [self.failed(utc(2024, 1, 1))]
        assert svc.evaluate(first, utc(2024, 1, 2)).send_failure_notice
        assert not svc.evaluate(first, utc(2024, 1, 2), last_failure_notified_at=utc(2024, 1, 1)).send_failure_notice

        second = [*first, self.failed(utc(2024, 1, 4))]
        assert svc.evaluate(second, utc(2024, 1, 4, 1), last_failure_notified_at=utc(2024, 1, 1)).send_failure_notice

        quiet = PaymentRetryService(create_payment_retry_config(notify_on_each_failure=False))
        assert not quiet.evaluate(first, utc(2024, 1, 2)).send_failure_notice

    def test_log_lines_carry_subject_id(self, utc, monkeypatch):
        recorder = RecordingLogger()
        monkeypatch.setattr(payment_retry_service, "logger", recorder)
        PaymentRetryService().evaluate([self.failed(utc(2024, 1, 1))], utc(2024, 1, 2), subject_id="sub_1")
        assert recorder.events == [("payment_retry_evaluated", "sub_1")]
        assert "subject_id" not in get_contextvars()


class TestCheckoutService:
    @staticmethod
    def make_input(**overrides):
        data = dict(
            mode=CheckoutMode.PAYMENT,
            line_items=[CheckoutLineItem("price_1")],
            success_url="https://example.com/ok",
            cancel_url="https://example.com/cancel",
        )
        data.update(overrides)
        return CreateCheckoutInput(**data)

    def test_create_uses_configured_defaults(self, now):
        svc = CheckoutService(CheckoutOptions(default_expiration_minutes=10), "eur")
        session = svc.create_session(self.make_input(), now, session_id="cs_1")
        assert session.currency == "EUR"
        assert session.expires_at == now + timedelta(minutes=10)
        assert svc.redirect_urls(session) == (
            "https://example.com/ok?session_id=cs_1",
            "https://example.com/cancel?session_id=cs_1&canceled=true",
        )

    def test_create_rejects_invalid_input(self, now):
        with pytest.raises(DomainValidationException) as exc_info:
            CheckoutService().create_session(self.make_input(line_items=[]), now)
        assert "At least one line item is required" in exc_info.value.details["errors"]

    def test_complete_and_expire(self, now):
        svc = CheckoutService()
        session = svc.create_session(self.make_input(), now)
        assert svc.complete(session, now, payment_id="pay_1").status == CheckoutStatus.COMPLETE

        late = session.expires_at + timedelta(seconds=1)
        with pytest.raises(IllegalStateTransitionException):
            svc.complete(session, late, payment_id="pay_1")
        assert svc.refresh(session, late).status == CheckoutStatus.EXPIRED
        assert svc.expire(session).status == CheckoutStatus.EXPIRED


class TestPromoService:
    @staticmethod
    def code(**overrides):
        data = dict(id="promo_1", code="WELCOME", type=PromoCodeType.FIXED_AMOUNT, value=500, max_uses=10)
        data.update(overrides)
        return PromoCode(**data)

    def test_redeem(self, now):
        redemption = PromoService().redeem("WELCOME", self.code(), "cus_1", 2000, "USD", now)
        assert redemption.discount_amount == 500
        assert redemption.promo_code.used_count == 1
        assert redemption.usage.customer_id == "cus_1"

    def test_rejected_code_raises(self, now, utc):
        with pytest.raises(PromoCodeRejectedException) as exc_info:
            PromoService().quote("WELCOME", self.code(expires_at=utc(2024, 1, 1)), "cus_1", 2000, now)
        assert exc_info.value.code == BusinessCode.PROMO_CODE_REJECTED
        assert exc_info.value.rejection == "expired"
        assert exc_info.value.message == "Promo code has expired"

    def test_unknown_code(self, now):
        with pytest.raises(PromoCodeRejectedException) as exc_info:
            PromoService().quote("NOPE", None, None, 2000, now)
        assert exc_info.value.details["promo_code"] == "NOPE"

    def test_redeem_checks_cart_currency(self, now):
        with pytest.raises(PromoCodeRejectedException) as exc_info:
            PromoService().redeem("WELCOME", self.code(currency="EUR"), "cus_1", 2000, "USD", now)
        assert exc_info.value.rejection == "currency_mismatch"

        redemption = PromoService().redeem("WELCOME", self.code(currency="EUR"), "cus_1", 2000, "eur", now)
        assert redemption.usage.currency == "EUR"

    def test_quote_checks_plan(self, now):
        code = self.code(applicable_plan_ids={"plan_pro"})
        assert PromoService().quote("WELCOME", code, "cus_1", 2000, now, plan_id="plan_pro") == 500
        with pytest.raises(PromoCodeRejectedException) as exc_info:
            PromoService().quote("WELCOME", code, "cus_1", 2000, now, plan_id="plan_basic")
        assert exc_info.value.rejection == "plan_not_applicable"


class TestMarketplaceService:
    @staticmethod
    def vendor(**overrides):
        data = dict(id="ven_1", name="Acme", status=VendorStatus.ACTIVE, provider_account_ids={"stripe": "acct_1"})
        data.update(overrides)
        return Vendor(**data)

    def test_split_sale_uses_default_rate(self):
        result = MarketplaceService().split_sale(self.vendor(), 10000, "USD")
        assert (result.vendor_amount, result.platform_fee) == (9000, 1000)

        floored = MarketplaceService(MarketplaceOptions(min_commission=1500)).split_sale(self.vendor(), 10000, "USD")
        assert floored.platform_fee == 1500

        custom = MarketplaceService().split_sale(self.vendor(commission_rate=20), 10000, "USD")
        assert custom.vendor_amount == 8000

    def test_request_payout_below_minimum(self, now, utc):
        svc = MarketplaceService(MarketplaceOptions(default_minimum_payout_amount=5000))
        with pytest.raises(PayoutNotEligibleException) as exc_info:
            svc.request_payout(self.vendor(), 1000, "USD", now)
        assert exc_info.value.code == BusinessCode.PAYOUT_NOT_ELIGIBLE
        assert exc_info.value.details["next_eligible_date"] == utc(2024, 2, 1).isoformat()

    def test_payout_logs_carry_vendor_id(self, now, monkeypatch):
        recorder = RecordingLogger()
        monkeypatch.setattr(marketplace_service, "logger", recorder)
        svc = MarketplaceService(MarketplaceOptions(default_minimum_payout_amount=5000))
        with pytest.raises(PayoutNotEligibleException):
            svc.request_payout(self.vendor(), 1000, "USD", now)
        assert recorder.events == [("payout_ineligible", "ven_1")]
        assert "vendor_id" not in get_contextvars()

    def test_payout_flow(self, now, utc):
        svc = MarketplaceService()
        payout = svc.request_payout(self.vendor(), 7500, "USD", now, payout_id="po_1")
        assert payout.period_start == utc(2024, 1, 1)
        processing = svc.start_payout(payout)
        paid = svc.settle_payout(processing, now, "stripe", "tr_1")
        assert paid.status == PayoutStatus.PAID
        with pytest.raises(IllegalStateTransitionException):
            svc.settle_payout(paid, now)
        assert svc.fail_payout(processing, "closed account").status == PayoutStatus.FAILED

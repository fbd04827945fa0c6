from datetime import timedelta

import pytest

from domain.checkout import (
    DEFAULT_CHECKOUT_OPTIONS,
    CheckoutLineItem,
    CheckoutMode,
    CheckoutOptions,
    CheckoutPrice,
    CheckoutStatus,
    CreateCheckoutInput,
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
from domain.common.exceptions import DomainValidationException, IllegalStateTransitionException
from shared.codes import BusinessCode


def make_input(**overrides):
    data = dict(
        mode=CheckoutMode.PAYMENT,
        line_items=[CheckoutLineItem("price_basic", 2)],
        success_url="https://shop.example.com/thanks",
        cancel_url="https://shop.example.com/cart?step=2",
    )
    data.update(overrides)
    return CreateCheckoutInput(**data)


@pytest.fixture
def session(now):
    return create_checkout_session(make_input(), now, session_id="cs_1")


def test_create_session_defaults(session, now):
    assert session.status == CheckoutStatus.OPEN
    assert session.expires_at == now + timedelta(minutes=30)
    assert session.currency == "USD"
    assert session.line_items == (CheckoutLineItem("price_basic", 2),)


def test_custom_expiration(now):
    created = create_checkout_session(make_input(expires_in_minutes=5), now)
    assert created.id.startswith("cs_")
    assert created.expires_at == now + timedelta(minutes=5)


def test_is_open_is_false_from_expiry_even_while_status_open(session):
    expiry = session.expires_at
    assert checkout_is_open(session, expiry - timedelta(seconds=1))
    assert not checkout_is_open(session, expiry)
    assert session.status == CheckoutStatus.OPEN
    assert checkout_is_expired(session, expiry)


def test_time_remaining(session, now):
    assert get_time_remaining(session, now) == timedelta(minutes=30)
    assert get_minutes_remaining(session, now + timedelta(minutes=10, seconds=1)) == 20
    assert get_time_remaining(session, now + timedelta(hours=1)) == timedelta(0)
    assert get_minutes_remaining(session, now + timedelta(hours=1)) == 0


def test_validate_input_accepts_valid():
    assert validate_checkout_input(make_input()).valid


def test_validate_input_collects_errors():
    data = make_input(
        line_items=[CheckoutLineItem("", 1), CheckoutLineItem("price_x", 0)],
        success_url="not a url",
        cancel_url="",
    )
    result = validate_checkout_input(data)
    assert not result.valid
    assert result.errors == (
        "Line item 1: Price ID is required",
        "Line item 2: Quantity must be at least 1",
        "Success URL is not a valid URL",
        "Cancel URL is required",
    )


def test_validate_input_subscription_needs_one_item():
    data = make_input(
        mode=CheckoutMode.SUBSCRIPTION,
        line_items=[CheckoutLineItem("price_a"), CheckoutLineItem("price_b")],
    )
    assert "Subscription mode requires exactly one line item" in validate_checkout_input(data).errors
    assert "At least one line item is required" in validate_checkout_input(make_input(line_items=[])).errors


def test_validate_input_options():
    options = CheckoutOptions(require_customer=True, allowed_modes=frozenset({CheckoutMode.SUBSCRIPTION}))
    result = validate_checkout_input(make_input(), options)
    assert "Checkout mode 'payment' is not allowed" in result.errors
    assert "Customer ID or email is required" in result.errors
    assert validate_checkout_input(make_input(customer_email="a@b.co"), DEFAULT_CHECKOUT_OPTIONS).valid


def test_complete_session(session, now):
    done = complete_checkout(session, now + timedelta(minutes=1), payment_id="pay_1", subscription_id="sub_1")
    assert checkout_is_complete(done)
    assert done.payment_id == "pay_1"
    # payment mode never records a subscription
    assert done.subscription_id is None
    assert done.completed_at == now + timedelta(minutes=1)
    assert can_complete_checkout(done, now).error == "Cannot complete checkout: session is complete"


def test_complete_subscription_session(now):
    sub = create_checkout_session(make_input(mode=CheckoutMode.SUBSCRIPTION), now)
    done = complete_checkout(sub, now, subscription_id="sub_1")
    assert done.subscription_id == "sub_1"


def test_cannot_complete_expired_session(session):
    late = session.expires_at
    check = can_complete_checkout(session, late)
    assert check.error == "Cannot complete checkout: session has expired"
    with pytest.raises(IllegalStateTransitionException) as exc_info:
        complete_checkout(session, late, payment_id="pay_1")
    assert exc_info.value.code == BusinessCode.CHECKOUT_NOT_COMPLETABLE


def test_expire_and_refresh(session, now):
    assert refresh_checkout_status(session, now) is session
    refreshed = refresh_checkout_status(session, session.expires_at)
    assert refreshed.status == CheckoutStatus.EXPIRED

    expired = expire_checkout(session)
    assert expired.status == CheckoutStatus.EXPIRED
    assert expire_checkout(expired) is expired

    done = complete_checkout(session, now)
    with pytest.raises(IllegalStateTransitionException):
        expire_checkout(done)


def test_line_item_mutations(session, now):
    more = add_line_item(session, CheckoutLineItem("price_basic", 1))
    assert more.line_items == (CheckoutLineItem("price_basic", 3),)

    both = add_line_item(more, CheckoutLineItem("price_addon", 2))
    assert get_total_quantity(both) == 5

    updated = update_line_item_quantity(both, "price_addon", 4)
    assert updated.line_items[1].quantity == 4
    assert update_line_item_quantity(updated, "price_addon", 0).line_items == (CheckoutLineItem("price_basic", 3),)
    assert remove_line_item(updated, "price_basic").line_items == (CheckoutLineItem("price_addon", 4),)

    with pytest.raises(DomainValidationException):
        add_line_item(session, CheckoutLineItem("price_basic", 0))
    with pytest.raises(IllegalStateTransitionException):
        add_line_item(expire_checkout(session), CheckoutLineItem("price_basic", 1))


def test_customer_and_provider_sessions(session):
    assert not checkout_has_customer(session)
    with_customer = set_checkout_customer(session, "cus_1", "a@b.co")
    assert checkout_has_customer(with_customer)
    assert with_customer.customer_email == "a@b.co"

    linked = add_provider_session(session, "stripe", "cs_test_1")
    assert linked.provider_session_ids == {"stripe": "cs_test_1"}
    assert session.provider_session_ids == {}


def test_checkout_totals():
    prices = {
        "price_basic": CheckoutPrice("price_basic", 1000, "usd"),
        "price_addon": CheckoutPrice("price_addon", 250, "usd"),
    }
    items = [CheckoutLineItem("price_basic", 2), CheckoutLineItem("price_addon", 1)]
    totals = calculate_checkout_totals(items, prices, discount_amount=250, tax_rate=10)
    assert (totals.subtotal, totals.discount, totals.tax, totals.total) == (2250, 250, 200, 2200)
    assert totals.currency == "USD"

    capped = calculate_checkout_totals(items, prices, discount_amount=9999)
    assert capped.discount == 2250
    assert capped.total == 0

    with pytest.raises(DomainValidationException):
        calculate_checkout_totals([CheckoutLineItem("price_missing")], prices)
    with pytest.raises(DomainValidationException):
        calculate_checkout_totals(
            items, {**prices, "price_addon": CheckoutPrice("price_addon", 250, "EUR")}
        )


def test_redirect_urls_keep_existing_query():
    success = build_success_url("https://shop.example.com/thanks?ref=mail", "cs_1")
    assert success == "https://shop.example.com/thanks?ref=mail&session_id=cs_1"

    cancel = build_cancel_url("https://shop.example.com/cart?session_id=old&step=2", "cs_1")
    assert cancel == "https://shop.example.com/cart?session_id=cs_1&step=2&canceled=true"

    assert extract_session_id_from_url(success) == "cs_1"
    assert extract_session_id_from_url("https://shop.example.com/thanks") is None
    assert extract_session_id_from_url("not a url") is None

    with pytest.raises(DomainValidationException):
        build_success_url("/relative/path", "cs_1")

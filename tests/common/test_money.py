from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from domain.common.dates import ceil_days, ensure_utc
from domain.common.money import (
    from_minor_units,
    get_currency_decimals,
    percent_of,
    prorate,
    round_half_up,
    to_minor_units,
)
from domain.common.results import TransitionCheck, ValidationResult


@pytest.mark.parametrize(
    "value, expected",
    [(0.5, 1), (1.5, 2), (2.5, 3), (-0.5, -1), (Decimal("499.4999"), 499), (Decimal("499.5"), 500)],
)
def test_round_half_up(value, expected):
    assert round_half_up(value) == expected


def test_percent_and_prorate():
    assert percent_of(1500, 10) == 150
    assert percent_of(999, 33.33) == 333
    assert prorate(1000, 1, 3) == 333
    assert prorate(2000, 1, 3) == 667


def test_currency_units():
    assert get_currency_decimals("clp") == 0
    assert get_currency_decimals("JPY") == 2
    assert to_minor_units(12.34, "USD") == 1234
    assert to_minor_units(1500, "CLP") == 1500
    assert from_minor_units(1234, "USD") == Decimal("12.34")


def test_dates():
    naive = datetime(2024, 1, 1, 12)
    assert ensure_utc(naive).tzinfo == timezone.utc
    assert ensure_utc(None) is None
    assert ceil_days(timedelta(hours=1)) == 1
    assert ceil_days(timedelta(days=2)) == 2
    assert ceil_days(timedelta(hours=-25)) == -1


def test_result_values():
    assert ValidationResult.ok()
    failed = ValidationResult.from_errors(["a", "b"])
    assert not failed
    assert failed.error == "a"
    assert TransitionCheck.allow().allowed
    denied = TransitionCheck.deny("nope")
    assert not denied
    assert denied.error == "nope"

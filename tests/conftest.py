"""Pytest bootstrap configuration.

Billing code never reads the clock, so tests share fixed reference times.
Logging runs in console mode so test output stays readable.
"""
import os
from datetime import datetime, timezone

import pytest

os.environ.setdefault("DEBUG", "true")


def at(year, month, day, hour=0, minute=0, second=0):
    return datetime(year, month, day, hour, minute, second, tzinfo=timezone.utc)


@pytest.fixture
def utc():
    """Factory for aware UTC datetimes: utc(2024, 1, 1, 12)."""
    return at


@pytest.fixture
def now():
    return at(2024, 1, 15, 12)

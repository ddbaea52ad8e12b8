"""Pytest configuration for Stark Discipline Hub tests."""
from __future__ import annotations

from datetime import date

import pytest

from tests.helpers import build_store, moment
from utils.datetime_utils import FixedClock


@pytest.fixture
def clock():
    """Return a clock pinned to Thursday 2024-01-04 12:00 MSK."""
    return FixedClock(moment(2024, 1, 4))


@pytest.fixture
def exercise_week_store():
    """Return a store with exercise done Monday through Thursday."""
    return build_store({date(2024, 1, d): ["exercise"] for d in range(1, 5)})

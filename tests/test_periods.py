"""Tests for month-aligned budget period boundaries."""

from __future__ import annotations

import calendar
from datetime import date, timedelta

import pandas as pd
import pytest

from analytics.periods import (
    month_slices,
    month_window,
    next_period_start,
    period_bounds,
    period_label,
    previous_period_start,
    prorate_for_period,
    resolve_timezone,
    to_local_date,
    window_from_dates,
)
from core.errors import InvalidConfiguration
from core.models import FORTNIGHTLY, MONTHLY, WEEKLY

TZ = "Australia/Sydney"


def _day_ranges(windows):
    return [(window.start_date.day, window.end_date.day) for window in windows]


def test_weekly_slices_for_31_day_month():
    slices = month_slices(2026, 1, WEEKLY, TZ)

    assert _day_ranges(slices) == [(1, 7), (8, 14), (15, 21), (22, 31)]


def test_fortnightly_slices_absorb_remainder():
    assert _day_ranges(month_slices(2024, 2, FORTNIGHTLY, TZ)) == [(1, 14), (15, 29)]
    assert _day_ranges(month_slices(2026, 2, FORTNIGHTLY, TZ)) == [(1, 14), (15, 28)]


@pytest.mark.parametrize("period_type", [WEEKLY, FORTNIGHTLY, MONTHLY])
@pytest.mark.parametrize("month", range(1, 13))
def test_slices_tile_every_month(period_type, month):
    slices = month_slices(2024, month, period_type, TZ)
    last_day = calendar.monthrange(2024, month)[1]

    assert slices[0].start_date == date(2024, month, 1)
    assert slices[-1].end_date == date(2024, month, last_day)
    for previous, current in zip(slices, slices[1:]):
        assert current.start_date == previous.end_date + timedelta(days=1)
    assert sum(window.days for window in slices) == last_day


def test_period_bounds_returns_slice_containing_anchor():
    window = period_bounds(date(2026, 2, 20), FORTNIGHTLY, TZ)

    assert window.start_date == date(2026, 2, 15)
    assert window.end_date == date(2026, 2, 28)
    assert window.days == 14


def test_window_spans_first_to_last_instant_in_budget_timezone():
    window = month_window(2026, 2, TZ)

    assert window.start == pd.Timestamp("2026-02-01 00:00:00", tz=TZ)
    assert window.end == pd.Timestamp("2026-02-28 23:59:59.999999", tz=TZ)
    assert window.contains(pd.Timestamp("2026-02-28 23:30:00", tz=TZ))
    assert not window.contains(pd.Timestamp("2026-03-01 00:00:00", tz=TZ))


def test_aware_anchor_is_converted_to_budget_civil_date():
    # 14:30 UTC on Jan 31 is already Feb 1 in Sydney (UTC+11 in summer).
    anchor = pd.Timestamp("2026-01-31T14:30:00Z")

    assert to_local_date(anchor, TZ) == date(2026, 2, 1)
    assert period_bounds(anchor, MONTHLY, TZ).start_date == date(2026, 2, 1)


def test_naive_anchor_is_treated_as_civil_date():
    assert period_bounds("2026-01-31 23:00", MONTHLY, TZ).start_date == date(2026, 1, 1)


def test_invalid_period_type_raises():
    with pytest.raises(InvalidConfiguration):
        period_bounds(date(2026, 1, 1), "daily", TZ)

    with pytest.raises(ValueError):
        month_slices(2026, 1, "quarterly", TZ)


def test_unknown_timezone_raises():
    with pytest.raises(InvalidConfiguration):
        resolve_timezone("Mars/Olympus_Mons")

    with pytest.raises(InvalidConfiguration):
        window_from_dates(date(2026, 1, 1), date(2026, 1, 7), "Nowhere/Special")


def test_period_navigation_crosses_month_boundaries():
    assert next_period_start(date(2026, 1, 25), WEEKLY, TZ) == date(2026, 2, 1)
    assert previous_period_start(date(2026, 2, 3), WEEKLY, TZ) == date(2026, 1, 22)
    assert previous_period_start(date(2026, 1, 5), FORTNIGHTLY, TZ) == date(2025, 12, 15)
    assert next_period_start(date(2025, 12, 31), MONTHLY, TZ) == date(2026, 1, 1)


def test_period_labels():
    assert period_label(period_bounds(date(2026, 2, 10), WEEKLY, TZ), WEEKLY) == "Week of 8 Feb"
    assert period_label(period_bounds(date(2026, 2, 3), FORTNIGHTLY, TZ), FORTNIGHTLY) == "1 Feb - 14 Feb"
    assert period_label(period_bounds(date(2026, 2, 3), MONTHLY, TZ), MONTHLY) == "February 2026"


def test_prorate_for_period():
    assert prorate_for_period(10000, WEEKLY) == 2500
    assert prorate_for_period(10000, FORTNIGHTLY) == 5000
    assert prorate_for_period(10000, MONTHLY) == 10000

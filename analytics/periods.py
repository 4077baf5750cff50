"""Calendar period helpers for month-aligned budget windows.

Budget periods are evaluated on the civil calendar of a single budgeting
timezone. Sub-monthly periods are month-aligned rather than ISO weeks:

* weekly slices cover days 1-7, 8-14, 15-21 and 22 to the end of the month
* fortnightly slices cover days 1-14 and 15 to the end of the month
* monthly periods cover the whole calendar month

The last slice of a month absorbs any remainder so the slices of one month
always tile it exactly.
"""

from __future__ import annotations

import calendar
import logging
from datetime import date, timedelta
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import pandas as pd

from config.settings import get_settings
from core.errors import InvalidConfiguration
from core.models import FORTNIGHTLY, MONTHLY, PERIOD_TYPES, WEEKLY, PeriodWindow

__all__ = [
    "resolve_timezone",
    "to_local_date",
    "window_from_dates",
    "period_bounds",
    "month_window",
    "month_slices",
    "next_period_start",
    "previous_period_start",
    "period_label",
    "prorate_for_period",
]

logger = logging.getLogger(__name__)

_WEEK_START_DAYS: tuple[int, ...] = (1, 8, 15, 22)
_FORTNIGHT_START_DAYS: tuple[int, ...] = (1, 15)
_LAST_INSTANT = pd.Timedelta(days=1) - pd.Timedelta(microseconds=1)


def resolve_timezone(timezone: str | None = None) -> str:
    """Return a validated IANA timezone name, defaulting to the configured one."""

    name = timezone or get_settings().budget_timezone
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        logger.warning("Rejected unknown budgeting timezone %r", name)
        raise InvalidConfiguration(f"Unknown timezone: {name!r}") from exc
    return name


def to_local_date(value: date | str | pd.Timestamp, timezone: str | None = None) -> date:
    """Return the civil date of ``value`` in the budgeting timezone.

    Timezone-aware values are converted first; naive values and plain dates
    are taken to already be civil dates.
    """

    tz = resolve_timezone(timezone)
    moment = pd.Timestamp(value)
    if moment.tzinfo is not None:
        moment = moment.tz_convert(tz)
    return moment.date()


def _localize(day: date, timezone: str) -> pd.Timestamp:
    return pd.Timestamp(day).tz_localize(timezone, nonexistent="shift_forward", ambiguous=True)


def window_from_dates(start_date: date, end_date: date, timezone: str | None = None) -> PeriodWindow:
    """Build an inclusive window running from midnight of ``start_date`` to
    the last instant of ``end_date``."""

    tz = resolve_timezone(timezone)
    start = _localize(start_date, tz)
    end = (pd.Timestamp(end_date) + _LAST_INSTANT).tz_localize(tz, nonexistent="shift_forward", ambiguous=False)
    return PeriodWindow(start=start, end=end, timezone=tz)


def _validate_period_type(period_type: str) -> None:
    if period_type not in PERIOD_TYPES:
        raise InvalidConfiguration(
            f"Unsupported period type {period_type!r}; expected one of {', '.join(PERIOD_TYPES)}"
        )


def _last_day(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def _slice_days(day: int, year: int, month: int, period_type: str) -> tuple[int, int]:
    last_day = _last_day(year, month)
    if period_type == MONTHLY:
        return 1, last_day

    starts = _WEEK_START_DAYS if period_type == WEEKLY else _FORTNIGHT_START_DAYS
    index = max(i for i, start in enumerate(starts) if start <= day)
    start_day = starts[index]
    end_day = starts[index + 1] - 1 if index + 1 < len(starts) else last_day
    return start_day, end_day


def period_bounds(
    anchor_date: date | str | pd.Timestamp,
    period_type: str,
    timezone: str | None = None,
) -> PeriodWindow:
    """Return the budget period of ``period_type`` containing ``anchor_date``."""

    _validate_period_type(period_type)
    tz = resolve_timezone(timezone)
    local = to_local_date(anchor_date, tz)
    start_day, end_day = _slice_days(local.day, local.year, local.month, period_type)
    return window_from_dates(
        date(local.year, local.month, start_day),
        date(local.year, local.month, end_day),
        tz,
    )


def month_window(year: int, month: int, timezone: str | None = None) -> PeriodWindow:
    """Return the full calendar month ``year``-``month``."""

    return window_from_dates(date(year, month, 1), date(year, month, _last_day(year, month)), timezone)


def month_slices(year: int, month: int, period_type: str, timezone: str | None = None) -> list[PeriodWindow]:
    """Return every period of ``period_type`` in the month, in order."""

    _validate_period_type(period_type)
    if period_type == MONTHLY:
        return [month_window(year, month, timezone)]

    starts = _WEEK_START_DAYS if period_type == WEEKLY else _FORTNIGHT_START_DAYS
    return [period_bounds(date(year, month, start), period_type, timezone) for start in starts]


def next_period_start(anchor_date: date | str | pd.Timestamp, period_type: str, timezone: str | None = None) -> date:
    """Return the first civil day of the period after the one holding ``anchor_date``."""

    window = period_bounds(anchor_date, period_type, timezone)
    return window.end_date + timedelta(days=1)


def previous_period_start(anchor_date: date | str | pd.Timestamp, period_type: str, timezone: str | None = None) -> date:
    """Return the first civil day of the period before the one holding ``anchor_date``."""

    window = period_bounds(anchor_date, period_type, timezone)
    previous = period_bounds(window.start_date - timedelta(days=1), period_type, window.timezone)
    return previous.start_date


def _short_day(day: date) -> str:
    return f"{day.day} {day.strftime('%b')}"


def period_label(window: PeriodWindow, period_type: str) -> str:
    """Human-readable label for a budget period."""

    _validate_period_type(period_type)
    if period_type == WEEKLY:
        return f"Week of {_short_day(window.start_date)}"
    if period_type == FORTNIGHTLY:
        return f"{_short_day(window.start_date)} - {_short_day(window.end_date)}"
    return window.start_date.strftime("%B %Y")


def prorate_for_period(monthly_amount_cents: int, period_type: str) -> int:
    """Split a monthly amount across month-aligned weeks (4) or fortnights (2)."""

    _validate_period_type(period_type)
    if period_type == WEEKLY:
        return int(round(monthly_amount_cents / 4))
    if period_type == FORTNIGHTLY:
        return int(round(monthly_amount_cents / 2))
    return int(monthly_amount_cents)

"""Anchor-based occurrence counting for recurring bills.

Every occurrence is computed as ``anchor + N * interval`` straight from the
anchor due date. Calendar-month intervals clamp the day of month to the
target month (Jan 31 plus one month is Feb 28/29) and, because each step
starts from the anchor again, a clamp in a short month never leaks into the
following months.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Iterator, Optional

import pandas as pd

from analytics.periods import month_window
from config.settings import Settings, get_settings
from core.errors import InvalidConfiguration
from core.models import (
    FORTNIGHTLY,
    MONTH_BASED_RECURRENCE_TYPES,
    MONTHLY,
    QUARTERLY,
    RECURRENCE_TYPES,
    WEEKLY,
    YEARLY,
    PeriodWindow,
)

__all__ = [
    "validate_recurrence_type",
    "step_from_anchor",
    "effective_window",
    "iter_occurrences",
    "count_occurrences",
    "nearest_occurrence",
    "convert_to_target_period",
]

logger = logging.getLogger(__name__)

_DAY_INTERVALS: dict[str, int] = {WEEKLY: 7, FORTNIGHTLY: 14}
_MONTH_INTERVALS: dict[str, int] = {MONTHLY: 1, QUARTERLY: 3, YEARLY: 12}

# Monthly-equivalent multipliers using month-aligned budget periods.
_TO_MONTHLY: dict[str, float] = {
    WEEKLY: 4.0,
    FORTNIGHTLY: 2.0,
    MONTHLY: 1.0,
    QUARTERLY: 1 / 3,
    YEARLY: 1 / 12,
}


def validate_recurrence_type(recurrence_type: str) -> str:
    if recurrence_type not in RECURRENCE_TYPES:
        raise InvalidConfiguration(
            f"Unsupported recurrence type {recurrence_type!r}; expected one of {', '.join(RECURRENCE_TYPES)}"
        )
    return recurrence_type


def _as_date(value: date | str | pd.Timestamp) -> date:
    return pd.Timestamp(value).date()


def step_from_anchor(anchor: date | str | pd.Timestamp, recurrence_type: str, steps: int) -> date:
    """Return the occurrence ``steps`` whole intervals away from ``anchor``.

    ``steps`` may be negative to walk backwards.
    """

    validate_recurrence_type(recurrence_type)
    anchor_day = _as_date(anchor)

    if recurrence_type in _DAY_INTERVALS:
        return anchor_day + timedelta(days=steps * _DAY_INTERVALS[recurrence_type])
    if recurrence_type in _MONTH_INTERVALS:
        offset = pd.DateOffset(months=steps * _MONTH_INTERVALS[recurrence_type])
        return (pd.Timestamp(anchor_day) + offset).date()

    raise InvalidConfiguration(f"Recurrence type {recurrence_type!r} has no fixed interval")


def effective_window(
    recurrence_type: str,
    window: PeriodWindow,
    settings: Optional[Settings] = None,
) -> PeriodWindow:
    """Widen narrow windows to their calendar month for monthly-or-longer bills.

    A weekly or fortnightly budget period would otherwise report zero
    expected payments for a monthly bill due outside the slice but inside
    the same month.
    """

    validate_recurrence_type(recurrence_type)
    min_days = (settings or get_settings()).expansion_min_days

    if recurrence_type in MONTH_BASED_RECURRENCE_TYPES and window.days < min_days:
        start = window.start_date
        expanded = month_window(start.year, start.month, window.timezone)
        logger.debug(
            "Expanded %s-day window %s..%s to %s..%s for %s recurrence",
            window.days,
            window.start_date,
            window.end_date,
            expanded.start_date,
            expanded.end_date,
            recurrence_type,
        )
        return expanded
    return window


def iter_occurrences(
    anchor: date | str | pd.Timestamp,
    recurrence_type: str,
    window: PeriodWindow,
) -> Iterator[date]:
    """Return an iterator over every occurrence inside ``window`` (no
    expansion), oldest first.

    ``one-time`` and ``irregular`` bills only ever occur on the anchor.
    """

    validate_recurrence_type(recurrence_type)
    return _walk(_as_date(anchor), recurrence_type, window.start_date, window.end_date)


def _walk(anchor_day: date, recurrence_type: str, start: date, end: date) -> Iterator[date]:
    if recurrence_type in _DAY_INTERVALS:
        step = _DAY_INTERVALS[recurrence_type]
        first = -((anchor_day - start).days // step)
        last = (end - anchor_day).days // step
        for n in range(first, last + 1):
            yield step_from_anchor(anchor_day, recurrence_type, n)
        return

    if recurrence_type in _MONTH_INTERVALS:
        months = _MONTH_INTERVALS[recurrence_type]
        offset_start = (start.year - anchor_day.year) * 12 + (start.month - anchor_day.month)
        offset_end = (end.year - anchor_day.year) * 12 + (end.month - anchor_day.month)
        for n in range(offset_start // months, -(-offset_end // months) + 1):
            day = step_from_anchor(anchor_day, recurrence_type, n)
            if start <= day <= end:
                yield day
        return

    if start <= anchor_day <= end:
        yield anchor_day


def count_occurrences(
    anchor_due_date: date | str | pd.Timestamp,
    recurrence_type: str,
    window: PeriodWindow,
    *,
    expand: bool = True,
    settings: Optional[Settings] = None,
) -> int:
    """Count expected occurrences of a bill inside ``window``.

    The window is first passed through :func:`effective_window` unless
    ``expand`` is ``False``.
    """

    if expand:
        window = effective_window(recurrence_type, window, settings)
    return sum(1 for _ in iter_occurrences(anchor_due_date, recurrence_type, window))


def nearest_occurrence(anchor: date | str | pd.Timestamp, recurrence_type: str, day: date) -> date:
    """Return the occurrence closest to ``day``; ties resolve to the earlier one."""

    validate_recurrence_type(recurrence_type)
    anchor_day = _as_date(anchor)

    if recurrence_type in _DAY_INTERVALS:
        step = _DAY_INTERVALS[recurrence_type]
        base = (day - anchor_day).days // step
    elif recurrence_type in _MONTH_INTERVALS:
        months = _MONTH_INTERVALS[recurrence_type]
        base = ((day.year - anchor_day.year) * 12 + (day.month - anchor_day.month)) // months
    else:
        return anchor_day

    candidates = [step_from_anchor(anchor_day, recurrence_type, n) for n in (base - 1, base, base + 1)]
    return min(candidates, key=lambda candidate: (abs((candidate - day).days), candidate))


def convert_to_target_period(amount_cents: int, from_frequency: str, to_frequency: str) -> int:
    """Convert an amount between frequencies using a monthly intermediate.

    Unknown or non-cyclical frequencies are treated as monthly, matching how
    budget assignment normalises one-off bills.
    """

    if from_frequency == to_frequency:
        return int(amount_cents)

    monthly = amount_cents * _TO_MONTHLY.get(from_frequency, 1.0)
    return int(round(monthly / _TO_MONTHLY.get(to_frequency, 1.0)))

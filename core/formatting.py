"""Formatting helpers for bills summaries."""

from __future__ import annotations

from datetime import date
from typing import Optional

from config.settings import Settings, get_settings

__all__ = [
    "format_cents",
    "condensed_label",
    "payment_label",
    "month_bucket_label",
    "week_bucket_label",
    "format_coverage",
    "confidence_level",
]


def format_cents(amount_cents: int, currency: str = "$") -> str:
    sign = "-" if amount_cents < 0 else ""
    return f"{sign}{currency}{abs(amount_cents) / 100:,.2f}"


def condensed_label(name: str, count: int) -> str:
    """Label a row that stands for ``count`` occurrences, e.g. ``"Gym ×3"``."""

    return f"{name} ×{count}" if count > 1 else name


def payment_label(day: date) -> str:
    return f"{day.day} {day.strftime('%b')}"


def _month_index(day: date) -> int:
    return day.year * 12 + day.month - 1


def month_bucket_label(month_start: date, today: date) -> str:
    """Relative label for a calendar-month bucket.

    The current and following months read "This Month" and "Next Month";
    other months use their name, with the year when it differs from today's.
    """

    offset = _month_index(month_start) - _month_index(today)
    if offset == 0:
        return "This Month"
    if offset == 1:
        return "Next Month"
    if month_start.year == today.year:
        return month_start.strftime("%B")
    return month_start.strftime("%B %Y")


def week_bucket_label(week_start: date, week_end: date, today: date) -> str:
    if week_start <= today <= week_end:
        return "This Week"
    return f"Week of {payment_label(week_start)}"


def format_coverage(matched: int, expected: int) -> str:
    if expected <= 0:
        return "Nothing due"
    if matched >= expected:
        return "All paid" if expected > 1 else "Paid"
    return f"{matched} of {expected} paid"


def confidence_level(confidence: float, settings: Optional[Settings] = None) -> str:
    """Bucket a detector confidence into ``high``, ``medium`` or ``low``."""

    settings = settings or get_settings()
    if confidence >= settings.high_confidence_threshold:
        return "high"
    if confidence >= settings.low_confidence_threshold:
        return "medium"
    return "low"

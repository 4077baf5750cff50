"""Engine configuration utilities."""

from .settings import DEFAULT_BUDGET_TIMEZONE, DEFAULT_RECURRENCE_BANDS, Settings, get_settings

__all__ = [
    "DEFAULT_BUDGET_TIMEZONE",
    "DEFAULT_RECURRENCE_BANDS",
    "Settings",
    "get_settings",
]

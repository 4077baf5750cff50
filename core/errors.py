"""Exception types raised by the bills engine."""

from __future__ import annotations

__all__ = ["BillsEngineError", "InvalidConfiguration"]


class BillsEngineError(Exception):
    """Base class for engine errors."""


class InvalidConfiguration(BillsEngineError, ValueError):
    """Raised when a call receives a period type, recurrence type, timezone,
    horizon or display option the engine does not support."""

"""Core domain package for the bills engine."""

from .errors import BillsEngineError, InvalidConfiguration
from .logging_config import configure_logging
from .models import (
    BillsOverview,
    BillStatus,
    CashFlowSummary,
    CondensedExpenseRow,
    CondensedTimelineGroup,
    DetectedPattern,
    MatchedInstance,
    OccurrenceInstance,
    PaidInstance,
    PeriodWindow,
    RecurringExpenseDefinition,
    TimelineGroup,
    TransactionRecord,
)

__all__ = [
    "BillsEngineError",
    "InvalidConfiguration",
    "configure_logging",
    "BillsOverview",
    "BillStatus",
    "CashFlowSummary",
    "CondensedExpenseRow",
    "CondensedTimelineGroup",
    "DetectedPattern",
    "MatchedInstance",
    "OccurrenceInstance",
    "PaidInstance",
    "PeriodWindow",
    "RecurringExpenseDefinition",
    "TimelineGroup",
    "TransactionRecord",
]

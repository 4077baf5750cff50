"""Shared data model definitions for the bills engine."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
from typing import Optional, TypedDict

import pandas as pd

WEEKLY = "weekly"
FORTNIGHTLY = "fortnightly"
MONTHLY = "monthly"
QUARTERLY = "quarterly"
YEARLY = "yearly"
ONE_TIME = "one-time"
IRREGULAR = "irregular"

RECURRENCE_TYPES: tuple[str, ...] = (WEEKLY, FORTNIGHTLY, MONTHLY, QUARTERLY, YEARLY, ONE_TIME, IRREGULAR)
CYCLICAL_RECURRENCE_TYPES: tuple[str, ...] = (WEEKLY, FORTNIGHTLY, MONTHLY, QUARTERLY, YEARLY)
MONTH_BASED_RECURRENCE_TYPES: tuple[str, ...] = (MONTHLY, QUARTERLY, YEARLY)
PERIOD_TYPES: tuple[str, ...] = (WEEKLY, FORTNIGHTLY, MONTHLY)


@dataclass(frozen=True)
class PeriodWindow:
    """Inclusive window between two instants in the budgeting timezone."""

    start: pd.Timestamp
    end: pd.Timestamp
    timezone: str

    @property
    def start_date(self) -> date:
        return self.start.date()

    @property
    def end_date(self) -> date:
        return self.end.date()

    @property
    def days(self) -> int:
        """Number of civil days covered, counting both ends."""

        return (self.end_date - self.start_date).days + 1

    def contains(self, value: pd.Timestamp | str) -> bool:
        moment = pd.Timestamp(value)
        if moment.tzinfo is None:
            moment = moment.tz_localize(self.timezone)
        else:
            moment = moment.tz_convert(self.timezone)
        return self.start <= moment <= self.end

    def contains_date(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date


@dataclass(frozen=True)
class TransactionRecord:
    id: str
    description: str
    amount_cents: int
    occurred_at: pd.Timestamp
    account_id: Optional[str] = None

    def local_date(self, timezone: str) -> date:
        return self.occurred_at.tz_convert(timezone).date()


@dataclass(frozen=True)
class RecurringExpenseDefinition:
    """A recognised or user-declared recurring bill.

    ``anchor_due_date`` is the zero point for all occurrence stepping; the
    N-th occurrence is always derived from it directly.
    """

    id: str
    name: str
    merchant_pattern: str
    expected_amount_cents: int
    recurrence_type: str
    anchor_due_date: date
    confidence: float
    detection_count: int
    last_observed_date: date
    is_active: bool = True
    category_name: Optional[str] = None

    @property
    def amount_magnitude_cents(self) -> int:
        return abs(int(self.expected_amount_cents))

    def refresh_observation(self, last_observed_date: date, detection_count: int) -> "RecurringExpenseDefinition":
        return replace(self, last_observed_date=last_observed_date, detection_count=detection_count)


@dataclass(frozen=True)
class MatchedInstance:
    """A transaction linked to a definition."""

    definition_id: str
    transaction: TransactionRecord
    confidence: float
    is_manual: bool = False
    for_period: Optional[date] = None


@dataclass(frozen=True)
class OccurrenceInstance:
    definition: RecurringExpenseDefinition
    due_date: date
    occurrence_index: int
    is_projection: bool
    amount_cents: int


@dataclass(frozen=True)
class PaidInstance:
    definition: RecurringExpenseDefinition
    transaction: TransactionRecord
    matched_amount_cents: int
    matched_date: date
    instance_label: str
    instance_index: int
    for_period: date


@dataclass(frozen=True)
class DetectedPattern:
    """Full output of the pattern detector for one seed transaction."""

    definition: RecurringExpenseDefinition
    amount_consistency: bool
    timing_consistency: bool
    insufficient_evidence: bool
    next_predicted_date: date
    gap_days: tuple[int, ...]
    transaction_count: int


class TimelineGroup(TypedDict):
    key: str
    label: str
    start: date
    end: date
    is_past: bool
    total_amount_cents: int
    occurrences: list[OccurrenceInstance]


class CondensedExpenseRow(TypedDict):
    definition_id: str
    name: str
    occurrence_count: int
    condensed_label: str
    total_amount_cents: int
    first_due_date: date
    all_occurrences: list[OccurrenceInstance]


class CondensedTimelineGroup(TypedDict):
    key: str
    label: str
    total_amount_cents: int
    is_past: bool
    expenses: list[CondensedExpenseRow]


class CondensedPaidRow(TypedDict):
    definition_id: str
    name: str
    occurrence_count: int
    condensed_label: str
    total_amount_cents: int
    all_instances: list[PaidInstance]


class CashFlowThisMonth(TypedDict):
    paid: int
    total: int
    remaining: int
    percent_paid: float


class CashFlowNextMonth(TypedDict):
    total: int


class CashFlowSummary(TypedDict):
    this_month: CashFlowThisMonth
    next_month: CashFlowNextMonth
    shortfall: int


class BillStatus(TypedDict):
    definition: RecurringExpenseDefinition
    expected_count: int
    matched_count: int
    is_covered: bool
    outstanding_count: int
    outstanding_amount_cents: int


class BillsOverview(TypedDict):
    period: PeriodWindow
    period_label: str
    bills: list[BillStatus]
    paid: list[BillStatus]
    unpaid: list[BillStatus]
    paid_instances: list[CondensedPaidRow]
    timeline: list[CondensedTimelineGroup]
    cash_flow: CashFlowSummary


__all__ = [
    "WEEKLY",
    "FORTNIGHTLY",
    "MONTHLY",
    "QUARTERLY",
    "YEARLY",
    "ONE_TIME",
    "IRREGULAR",
    "RECURRENCE_TYPES",
    "CYCLICAL_RECURRENCE_TYPES",
    "MONTH_BASED_RECURRENCE_TYPES",
    "PERIOD_TYPES",
    "PeriodWindow",
    "TransactionRecord",
    "RecurringExpenseDefinition",
    "MatchedInstance",
    "OccurrenceInstance",
    "PaidInstance",
    "DetectedPattern",
    "TimelineGroup",
    "CondensedExpenseRow",
    "CondensedTimelineGroup",
    "CondensedPaidRow",
    "CashFlowThisMonth",
    "CashFlowNextMonth",
    "CashFlowSummary",
    "BillStatus",
    "BillsOverview",
]

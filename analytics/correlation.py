"""Correlate matched payments with the occurrences a bill expects."""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Iterable, Mapping, Optional

import pandas as pd

from analytics.merchants import matches_merchant_pattern
from analytics.occurrences import count_occurrences, effective_window, iter_occurrences, nearest_occurrence
from analytics.periods import to_local_date, window_from_dates
from config.settings import Settings, get_settings
from core.models import (
    BillStatus,
    MatchedInstance,
    PeriodWindow,
    RecurringExpenseDefinition,
    TransactionRecord,
)

__all__ = [
    "matches_in_window",
    "matched_count",
    "expected_count",
    "is_fully_covered",
    "next_due_date",
    "bill_statuses",
    "separate_paid",
    "score_match",
    "find_best_match",
    "link_manually",
]

logger = logging.getLogger(__name__)

_AMOUNT_TIERS: tuple[tuple[float, float], ...] = ((0.05, 0.4), (0.10, 0.3), (0.20, 0.2), (0.50, 0.1))
_TIMING_TIERS: tuple[tuple[int, float], ...] = ((1, 0.2), (3, 0.15), (7, 0.1), (14, 0.05))
_NEXT_DUE_LOOKAHEAD_DAYS = 400
_NO_PAYMENT = pd.Timestamp.min.tz_localize("UTC")


def matches_in_window(
    definition: RecurringExpenseDefinition,
    matched_instances: Iterable[MatchedInstance],
    window: PeriodWindow,
    settings: Optional[Settings] = None,
) -> list[MatchedInstance]:
    """Return the definition's matches paid inside its effective window, oldest first."""

    evaluated = effective_window(definition.recurrence_type, window, settings)
    matches = [
        instance
        for instance in matched_instances
        if instance.definition_id == definition.id and evaluated.contains(instance.transaction.occurred_at)
    ]
    return sorted(matches, key=lambda instance: instance.transaction.occurred_at)


def matched_count(
    definition: RecurringExpenseDefinition,
    matched_instances: Iterable[MatchedInstance],
    window: PeriodWindow,
    settings: Optional[Settings] = None,
) -> int:
    return len(matches_in_window(definition, matched_instances, window, settings))


def expected_count(
    definition: RecurringExpenseDefinition,
    window: PeriodWindow,
    settings: Optional[Settings] = None,
) -> int:
    return count_occurrences(
        definition.anchor_due_date,
        definition.recurrence_type,
        window,
        settings=settings,
    )


def is_fully_covered(
    definition: RecurringExpenseDefinition,
    matched_instances: Iterable[MatchedInstance],
    window: PeriodWindow,
    settings: Optional[Settings] = None,
) -> bool:
    """``True`` when matched payments reach the expected count for the window.

    Both counts are taken over the same effective window.
    """

    return matched_count(definition, matched_instances, window, settings) >= expected_count(
        definition, window, settings
    )


def next_due_date(definition: RecurringExpenseDefinition, on_or_after: date, timezone: str) -> date:
    """First occurrence of the definition on or after ``on_or_after``.

    Non-cyclical definitions with an anchor in the past return the anchor.
    """

    lookahead = window_from_dates(on_or_after, on_or_after + timedelta(days=_NEXT_DUE_LOOKAHEAD_DAYS), timezone)
    return next(
        iter_occurrences(definition.anchor_due_date, definition.recurrence_type, lookahead),
        definition.anchor_due_date,
    )


def bill_statuses(
    definitions: Iterable[RecurringExpenseDefinition],
    matched_instances: Iterable[MatchedInstance],
    window: PeriodWindow,
    settings: Optional[Settings] = None,
) -> list[BillStatus]:
    """Expected versus matched payments for every active definition."""

    matched = list(matched_instances)
    statuses: list[BillStatus] = []
    for definition in definitions:
        if not definition.is_active:
            continue

        expected = expected_count(definition, window, settings)
        paid = matched_count(definition, matched, window, settings)
        outstanding = max(expected - paid, 0)
        statuses.append(
            {
                "definition": definition,
                "expected_count": expected,
                "matched_count": paid,
                "is_covered": paid >= expected,
                "outstanding_count": outstanding,
                "outstanding_amount_cents": outstanding * definition.amount_magnitude_cents,
            }
        )
    return statuses


def separate_paid(
    definitions: Iterable[RecurringExpenseDefinition],
    matched_instances: Iterable[MatchedInstance],
    window: PeriodWindow,
    settings: Optional[Settings] = None,
) -> tuple[list[BillStatus], list[BillStatus]]:
    """Split bill statuses into ``(paid, unpaid)``.

    Paid bills are ordered by their latest payment, most recent first; unpaid
    bills by their next due date from the start of the window.
    """

    matched = list(matched_instances)
    statuses = bill_statuses(definitions, matched, window, settings)

    paid = [status for status in statuses if status["is_covered"]]
    unpaid = [status for status in statuses if not status["is_covered"]]

    def latest_payment(status: BillStatus) -> pd.Timestamp:
        matches = matches_in_window(status["definition"], matched, window, settings)
        if not matches:
            return _NO_PAYMENT
        return max(match.transaction.occurred_at for match in matches)

    paid.sort(key=latest_payment, reverse=True)
    unpaid.sort(
        key=lambda status: (
            next_due_date(status["definition"], window.start_date, window.timezone),
            status["definition"].name,
        )
    )
    return paid, unpaid


def _amount_score(transaction: TransactionRecord, definition: RecurringExpenseDefinition) -> float:
    expected = definition.amount_magnitude_cents
    actual = abs(int(transaction.amount_cents))
    if expected == 0:
        return _AMOUNT_TIERS[0][1] if actual == 0 else 0.0

    deviation = abs(actual - expected) / expected
    for limit, score in _AMOUNT_TIERS:
        if deviation <= limit:
            return score
    return 0.0


def _timing_score(transaction: TransactionRecord, definition: RecurringExpenseDefinition, timezone: str) -> float:
    paid_on = to_local_date(transaction.occurred_at, timezone)
    due = nearest_occurrence(definition.anchor_due_date, definition.recurrence_type, paid_on)
    days_off = abs((paid_on - due).days)
    for limit, score in _TIMING_TIERS:
        if days_off <= limit:
            return score
    return 0.0


def score_match(
    transaction: TransactionRecord,
    definition: RecurringExpenseDefinition,
    settings: Optional[Settings] = None,
) -> float:
    """Confidence that ``transaction`` pays ``definition``.

    The merchant pattern contributes 0.4 (a loose name match 0.2), the amount
    up to 0.4 and the distance to the nearest expected due date up to 0.2. A
    transaction matching neither pattern nor name scores 0.
    """

    settings = settings or get_settings()
    if matches_merchant_pattern(transaction.description, definition.merchant_pattern):
        confidence = 0.4
    else:
        name = definition.name.strip().lower()
        description = transaction.description.strip().lower()
        if not name or not description or (name not in description and description not in name):
            return 0.0
        confidence = 0.2

    confidence += _amount_score(transaction, definition)
    confidence += _timing_score(transaction, definition, settings.budget_timezone)
    return min(round(confidence, 2), 1.0)


def find_best_match(
    transaction: TransactionRecord,
    definitions: Iterable[RecurringExpenseDefinition],
    min_confidence: Optional[float] = None,
    *,
    direct_links: Optional[Mapping[str, str]] = None,
    settings: Optional[Settings] = None,
) -> Optional[MatchedInstance]:
    """Return the best automatic match for ``transaction`` or ``None``.

    ``direct_links`` maps transaction ids to the definition ids they were
    explicitly linked to; such a link wins outright with confidence 1.0.
    """

    settings = settings or get_settings()
    threshold = settings.match_min_confidence if min_confidence is None else min_confidence
    candidates = [definition for definition in definitions if definition.is_active]

    linked_id = (direct_links or {}).get(transaction.id)
    if linked_id is not None:
        for definition in candidates:
            if definition.id == linked_id:
                return link_manually(definition, transaction)

    best: Optional[MatchedInstance] = None
    for definition in candidates:
        confidence = score_match(transaction, definition, settings)
        if confidence < threshold:
            continue
        if best is None or confidence > best.confidence:
            best = MatchedInstance(definition_id=definition.id, transaction=transaction, confidence=confidence)

    if best is None:
        logger.debug("No definition reached confidence %.2f for transaction %s", threshold, transaction.id)
    return best


def link_manually(
    definition: RecurringExpenseDefinition,
    transaction: TransactionRecord,
    for_period: Optional[date] = None,
) -> MatchedInstance:
    return MatchedInstance(
        definition_id=definition.id,
        transaction=transaction,
        confidence=1.0,
        is_manual=True,
        for_period=for_period,
    )

"""Recurring bill recognition from a merchant's transaction history."""

from __future__ import annotations

import logging
import uuid
from datetime import date, timedelta
from typing import Iterable, Optional, Sequence

import numpy as np
import pandas as pd

from analytics.merchants import derive_merchant_pattern, matches_merchant_pattern, merchant_display_name
from analytics.occurrences import step_from_anchor, validate_recurrence_type
from analytics.periods import resolve_timezone
from config.settings import Settings, get_settings
from core.models import (
    CYCLICAL_RECURRENCE_TYPES,
    IRREGULAR,
    ONE_TIME,
    DetectedPattern,
    RecurringExpenseDefinition,
    TransactionRecord,
)

__all__ = [
    "detect_recurrence_from_gaps",
    "check_amount_consistency",
    "check_timing_consistency",
    "score_confidence",
    "predict_next_date",
    "detect_pattern",
    "detect",
    "refresh_definition",
    "detect_recurring_transactions",
]

logger = logging.getLogger(__name__)


def _coefficient_of_variation(values: np.ndarray) -> float:
    mean = float(values.mean())
    if mean <= 0:
        return float("inf")
    return float(values.std() / mean)


def detect_recurrence_from_gaps(gaps: Iterable[float], settings: Optional[Settings] = None) -> str:
    """Classify a recurrence type from day gaps between consecutive charges.

    Parameters
    ----------
    gaps:
        Day differences between consecutive transactions, oldest first.
    settings:
        Optional settings override for the tolerance bands and dispersion cutoff.

    Returns
    -------
    str
        ``one-time`` when there are no gaps, a cyclical type when the mean gap
        falls inside its band, otherwise ``irregular``.
    """

    settings = settings or get_settings()
    values = np.asarray(list(gaps), dtype=float)
    if values.size == 0:
        return ONE_TIME

    if _coefficient_of_variation(values) > settings.irregular_cv_threshold:
        return IRREGULAR

    mean_gap = float(values.mean())
    for recurrence_type, (low, high) in settings.recurrence_bands.items():
        if low <= mean_gap <= high:
            return recurrence_type
    return IRREGULAR


def check_amount_consistency(amounts: Iterable[int], settings: Optional[Settings] = None) -> bool:
    """Return ``True`` when every amount magnitude sits within the tolerance of the mean."""

    settings = settings or get_settings()
    magnitudes = np.abs(np.asarray(list(amounts), dtype=float))
    if magnitudes.size == 0:
        return False

    mean = float(magnitudes.mean())
    if mean == 0:
        return bool(np.all(magnitudes == 0))

    deviation = np.abs(magnitudes - mean) / mean
    return bool(deviation.max() <= settings.amount_tolerance)


def check_timing_consistency(gaps: Sequence[float], settings: Optional[Settings] = None) -> bool:
    """Return ``True`` for enough transactions spaced with low dispersion.

    ``gaps`` holds one value fewer than the number of transactions.
    """

    settings = settings or get_settings()
    if len(gaps) + 1 < settings.min_timing_samples:
        return False

    values = np.asarray(gaps, dtype=float)
    return _coefficient_of_variation(values) < settings.timing_cv_threshold


def score_confidence(
    amount_consistent: bool,
    timing_consistent: bool,
    recurrence_type: str,
    settings: Optional[Settings] = None,
) -> float:
    settings = settings or get_settings()
    confidence = settings.base_confidence
    if amount_consistent:
        confidence += settings.consistent_amount_weight
    else:
        confidence += settings.inconsistent_amount_weight
    if timing_consistent:
        confidence += settings.consistent_timing_weight
    elif recurrence_type in CYCLICAL_RECURRENCE_TYPES:
        confidence += settings.cyclical_timing_weight
    return min(round(confidence, 2), 1.0)


def predict_next_date(
    last_date: date,
    recurrence_type: str,
    settings: Optional[Settings] = None,
) -> date:
    """Step one interval forward from ``last_date`` using anchor stepping.

    Non-cyclical types have no interval and fall back to a fixed number of days.
    """

    validate_recurrence_type(recurrence_type)
    if recurrence_type in CYCLICAL_RECURRENCE_TYPES:
        return step_from_anchor(last_date, recurrence_type, 1)
    return last_date + timedelta(days=(settings or get_settings()).fallback_prediction_days)


def _merge_history(seed: TransactionRecord, history: Iterable[TransactionRecord]) -> list[TransactionRecord]:
    entries = list(history)
    if all(entry.id != seed.id for entry in entries):
        entries.append(seed)
    return sorted(entries, key=lambda entry: (entry.occurred_at, entry.id))


def detect_pattern(
    seed: TransactionRecord,
    history: Iterable[TransactionRecord],
    *,
    definition_id: Optional[str] = None,
    settings: Optional[Settings] = None,
) -> DetectedPattern:
    """Infer a recurring bill from ``seed`` and its matching history.

    The seed is the transaction the user selected; its own amount becomes the
    expected amount. Fewer than two entries yield a ``one-time`` definition
    flagged as insufficient evidence rather than an error.
    """

    settings = settings or get_settings()
    timezone = resolve_timezone(settings.budget_timezone)
    entries = _merge_history(seed, history)
    dates = [entry.local_date(timezone) for entry in entries]
    latest = dates[-1]
    pattern = derive_merchant_pattern(seed.description)

    if len(entries) < 2:
        recurrence_type = ONE_TIME
        amount_ok = timing_ok = False
        gaps: tuple[int, ...] = ()
        confidence = settings.insufficient_evidence_confidence
        logger.debug("Insufficient history for %r; classified as one-time", pattern)
    else:
        gaps = tuple(int(gap) for gap in np.diff([day.toordinal() for day in dates]))
        recurrence_type = detect_recurrence_from_gaps(gaps, settings)
        amount_ok = check_amount_consistency([entry.amount_cents for entry in entries], settings)
        timing_ok = check_timing_consistency(gaps, settings)
        confidence = score_confidence(amount_ok, timing_ok, recurrence_type, settings)
        logger.debug(
            "Classified %r as %s from %d transactions (amount_ok=%s timing_ok=%s confidence=%.2f)",
            pattern,
            recurrence_type,
            len(entries),
            amount_ok,
            timing_ok,
            confidence,
        )

    definition = RecurringExpenseDefinition(
        id=definition_id or uuid.uuid4().hex,
        name=merchant_display_name(seed.description),
        merchant_pattern=pattern,
        expected_amount_cents=int(seed.amount_cents),
        recurrence_type=recurrence_type,
        anchor_due_date=latest,
        confidence=confidence,
        detection_count=len(entries),
        last_observed_date=latest,
    )

    return DetectedPattern(
        definition=definition,
        amount_consistency=amount_ok,
        timing_consistency=timing_ok,
        insufficient_evidence=len(entries) < 2,
        next_predicted_date=predict_next_date(latest, recurrence_type, settings),
        gap_days=gaps,
        transaction_count=len(entries),
    )


def detect(
    seed: TransactionRecord,
    history: Iterable[TransactionRecord],
    *,
    definition_id: Optional[str] = None,
    settings: Optional[Settings] = None,
) -> RecurringExpenseDefinition:
    return detect_pattern(seed, history, definition_id=definition_id, settings=settings).definition


def refresh_definition(
    definition: RecurringExpenseDefinition,
    transactions: Iterable[TransactionRecord],
    settings: Optional[Settings] = None,
) -> RecurringExpenseDefinition:
    """Account for matching transactions observed after ``last_observed_date``."""

    timezone = resolve_timezone((settings or get_settings()).budget_timezone)
    newer = [
        record.local_date(timezone)
        for record in transactions
        if matches_merchant_pattern(record.description, definition.merchant_pattern)
        and record.local_date(timezone) > definition.last_observed_date
    ]
    if not newer:
        return definition
    return definition.refresh_observation(max(newer), definition.detection_count + len(newer))


def detect_recurring_transactions(
    transactions: Iterable[TransactionRecord],
    *,
    min_confidence: Optional[float] = None,
    settings: Optional[Settings] = None,
) -> list[DetectedPattern]:
    """Scan a transaction batch for recurring outgoing bills.

    Parameters
    ----------
    transactions:
        Transactions from any number of merchants.
    min_confidence:
        Lowest confidence kept. Defaults to ``Settings.match_min_confidence``.
    settings:
        Optional settings override.

    Returns
    -------
    list[DetectedPattern]
        Cyclical patterns sorted by next predicted date, then by amount descending.
    """

    settings = settings or get_settings()
    threshold = settings.match_min_confidence if min_confidence is None else min_confidence
    records = list(transactions)
    if not records:
        return []

    frame = pd.DataFrame(
        {
            "position": range(len(records)),
            "group_key": [derive_merchant_pattern(record.description) for record in records],
            "occurred_at": [record.occurred_at.tz_convert("UTC") for record in records],
            "amount_cents": [record.amount_cents for record in records],
        }
    )
    frame = frame[(frame["amount_cents"] < 0) & (frame["group_key"] != "")]

    detected: list[DetectedPattern] = []
    for group_key, group_df in frame.groupby("group_key"):
        if len(group_df) < 2:
            continue

        group_df = group_df.sort_values(by=["occurred_at", "position"])
        group_records = [records[int(position)] for position in group_df["position"]]
        result = detect_pattern(group_records[-1], group_records, settings=settings)

        definition = result.definition
        if definition.recurrence_type not in CYCLICAL_RECURRENCE_TYPES:
            continue
        if definition.confidence < threshold:
            logger.debug("Dropped %r below confidence %.2f", group_key, threshold)
            continue
        detected.append(result)

    detected.sort(key=lambda row: (row.next_predicted_date, -row.definition.amount_magnitude_cents))
    return detected

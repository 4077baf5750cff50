"""Forward timelines, paid instances and cash-flow summaries for bills.

All functions are pure transforms of their inputs. Occurrence dates are civil
dates in the budgeting timezone; money is handled in integer cents.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Iterable, Mapping, Optional, Sequence

import pandas as pd

from analytics.occurrences import iter_occurrences
from analytics.periods import month_window, period_bounds, resolve_timezone, window_from_dates
from config.settings import Settings, get_settings
from core.errors import InvalidConfiguration
from core.formatting import condensed_label, month_bucket_label, payment_label, week_bucket_label
from core.models import (
    FORTNIGHTLY,
    WEEKLY,
    CashFlowSummary,
    CondensedExpenseRow,
    CondensedPaidRow,
    CondensedTimelineGroup,
    MatchedInstance,
    OccurrenceInstance,
    PaidInstance,
    PeriodWindow,
    RecurringExpenseDefinition,
    TimelineGroup,
)

__all__ = [
    "GRANULARITIES",
    "DISPLAY_MODES",
    "horizon_window",
    "generate_projected_occurrences",
    "group_by_timeline",
    "build_timeline",
    "individual_rows",
    "condense_occurrences",
    "condense_rows",
    "condense_group",
    "condense_timeline",
    "generate_paid_instances",
    "condense_paid_instances",
    "compute_cash_flow_summary",
]

logger = logging.getLogger(__name__)

GRANULARITIES: tuple[str, ...] = ("month", "week")
DISPLAY_MODES: tuple[str, ...] = ("condensed", "individual")


def horizon_window(
    today: date,
    months_ahead: Optional[int] = None,
    timezone: Optional[str] = None,
    settings: Optional[Settings] = None,
) -> PeriodWindow:
    """From the first day of today's month to the end of the month
    ``months_ahead`` months later."""

    settings = settings or get_settings()
    months = settings.projection_months_ahead if months_ahead is None else months_ahead
    if months <= 0:
        raise InvalidConfiguration(f"Projection horizon must be positive, got {months}")

    tz = resolve_timezone(timezone or settings.budget_timezone)
    last_month = (pd.Timestamp(today.year, today.month, 1) + pd.DateOffset(months=months)).date()
    return window_from_dates(
        date(today.year, today.month, 1),
        month_window(last_month.year, last_month.month, tz).end_date,
        tz,
    )


def generate_projected_occurrences(
    definition: RecurringExpenseDefinition,
    today: date,
    months_ahead: Optional[int] = None,
    *,
    settings: Optional[Settings] = None,
) -> list[OccurrenceInstance]:
    """Enumerate the definition's occurrences inside the projection horizon.

    Occurrences earlier in the current month are kept so the timeline can
    show them as past; those after ``today`` are flagged as projections.
    """

    window = horizon_window(today, months_ahead, settings=settings)
    return [
        OccurrenceInstance(
            definition=definition,
            due_date=due,
            occurrence_index=index,
            is_projection=due > today,
            amount_cents=definition.amount_magnitude_cents,
        )
        for index, due in enumerate(
            iter_occurrences(definition.anchor_due_date, definition.recurrence_type, window)
        )
    ]


def _validate_choice(value: str, choices: Sequence[str], kind: str) -> None:
    if value not in choices:
        raise InvalidConfiguration(f"Unsupported {kind} {value!r}; expected one of {', '.join(choices)}")


def _bucket(due: date, today: date, granularity: str, timezone: str) -> tuple[str, str, date, date]:
    if granularity == "month":
        window = month_window(due.year, due.month, timezone)
        return (
            f"{due.year:04d}-{due.month:02d}",
            month_bucket_label(window.start_date, today),
            window.start_date,
            window.end_date,
        )

    window = period_bounds(due, WEEKLY, timezone)
    return (
        window.start_date.isoformat(),
        week_bucket_label(window.start_date, window.end_date, today),
        window.start_date,
        window.end_date,
    )


def group_by_timeline(
    occurrences: Iterable[OccurrenceInstance],
    today: date,
    granularity: str = "month",
    *,
    timezone: Optional[str] = None,
) -> list[TimelineGroup]:
    """Bucket occurrences by calendar month or month-aligned week.

    Buckets are returned in calendar order; a bucket is past when it ends
    before ``today``.
    """

    _validate_choice(granularity, GRANULARITIES, "granularity")
    tz = resolve_timezone(timezone)

    groups: dict[str, TimelineGroup] = {}
    for occurrence in occurrences:
        key, label, start, end = _bucket(occurrence.due_date, today, granularity, tz)
        group = groups.setdefault(
            key,
            {
                "key": key,
                "label": label,
                "start": start,
                "end": end,
                "is_past": end < today,
                "total_amount_cents": 0,
                "occurrences": [],
            },
        )
        group["occurrences"].append(occurrence)
        group["total_amount_cents"] += occurrence.amount_cents

    for group in groups.values():
        group["occurrences"].sort(key=lambda item: (item.due_date, item.definition.name))
    return sorted(groups.values(), key=lambda group: group["start"])


def build_timeline(
    definitions: Iterable[RecurringExpenseDefinition],
    today: date,
    months_ahead: Optional[int] = None,
    granularity: str = "month",
    *,
    settings: Optional[Settings] = None,
) -> list[TimelineGroup]:
    settings = settings or get_settings()
    occurrences: list[OccurrenceInstance] = []
    for definition in definitions:
        if definition.is_active:
            occurrences.extend(generate_projected_occurrences(definition, today, months_ahead, settings=settings))
    return group_by_timeline(occurrences, today, granularity, timezone=settings.budget_timezone)


def _row(occurrences: list[OccurrenceInstance], total: int) -> CondensedExpenseRow:
    ordered = sorted(occurrences, key=lambda item: item.due_date)
    definition = ordered[0].definition
    return {
        "definition_id": definition.id,
        "name": definition.name,
        "occurrence_count": len(ordered),
        "condensed_label": condensed_label(definition.name, len(ordered)),
        "total_amount_cents": total,
        "first_due_date": ordered[0].due_date,
        "all_occurrences": ordered,
    }


def _ordered_rows(rows: Iterable[CondensedExpenseRow]) -> list[CondensedExpenseRow]:
    return sorted(rows, key=lambda row: (row["first_due_date"], row["name"]))


def individual_rows(occurrences: Iterable[OccurrenceInstance]) -> list[CondensedExpenseRow]:
    """One uncondensed row per occurrence."""

    return _ordered_rows(_row([occurrence], occurrence.amount_cents) for occurrence in occurrences)


def condense_occurrences(occurrences: Iterable[OccurrenceInstance]) -> list[CondensedExpenseRow]:
    """Collapse occurrences of the same definition into one row each."""

    by_definition: dict[str, list[OccurrenceInstance]] = {}
    for occurrence in occurrences:
        by_definition.setdefault(occurrence.definition.id, []).append(occurrence)

    return _ordered_rows(
        _row(items, sum(item.amount_cents for item in items)) for items in by_definition.values()
    )


def condense_rows(rows: Iterable[CondensedExpenseRow]) -> list[CondensedExpenseRow]:
    """Merge rows that belong to the same definition.

    Counts and totals of merged rows are summed, so condensing individual
    rows gives the same result as condensing the raw occurrences, and
    condensing condensed rows leaves them unchanged.
    """

    merged: dict[str, tuple[list[OccurrenceInstance], int]] = {}
    for row in rows:
        occurrences, total = merged.get(row["definition_id"], ([], 0))
        merged[row["definition_id"]] = (occurrences + list(row["all_occurrences"]), total + row["total_amount_cents"])

    return _ordered_rows(_row(occurrences, total) for occurrences, total in merged.values())


def condense_group(group: TimelineGroup, mode: str = "condensed") -> CondensedTimelineGroup:
    _validate_choice(mode, DISPLAY_MODES, "display mode")
    rows = condense_occurrences(group["occurrences"]) if mode == "condensed" else individual_rows(group["occurrences"])
    return {
        "key": group["key"],
        "label": group["label"],
        "total_amount_cents": group["total_amount_cents"],
        "is_past": group["is_past"],
        "expenses": rows,
    }


def condense_timeline(groups: Iterable[TimelineGroup], mode: str = "condensed") -> list[CondensedTimelineGroup]:
    _validate_choice(mode, DISPLAY_MODES, "display mode")
    return [condense_group(group, mode) for group in groups]


def _apply_split(amount_cents: int, percentage: Optional[float]) -> int:
    if percentage is None or percentage == 100:
        return amount_cents
    return int(amount_cents * percentage / 100 + 0.5)


def generate_paid_instances(
    definitions: Iterable[RecurringExpenseDefinition],
    matched_instances: Iterable[MatchedInstance],
    window: PeriodWindow,
    split_percentages: Optional[Mapping[str, float]] = None,
) -> list[PaidInstance]:
    """Every matched payment made inside ``window``, oldest first.

    Payments are filtered by transaction date, not by the billing period they
    were recorded against. ``split_percentages`` maps definition ids to the
    caller's share of each payment.
    """

    splits = split_percentages or {}
    matched = list(matched_instances)
    instances: list[PaidInstance] = []

    for definition in definitions:
        own = sorted(
            (
                instance
                for instance in matched
                if instance.definition_id == definition.id and window.contains(instance.transaction.occurred_at)
            ),
            key=lambda instance: instance.transaction.occurred_at,
        )
        for index, instance in enumerate(own):
            paid_on = instance.transaction.local_date(window.timezone)
            instances.append(
                PaidInstance(
                    definition=definition,
                    transaction=instance.transaction,
                    matched_amount_cents=_apply_split(abs(int(instance.transaction.amount_cents)), splits.get(definition.id)),
                    matched_date=paid_on,
                    instance_label=payment_label(paid_on) if definition.recurrence_type in (WEEKLY, FORTNIGHTLY) else "",
                    instance_index=index,
                    for_period=instance.for_period or paid_on,
                )
            )

    instances.sort(key=lambda item: (item.transaction.occurred_at, item.definition.name))
    return instances


def condense_paid_instances(instances: Iterable[PaidInstance]) -> list[CondensedPaidRow]:
    """Collapse paid instances per definition, e.g. ``"Rent ×2"``.

    Each row lists its instances most recent first; rows are ordered by
    their earliest payment.
    """

    by_definition: dict[str, list[PaidInstance]] = {}
    for instance in instances:
        by_definition.setdefault(instance.definition.id, []).append(instance)

    rows: list[CondensedPaidRow] = []
    for items in by_definition.values():
        items = sorted(items, key=lambda item: item.transaction.occurred_at, reverse=True)
        definition = items[0].definition
        rows.append(
            {
                "definition_id": definition.id,
                "name": definition.name,
                "occurrence_count": len(items),
                "condensed_label": condensed_label(definition.name, len(items)),
                "total_amount_cents": sum(item.matched_amount_cents for item in items),
                "all_instances": items,
            }
        )

    rows.sort(key=lambda row: row["all_instances"][-1].transaction.occurred_at)
    return rows


def _expected_total(
    definitions: Sequence[RecurringExpenseDefinition],
    window: PeriodWindow,
    splits: Mapping[str, float],
) -> int:
    total = 0
    for definition in definitions:
        count = sum(1 for _ in iter_occurrences(definition.anchor_due_date, definition.recurrence_type, window))
        total += count * _apply_split(definition.amount_magnitude_cents, splits.get(definition.id))
    return total


def compute_cash_flow_summary(
    definitions: Iterable[RecurringExpenseDefinition],
    matched_instances: Iterable[MatchedInstance],
    today: date,
    *,
    available_cents: Optional[int] = None,
    split_percentages: Optional[Mapping[str, float]] = None,
    settings: Optional[Settings] = None,
) -> CashFlowSummary:
    """Paid, remaining and upcoming bill totals for this and next month.

    ``shortfall`` equals the remaining amount unless ``available_cents`` is
    given, in which case it is the part of the remaining amount that the
    available balance does not cover.
    """

    settings = settings or get_settings()
    tz = resolve_timezone(settings.budget_timezone)
    splits = split_percentages or {}
    active = [definition for definition in definitions if definition.is_active]

    this_month = month_window(today.year, today.month, tz)
    following = (pd.Timestamp(today.year, today.month, 1) + pd.DateOffset(months=1)).date()
    next_month = month_window(following.year, following.month, tz)

    total = _expected_total(active, this_month, splits)
    paid = sum(
        instance.matched_amount_cents
        for instance in generate_paid_instances(active, matched_instances, this_month, splits)
    )
    remaining = max(total - paid, 0)
    percent_paid = round(paid / total * 100, 2) if total > 0 else 0.0

    if available_cents is None:
        shortfall = remaining
    else:
        shortfall = max(remaining - int(available_cents), 0)

    logger.debug("Cash flow for %s: total=%d paid=%d remaining=%d", this_month.start_date, total, paid, remaining)
    return {
        "this_month": {
            "paid": paid,
            "total": total,
            "remaining": remaining,
            "percent_paid": percent_paid,
        },
        "next_month": {"total": _expected_total(active, next_month, splits)},
        "shortfall": shortfall,
    }

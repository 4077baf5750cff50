"""Core logic for assembling bills overviews."""

from __future__ import annotations

import logging
from datetime import date
from typing import Iterable, Mapping, Optional

from analytics.correlation import separate_paid
from analytics.periods import next_period_start, period_bounds, period_label
from analytics.projections import (
    build_timeline,
    compute_cash_flow_summary,
    condense_paid_instances,
    condense_timeline,
    generate_paid_instances,
)
from config.settings import Settings, get_settings
from core.models import MONTHLY, BillsOverview, MatchedInstance, RecurringExpenseDefinition

__all__ = ["prepare_bills_overview"]

logger = logging.getLogger(__name__)


def prepare_bills_overview(
    definitions: Iterable[RecurringExpenseDefinition],
    matched_instances: Iterable[MatchedInstance],
    today: date,
    *,
    period_type: str = MONTHLY,
    granularity: str = "month",
    mode: str = "condensed",
    months_ahead: Optional[int] = None,
    available_cents: Optional[int] = None,
    split_percentages: Optional[Mapping[str, float]] = None,
    settings: Optional[Settings] = None,
) -> BillsOverview:
    """Evaluate every bill for the budget period that contains ``today``.

    The overview holds per-bill coverage for the period, the payments made
    in it, a forward timeline and the month's cash-flow summary.
    """

    settings = settings or get_settings()
    definitions = [definition for definition in definitions if definition.is_active]
    matched = list(matched_instances)

    period = period_bounds(today, period_type, settings.budget_timezone)
    paid, unpaid = separate_paid(definitions, matched, period, settings)

    paid_instances = generate_paid_instances(definitions, matched, period, split_percentages)
    timeline = condense_timeline(
        build_timeline(definitions, today, months_ahead, granularity, settings=settings),
        mode,
    )
    cash_flow = compute_cash_flow_summary(
        definitions,
        matched,
        today,
        available_cents=available_cents,
        split_percentages=split_percentages,
        settings=settings,
    )

    logger.info(
        "Bills overview for %s: %d paid, %d unpaid, next period starts %s",
        period.start_date,
        len(paid),
        len(unpaid),
        next_period_start(today, period_type, settings.budget_timezone),
    )

    return {
        "period": period,
        "period_label": period_label(period, period_type),
        "bills": paid + unpaid,
        "paid": paid,
        "unpaid": unpaid,
        "paid_instances": condense_paid_instances(paid_instances),
        "timeline": timeline,
        "cash_flow": cash_flow,
    }

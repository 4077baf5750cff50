"""Analytics helpers behind the bills engine."""

from analytics.correlation import (
    bill_statuses,
    expected_count,
    find_best_match,
    is_fully_covered,
    link_manually,
    matched_count,
    score_match,
    separate_paid,
)
from analytics.merchants import derive_merchant_pattern, matches_merchant_pattern, merchant_display_name
from analytics.occurrences import (
    convert_to_target_period,
    count_occurrences,
    effective_window,
    iter_occurrences,
    nearest_occurrence,
    step_from_anchor,
)
from analytics.periods import (
    month_slices,
    month_window,
    next_period_start,
    period_bounds,
    period_label,
    previous_period_start,
    prorate_for_period,
    window_from_dates,
)
from analytics.projections import (
    build_timeline,
    compute_cash_flow_summary,
    condense_paid_instances,
    condense_timeline,
    generate_paid_instances,
    generate_projected_occurrences,
    group_by_timeline,
    horizon_window,
)
from analytics.recurring import detect, detect_pattern, detect_recurring_transactions, refresh_definition

__all__ = [
    "bill_statuses",
    "expected_count",
    "find_best_match",
    "is_fully_covered",
    "link_manually",
    "matched_count",
    "score_match",
    "separate_paid",
    "derive_merchant_pattern",
    "matches_merchant_pattern",
    "merchant_display_name",
    "convert_to_target_period",
    "count_occurrences",
    "effective_window",
    "iter_occurrences",
    "nearest_occurrence",
    "step_from_anchor",
    "month_slices",
    "month_window",
    "next_period_start",
    "period_bounds",
    "period_label",
    "previous_period_start",
    "prorate_for_period",
    "window_from_dates",
    "build_timeline",
    "compute_cash_flow_summary",
    "condense_paid_instances",
    "condense_timeline",
    "generate_paid_instances",
    "generate_projected_occurrences",
    "group_by_timeline",
    "horizon_window",
    "detect",
    "detect_pattern",
    "detect_recurring_transactions",
    "refresh_definition",
]

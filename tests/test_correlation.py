"""Tests for payment correlation and automatic match scoring."""

from __future__ import annotations

from datetime import date

import pandas as pd
import pytest

from analytics.correlation import (
    bill_statuses,
    expected_count,
    find_best_match,
    is_fully_covered,
    link_manually,
    matched_count,
    next_due_date,
    score_match,
    separate_paid,
)
from analytics.periods import month_window, period_bounds
from core.models import FORTNIGHTLY, MONTHLY, WEEKLY, TransactionRecord

TZ = "Australia/Sydney"


@pytest.fixture()
def rent(make_definition):
    return make_definition("rent", "Rent", -180000, date(2026, 1, 20), MONTHLY)


@pytest.fixture()
def gym(make_definition):
    return make_definition("gym", "Anytime Fitness", -1795, date(2026, 1, 1), WEEKLY)


def test_monthly_payment_counts_in_narrow_budget_period(rent, make_match, settings):
    window = period_bounds(date(2026, 2, 3), FORTNIGHTLY, TZ)
    matches = [make_match(rent, date(2026, 2, 20))]

    assert matched_count(rent, matches, window, settings) == 1
    assert expected_count(rent, window, settings) == 1
    assert is_fully_covered(rent, matches, window, settings)


def test_only_own_matches_inside_window_are_counted(rent, gym, make_match, settings):
    window = month_window(2026, 2, TZ)
    matches = [
        make_match(rent, date(2026, 1, 20)),
        make_match(rent, date(2026, 3, 1)),
        make_match(gym, date(2026, 2, 5)),
    ]

    assert matched_count(rent, matches, window, settings) == 0
    assert not is_fully_covered(rent, matches, window, settings)


def test_partially_paid_weekly_bill(gym, make_match, settings):
    window = month_window(2026, 1, TZ)
    matches = [make_match(gym, day) for day in (date(2026, 1, 1), date(2026, 1, 8), date(2026, 1, 15))]

    [status] = bill_statuses([gym], matches, window, settings)

    assert status["expected_count"] == 5
    assert status["matched_count"] == 3
    assert not status["is_covered"]
    assert status["outstanding_count"] == 2
    assert status["outstanding_amount_cents"] == 2 * 1795


def test_inactive_definitions_are_skipped(make_definition, settings):
    paused = make_definition("old", "Old Gym", -1500, date(2026, 1, 3), WEEKLY, is_active=False)

    assert bill_statuses([paused], [], month_window(2026, 1, TZ), settings) == []


def test_separate_paid_orders_both_lists(make_definition, make_match, settings):
    window = month_window(2026, 1, TZ)
    rent = make_definition("rent", "Rent", -180000, date(2026, 1, 2))
    phone = make_definition("phone", "Telstra", -6500, date(2026, 1, 27))
    power = make_definition("power", "AGL", -31000, date(2026, 1, 12))
    water = make_definition("water", "Sydney Water", -9000, date(2026, 1, 6))
    matches = [make_match(rent, date(2026, 1, 2)), make_match(water, date(2026, 1, 7))]

    paid, unpaid = separate_paid([rent, phone, power, water], matches, window, settings)

    assert [status["definition"].id for status in paid] == ["water", "rent"]
    assert [status["definition"].id for status in unpaid] == ["power", "phone"]


def test_paid_order_compares_instants_across_offsets(make_definition, settings):
    window = month_window(2026, 1, TZ)
    water = make_definition("water", "Sydney Water", -9000, date(2026, 1, 10))
    phone = make_definition("phone", "Telstra", -6500, date(2026, 1, 10))
    # 16:00 in Sydney, stamped in UTC
    utc_payment = TransactionRecord(
        id="w1",
        description="SYDNEY WATER",
        amount_cents=-9000,
        occurred_at=pd.Timestamp("2026-01-10 05:00", tz="UTC"),
    )
    local_payment = TransactionRecord(
        id="p1",
        description="TELSTRA",
        amount_cents=-6500,
        occurred_at=pd.Timestamp("2026-01-10 12:00", tz=TZ),
    )
    matches = [
        link_manually(water, utc_payment),
        link_manually(phone, local_payment),
    ]

    paid, unpaid = separate_paid([phone, water], matches, window, settings)

    assert [status["definition"].id for status in paid] == ["water", "phone"]
    assert unpaid == []


def test_next_due_date(rent):
    assert next_due_date(rent, date(2026, 2, 21), TZ) == date(2026, 3, 20)
    assert next_due_date(rent, date(2026, 2, 20), TZ) == date(2026, 2, 20)


def test_score_match_tiers(rent, make_txn, settings):
    exact = make_txn("t1", "RENT PAYMENT 8812", -180000, date(2026, 2, 20))
    close = make_txn("t2", "RENT PAYMENT 8813", -194400, date(2026, 2, 22))
    named = make_txn("t3", "BPAY rent", -180000, date(2026, 2, 20))
    other = make_txn("t4", "WOOLWORTHS", -180000, date(2026, 2, 20))

    assert score_match(exact, rent, settings) == pytest.approx(1.0)
    # 8% off the amount and two days late
    assert score_match(close, rent, settings) == pytest.approx(0.85)
    assert score_match(named, rent, settings) == pytest.approx(0.8)
    assert score_match(other, rent, settings) == 0.0


def test_find_best_match(rent, gym, make_txn, settings):
    payment = make_txn("t1", "RENT PAYMENT", -180000, date(2026, 2, 20))

    best = find_best_match(payment, [gym, rent], settings=settings)

    assert best is not None
    assert best.definition_id == "rent"
    assert best.confidence == pytest.approx(1.0)
    assert not best.is_manual

    stray = make_txn("t2", "RENT PAYMENT", -50000, date(2026, 3, 5))
    assert find_best_match(stray, [rent], settings=settings) is None
    assert find_best_match(stray, [rent], min_confidence=0.4, settings=settings) is not None


def test_direct_link_wins(rent, gym, make_txn, settings):
    payment = make_txn("linked", "SOMETHING ELSE", -100, date(2026, 2, 2))

    best = find_best_match(payment, [rent, gym], direct_links={"linked": "gym"}, settings=settings)

    assert best.definition_id == "gym"
    assert best.confidence == 1.0
    assert best.is_manual


def test_link_manually(rent, make_txn):
    payment = make_txn("t1", "CASH", -180000, date(2026, 2, 1))

    link = link_manually(rent, payment, for_period=date(2026, 2, 1))

    assert link.confidence == 1.0
    assert link.is_manual
    assert link.for_period == date(2026, 2, 1)

"""Tests for the transaction adapter and store queries."""

from __future__ import annotations

from datetime import date

import pandas as pd
import pytest

from analytics.periods import month_window
from core.data_loader import (
    load_transactions,
    records_from_frame,
    to_transaction_record,
    transactions_in_window,
    transactions_matching_pattern,
)
from data.synth import generate_synthetic_transactions, write_transactions_csv

TZ = "Australia/Sydney"


def test_settled_timestamp_is_preferred():
    record = to_transaction_record(
        {
            "id": "t1",
            "description": " NETFLIX 123456 ",
            "amount_cents": -2299,
            "created_at": "2026-01-31T20:00:00",
            "settled_at": "2026-02-01T09:00:00",
        },
        TZ,
    )

    assert record.description == "NETFLIX 123456"
    assert record.occurred_at == pd.Timestamp("2026-02-01 09:00", tz=TZ)
    assert record.local_date(TZ) == date(2026, 2, 1)
    assert record.account_id is None


def test_created_timestamp_is_the_fallback():
    record = to_transaction_record(
        {"id": 7, "description": "GYM", "amount": "-17.95", "created_at": "2026-01-08T10:00:00+00:00", "settled_at": None},
        TZ,
    )

    assert record.id == "7"
    assert record.amount_cents == -1795
    assert record.occurred_at.tz is not None
    assert record.local_date(TZ) == date(2026, 1, 8)


@pytest.mark.parametrize(
    ("row", "field"),
    [
        ({"id": "t", "created_at": "2026-01-01"}, "amount"),
        ({"id": "t", "amount_cents": -100}, "created_at"),
        ({"id": "t", "amount_cents": "abc", "created_at": "2026-01-01"}, "amount_cents"),
        ({"id": "t", "amount_cents": -100, "settled_at": "not a date"}, "settled_at"),
        ({"amount_cents": -100, "created_at": "2026-01-01"}, "id"),
    ],
)
def test_malformed_rows_name_the_field(row, field):
    with pytest.raises(ValueError, match=field):
        to_transaction_record(row, TZ)


def test_load_transactions_from_csv(tmp_path):
    csv_path = tmp_path / "transactions.csv"
    frame = write_transactions_csv(str(csv_path), seed=3, start_date=date(2025, 7, 1), months=2)

    records = load_transactions(csv_path, TZ)

    assert len(records) == len(frame)
    assert all(record.occurred_at.tz is not None for record in records)
    assert any(record.description.startswith("NETFLIX") for record in records)


def test_load_transactions_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_transactions(tmp_path / "missing.csv")


def test_store_queries(make_txn):
    records = [
        make_txn("b", "NETFLIX 2", -2299, date(2026, 2, 14)),
        make_txn("a", "Netflix 1", -2299, date(2026, 1, 14)),
        make_txn("c", "STAN", -1200, date(2026, 1, 20), account_id="acc_everyday"),
    ]

    assert [record.id for record in transactions_matching_pattern(records, "NETFLIX")] == ["a", "b"]

    january = month_window(2026, 1, TZ)
    assert [record.id for record in transactions_in_window(records, january)] == ["a", "c"]
    assert [record.id for record in transactions_in_window(records, january, account_ids=["acc_bills"])] == ["a"]


def test_synthetic_frame_round_trips_through_adapter():
    frame = generate_synthetic_transactions(date(2025, 1, 1), months=1, seed=11)

    records = records_from_frame(frame, TZ)

    assert [record.id for record in records] == frame["id"].tolist()
    assert records_from_frame(frame.iloc[0:0], TZ) == []

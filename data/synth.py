"""Synthetic bank-feed transaction generator for the bills engine.

Produces recurring bill histories with realistic amount drift, due-date
jitter and reference suffixes, alongside one-off card spend, for
development and testing.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterator, List, Optional, Sequence, Tuple, TypeVar

import numpy as np
import pandas as pd

from analytics.occurrences import step_from_anchor
from core.data_loader import records_from_frame
from core.models import FORTNIGHTLY, MONTHLY, QUARTERLY, WEEKLY, YEARLY, TransactionRecord

T = TypeVar("T")


FIELDS: Tuple[str, ...] = (
    "id",
    "description",
    "amount_cents",
    "created_at",
    "settled_at",
    "account_id",
)


@dataclass(frozen=True)
class BillProfile:
    """A recurring bill used in synthetic ledgers."""

    description: str
    amount_cents: int
    recurrence_type: str
    due_day: int = 1
    amount_drift: float = 0.0
    day_jitter: int = 0
    reference_suffix: bool = False


BILL_PROFILES: Sequence[BillProfile] = (
    BillProfile("NETFLIX", -2299, MONTHLY, due_day=14, reference_suffix=True),
    BillProfile("SPOTIFY P1A2B3", -1399, MONTHLY, due_day=3),
    BillProfile("RAY WHITE RENT", -240000, FORTNIGHTLY, due_day=2),
    BillProfile("ANYTIME FITNESS", -1795, WEEKLY, due_day=4, day_jitter=1),
    BillProfile("AGL ENERGY", -31000, QUARTERLY, due_day=20, amount_drift=0.12, day_jitter=3),
    BillProfile("NRMA INSURANCE", -118000, YEARLY, due_day=9),
    BillProfile("TELSTRA MOBILE", -6500, MONTHLY, due_day=27, amount_drift=0.03, day_jitter=2),
)

CARD_MERCHANTS: Sequence[Tuple[str, Tuple[int, int]]] = (
    ("WOOLWORTHS METRO", (-12000, -1500)),
    ("COLES EXPRESS", (-9000, -800)),
    ("UBER *TRIP", (-4500, -900)),
    ("GUZMAN Y GOMEZ", (-3200, -1400)),
)

ACCOUNT_IDS: Sequence[str] = ("acc_everyday", "acc_bills")


def iter_bill_dates(profile: BillProfile, start: date, count: int, rng: np.random.Generator) -> Iterator[date]:
    """Yield ``count`` due dates stepped from the first due day on or after ``start``."""

    anchor = start.replace(day=min(profile.due_day, 28))
    if anchor < start:
        anchor = step_from_anchor(anchor, MONTHLY, 1)

    for step in range(count):
        due = step_from_anchor(anchor, profile.recurrence_type, step)
        jitter = int(rng.integers(-profile.day_jitter, profile.day_jitter + 1)) if profile.day_jitter else 0
        yield due + timedelta(days=jitter)


def generate_bill_history(
    profile: BillProfile,
    start: date,
    count: int,
    *,
    seed: Optional[int] = None,
    timezone: Optional[str] = None,
    id_prefix: str = "txn",
) -> List[TransactionRecord]:
    """Generate ``count`` oldest-first transactions paying one bill."""

    if count < 0:
        raise ValueError("count must not be negative")

    rng = np.random.default_rng(seed)
    rows = [
        _bill_row(profile, due, index, rng, id_prefix)
        for index, due in enumerate(iter_bill_dates(profile, start, count, rng))
    ]
    return records_from_frame(pd.DataFrame.from_records(rows, columns=FIELDS), timezone)


def generate_synthetic_transactions(
    start_date: date,
    months: int = 6,
    *,
    profiles: Sequence[BillProfile] = BILL_PROFILES,
    card_spend_per_month: int = 12,
    seed: Optional[int] = None,
) -> pd.DataFrame:
    """Generate a synthetic ledger of bill payments and card spend.

    Rows carry naive ``created_at``/``settled_at`` civil timestamps; card
    spend made on the last day of the ledger is left unsettled.
    """

    if months <= 0:
        raise ValueError("months must be a positive integer")

    rng = np.random.default_rng(seed)
    period_end = step_from_anchor(start_date, MONTHLY, months) - timedelta(days=1)
    counter = itertools.count(1)
    records: List[dict] = []

    for profile in profiles:
        for due in iter_bill_dates(profile, start_date, _steps_needed(profile, months), rng):
            if start_date <= due <= period_end:
                records.append(_bill_row(profile, due, next(counter), rng, "txn"))

    all_days = [day.date() for day in pd.date_range(start=start_date, end=period_end, freq="D")]
    for _ in range(card_spend_per_month * months):
        description, (low, high) = _rng_choice(CARD_MERCHANTS, rng)
        day = _rng_choice(all_days, rng)
        created = pd.Timestamp(day) + pd.Timedelta(minutes=int(rng.integers(7 * 60, 22 * 60)))
        records.append(
            {
                "id": f"txn_{next(counter):06d}",
                "description": description,
                "amount_cents": int(rng.integers(low, high)),
                "created_at": created.isoformat(),
                "settled_at": None if day == period_end else (created + pd.Timedelta(days=1)).isoformat(),
                "account_id": ACCOUNT_IDS[0],
            }
        )

    df = pd.DataFrame.from_records(records, columns=FIELDS)
    df.sort_values(["created_at", "id"], inplace=True)
    df.reset_index(drop=True, inplace=True)
    return df


def write_transactions_csv(path: str, *, seed: Optional[int] = None, **kwargs) -> pd.DataFrame:
    """Generate synthetic data and persist it to ``path``.

    Additional keyword arguments are forwarded to
    :func:`generate_synthetic_transactions`.
    """

    start_date = kwargs.pop("start_date", date.today().replace(day=1))
    df = generate_synthetic_transactions(start_date, seed=seed, **kwargs)
    df.to_csv(path, index=False)
    return df


def _steps_needed(profile: BillProfile, months: int) -> int:
    per_month = {WEEKLY: 5, FORTNIGHTLY: 3}.get(profile.recurrence_type, 1)
    return months * per_month + 1


def _bill_row(profile: BillProfile, due: date, index: int, rng: np.random.Generator, id_prefix: str) -> dict:
    drift = rng.normal(0, profile.amount_drift) if profile.amount_drift else 0.0
    amount_cents = int(round(profile.amount_cents * (1 + drift)))
    description = profile.description
    if profile.reference_suffix:
        description = f"{description} {int(rng.integers(100000, 999999))}"

    created = pd.Timestamp(due) + pd.Timedelta(hours=int(rng.integers(1, 6)))
    return {
        "id": f"{id_prefix}_{index:06d}",
        "description": description,
        "amount_cents": amount_cents,
        "created_at": created.isoformat(),
        "settled_at": (created + pd.Timedelta(hours=2)).isoformat(),
        "account_id": ACCOUNT_IDS[1],
    }


def _rng_choice(options: Sequence[T], rng: np.random.Generator) -> T:
    if not options:
        raise ValueError("Cannot choose from an empty sequence")
    idx = int(rng.integers(0, len(options)))
    return options[idx]

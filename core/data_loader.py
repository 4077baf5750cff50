"""Transaction loading and in-memory store queries for the bills engine."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from functools import lru_cache
from pathlib import Path
from typing import Any, Final, Iterable, Mapping, Optional

import pandas as pd

from analytics.merchants import matches_merchant_pattern
from analytics.periods import resolve_timezone
from core.models import PeriodWindow, TransactionRecord

__all__ = [
    "to_transaction_record",
    "records_from_frame",
    "load_transactions",
    "transactions_matching_pattern",
    "transactions_in_window",
]


_CACHE_SIZE: Final[int] = 8
_TIMESTAMP_FIELDS: Final[tuple[str, ...]] = ("settled_at", "created_at")


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def _amount_cents(row: Mapping[str, Any]) -> int:
    if not _is_missing(row.get("amount_cents")):
        try:
            return int(row["amount_cents"])
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Invalid amount_cents: {row['amount_cents']!r}") from exc

    if not _is_missing(row.get("amount")):
        try:
            cents = Decimal(str(row["amount"])) * 100
        except InvalidOperation as exc:
            raise ValueError(f"Invalid amount: {row['amount']!r}") from exc
        return int(cents.to_integral_value())

    raise ValueError("Transaction row is missing amount_cents/amount")


def _occurred_at(row: Mapping[str, Any], timezone: str) -> pd.Timestamp:
    for field in _TIMESTAMP_FIELDS:
        value = row.get(field)
        if _is_missing(value):
            continue
        try:
            moment = pd.Timestamp(value)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Invalid {field}: {value!r}") from exc
        if moment.tzinfo is None:
            return moment.tz_localize(timezone, nonexistent="shift_forward", ambiguous=True)
        return moment.tz_convert(timezone)

    raise ValueError("Transaction row is missing settled_at/created_at")


def to_transaction_record(row: Mapping[str, Any], timezone: Optional[str] = None) -> TransactionRecord:
    """Normalise one raw transaction mapping into a :class:`TransactionRecord`.

    ``amount_cents`` wins over a decimal ``amount``; ``settled_at`` wins over
    ``created_at``. Naive timestamps are civil times in the budgeting timezone.
    """

    tz = resolve_timezone(timezone)
    if _is_missing(row.get("id")):
        raise ValueError("Transaction row is missing id")

    account_id = row.get("account_id")
    return TransactionRecord(
        id=str(row["id"]),
        description=str(row.get("description") or "").strip(),
        amount_cents=_amount_cents(row),
        occurred_at=_occurred_at(row, tz),
        account_id=None if _is_missing(account_id) else str(account_id),
    )


def records_from_frame(frame: pd.DataFrame, timezone: Optional[str] = None) -> list[TransactionRecord]:
    if frame.empty:
        return []
    return [to_transaction_record(row, timezone) for row in frame.to_dict(orient="records")]


@lru_cache(maxsize=_CACHE_SIZE)
def _read_frame(path: Path) -> pd.DataFrame:
    return pd.read_csv(path, dtype={"id": str, "account_id": str})


def load_transactions(csv_path: str | Path, timezone: Optional[str] = None) -> list[TransactionRecord]:
    """Return transaction records parsed from a CSV export.

    Parsed frames are cached per path to avoid redundant disk reads when the
    same export is evaluated repeatedly.
    """

    path = Path(csv_path)
    if not path.exists():
        raise FileNotFoundError(f"CSV file not found: {path}")

    return records_from_frame(_read_frame(path), timezone)


def transactions_matching_pattern(records: Iterable[TransactionRecord], pattern: str) -> list[TransactionRecord]:
    """Records whose description prefix-matches ``pattern``, oldest first."""

    matches = [record for record in records if matches_merchant_pattern(record.description, pattern)]
    return sorted(matches, key=lambda record: (record.occurred_at, record.id))


def transactions_in_window(
    records: Iterable[TransactionRecord],
    window: PeriodWindow,
    account_ids: Optional[Iterable[str]] = None,
) -> list[TransactionRecord]:
    accounts = None if account_ids is None else set(account_ids)
    selected = [
        record
        for record in records
        if window.contains(record.occurred_at) and (accounts is None or record.account_id in accounts)
    ]
    return sorted(selected, key=lambda record: (record.occurred_at, record.id))

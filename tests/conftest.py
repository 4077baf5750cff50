"""Shared fixtures for the bills engine test-suite."""

from __future__ import annotations

import sys
from datetime import date
from pathlib import Path

import pandas as pd
import pytest

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from config.settings import Settings
from core.models import MONTHLY, MatchedInstance, RecurringExpenseDefinition, TransactionRecord

TZ = "Australia/Sydney"


@pytest.fixture()
def settings() -> Settings:
    return Settings(budget_timezone=TZ)


@pytest.fixture()
def make_txn():
    """Build a transaction paid at midday Sydney time on ``day``."""

    def _make(
        txn_id: str,
        description: str,
        amount_cents: int,
        day: date,
        account_id: str | None = "acc_bills",
    ) -> TransactionRecord:
        return TransactionRecord(
            id=txn_id,
            description=description,
            amount_cents=amount_cents,
            occurred_at=pd.Timestamp(day).replace(hour=12).tz_localize(TZ),
            account_id=account_id,
        )

    return _make


@pytest.fixture()
def make_definition():
    def _make(
        definition_id: str,
        name: str,
        amount_cents: int,
        anchor: date,
        recurrence_type: str = MONTHLY,
        *,
        merchant_pattern: str | None = None,
        is_active: bool = True,
    ) -> RecurringExpenseDefinition:
        return RecurringExpenseDefinition(
            id=definition_id,
            name=name,
            merchant_pattern=merchant_pattern if merchant_pattern is not None else name.upper(),
            expected_amount_cents=amount_cents,
            recurrence_type=recurrence_type,
            anchor_due_date=anchor,
            confidence=1.0,
            detection_count=3,
            last_observed_date=anchor,
            is_active=is_active,
        )

    return _make


@pytest.fixture()
def make_match(make_txn):
    """Link a fresh transaction for ``definition`` paid on ``day``."""

    def _make(definition: RecurringExpenseDefinition, day: date, amount_cents: int | None = None, suffix: str = "") -> MatchedInstance:
        amount = definition.expected_amount_cents if amount_cents is None else amount_cents
        txn = make_txn(f"{definition.id}-{day.isoformat()}{suffix}", definition.merchant_pattern, amount, day)
        return MatchedInstance(definition_id=definition.id, transaction=txn, confidence=1.0, is_manual=True)

    return _make

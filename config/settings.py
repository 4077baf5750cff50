"""Centralised configuration handling for the bills engine."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_BUDGET_TIMEZONE = "Australia/Sydney"

DEFAULT_RECURRENCE_BANDS: dict[str, tuple[float, float]] = {
    "weekly": (6.0, 8.0),
    "fortnightly": (13.0, 15.0),
    "monthly": (28.0, 35.0),
    "quarterly": (85.0, 95.0),
    "yearly": (350.0, 380.0),
}


class Settings(BaseSettings):
    """Engine settings sourced from ``BILLS_*`` environment variables."""

    budget_timezone: str = DEFAULT_BUDGET_TIMEZONE
    projection_months_ahead: int = 1
    expansion_min_days: int = 28

    recurrence_bands: dict[str, tuple[float, float]] = Field(
        default_factory=lambda: dict(DEFAULT_RECURRENCE_BANDS)
    )
    irregular_cv_threshold: float = 0.3
    timing_cv_threshold: float = 0.25
    min_timing_samples: int = 3
    amount_tolerance: float = 0.10
    insufficient_evidence_confidence: float = 0.2
    base_confidence: float = 0.2
    consistent_amount_weight: float = 0.4
    inconsistent_amount_weight: float = 0.2
    consistent_timing_weight: float = 0.4
    cyclical_timing_weight: float = 0.2
    fallback_prediction_days: int = 30

    match_min_confidence: float = 0.6
    high_confidence_threshold: float = 0.8
    low_confidence_threshold: float = 0.5

    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_prefix="BILLS_", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    """Load and cache engine settings."""

    return Settings()

"""Tests for settings loading and logging configuration."""

from __future__ import annotations

import io
import logging
import sys
from datetime import date

import pytest

import core.logging_config as logging_config
from analytics.periods import resolve_timezone
from config.settings import DEFAULT_RECURRENCE_BANDS, Settings, get_settings
from core.errors import BillsEngineError, InvalidConfiguration


def test_settings_defaults():
    settings = Settings()

    assert settings.budget_timezone == "Australia/Sydney"
    assert settings.projection_months_ahead == 1
    assert settings.expansion_min_days == 28
    assert settings.recurrence_bands == DEFAULT_RECURRENCE_BANDS
    assert settings.match_min_confidence == pytest.approx(0.6)


def test_settings_read_prefixed_environment(monkeypatch):
    monkeypatch.setenv("BILLS_PROJECTION_MONTHS_AHEAD", "3")
    monkeypatch.setenv("BILLS_BUDGET_TIMEZONE", "Europe/London")

    settings = Settings()

    assert settings.projection_months_ahead == 3
    assert settings.budget_timezone == "Europe/London"


def test_get_settings_is_cached():
    assert get_settings() is get_settings()


def test_invalid_configuration_is_a_value_error():
    assert issubclass(InvalidConfiguration, BillsEngineError)
    assert issubclass(InvalidConfiguration, ValueError)


def test_rejected_timezone_is_logged(caplog):
    caplog.set_level(logging.WARNING, logger="analytics.periods")

    with pytest.raises(InvalidConfiguration):
        resolve_timezone("Atlantis/Capital")

    assert "Atlantis/Capital" in caplog.text


@pytest.fixture()
def restore_package_loggers():
    saved = {
        name: (logger.handlers[:], logger.level, logger.propagate)
        for name in ("analytics", "core")
        for logger in [logging.getLogger(name)]
    }
    configured = logging_config._CONFIGURED
    yield
    for name, (handlers, level, propagate) in saved.items():
        logger = logging.getLogger(name)
        logger.handlers = handlers
        logger.setLevel(level)
        logger.propagate = propagate
    logging_config._CONFIGURED = configured


def test_configure_logging_routes_package_loggers(restore_package_loggers):
    stream = io.StringIO()

    logging_config.configure_logging("DEBUG", stream=stream, force=True)
    logging.getLogger("analytics.occurrences").debug("window check %s", date(2026, 2, 1))

    assert "analytics.occurrences - DEBUG - window check 2026-02-01" in stream.getvalue()
    assert len(logging.getLogger("analytics").handlers) == 1


def test_configure_logging_reads_environment_level(monkeypatch, restore_package_loggers):
    monkeypatch.setenv("BILLS_LOG_LEVEL", "warning")
    stream = io.StringIO()

    logging_config.configure_logging(stream=stream, force=True)
    logging.getLogger("core.summary_service").info("hidden")
    logging.getLogger("core.summary_service").warning("shown")

    assert "hidden" not in stream.getvalue()
    assert "shown" in stream.getvalue()


def test_configure_logging_is_idempotent_without_force(restore_package_loggers):
    first, second = io.StringIO(), io.StringIO()

    logging_config.configure_logging("INFO", stream=first, force=True)
    logging_config.configure_logging("INFO", stream=second)
    logging.getLogger("analytics").info("once")

    assert "once" in first.getvalue()
    assert second.getvalue() == ""


def test_configure_logging_uses_current_stderr(monkeypatch, restore_package_loggers):
    swapped = io.StringIO()
    monkeypatch.setattr(sys, "stderr", swapped)

    logging_config.configure_logging("INFO", force=True)
    logging.getLogger("core.summary_service").info("to swapped stderr")

    assert "to swapped stderr" in swapped.getvalue()

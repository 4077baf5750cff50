"""Logging configuration for the bills engine.

Library modules only ever call ``logging.getLogger(__name__)``. Host
applications (a web handler, a notebook, a batch job) call
:func:`configure_logging` once at start-up to route the engine's package
loggers to a single stream handler.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import IO, Optional

from config.settings import get_settings

__all__ = ["configure_logging"]

_PACKAGE_LOGGERS: tuple[str, ...] = ("analytics", "core")
_DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_CONFIGURED = False

for _name in _PACKAGE_LOGGERS:
    logging.getLogger(_name).addHandler(logging.NullHandler())


def _parse_level(level: int | str | None) -> int:
    if isinstance(level, int):
        return level
    if level is None:
        level = os.getenv("BILLS_LOG_LEVEL") or get_settings().log_level
    text = str(level).strip().upper()
    if text.isdigit():
        return int(text)
    numeric = getattr(logging, text, None)
    if isinstance(numeric, int):
        return numeric
    return logging.INFO


def configure_logging(
    level: int | str | None = None,
    *,
    fmt: str | None = None,
    stream: Optional[IO[str]] = None,
    force: bool = False,
) -> None:
    """Attach one ``StreamHandler`` to each engine package logger.

    Parameters
    ----------
    level:
        ``int`` or level name. Falls back to ``BILLS_LOG_LEVEL`` and then to
        ``Settings.log_level``.
    fmt:
        Optional format string for the handler.
    stream:
        Output stream. ``None`` resolves ``sys.stderr`` at call time.
    force:
        Reconfigure even when a previous call already attached handlers.
    """

    global _CONFIGURED
    if _CONFIGURED and not force:
        return

    resolved = _parse_level(level)
    formatter = logging.Formatter(fmt or _DEFAULT_FORMAT)

    for name in _PACKAGE_LOGGERS:
        logger = logging.getLogger(name)
        for existing in list(logger.handlers):
            logger.removeHandler(existing)
        handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
        handler.setFormatter(formatter)
        handler.setLevel(resolved)
        logger.addHandler(handler)
        logger.setLevel(resolved)
        logger.propagate = False

    _CONFIGURED = True

"""Logging for the ``statement_ingest`` package.

Records go to one stderr handler on the package logger; the root logger is
left to the embedding application.
"""

from __future__ import annotations

import logging
import sys

from statement_ingest.config.settings import Settings, get_settings

PACKAGE_LOGGER = "statement_ingest"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_handler: logging.Handler | None = None


def configure_logging(
    level: str | int | None = None,
    *,
    settings: Settings | None = None,
) -> logging.Logger:
    """Attach the package handler once; later calls return the logger unchanged."""
    global _handler
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    if _handler is not None:
        return package_logger

    resolved: str | int = level if level is not None else (settings or get_settings()).log_level
    _handler = logging.StreamHandler(sys.stderr)
    _handler.setFormatter(logging.Formatter(LOG_FORMAT))
    package_logger.addHandler(_handler)
    package_logger.setLevel(resolved)
    return package_logger


def get_logger(name: str) -> logging.Logger:
    configure_logging()
    return logging.getLogger(name)

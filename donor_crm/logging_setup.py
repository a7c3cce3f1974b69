"""Logging setup for the donor CRM."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

LOGGER_NAME = "donor_crm"


def setup_logger(
    name: str = LOGGER_NAME,
    level: int = logging.INFO,
    log_file: str | Path | None = None,
) -> logging.Logger:
    """Attach stderr (and optionally file) handlers to the package logger.

    Calling it again returns the already configured logger unchanged.
    """
    log = logging.getLogger(name)
    if log.handlers:
        return log

    log.setLevel(level)
    fmt = logging.Formatter(
        "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(fmt)
    log.addHandler(handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(fmt)
        log.addHandler(file_handler)

    return log


def get_logger(name: str = LOGGER_NAME) -> logging.Logger:
    return logging.getLogger(name)

"""Logging utilities with single-line key=value output for the deal engine."""

from __future__ import annotations

import logging
import os
from typing import Optional

_LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def configure_logging(namespace: str = "dealfinder", level: Optional[str] = None) -> logging.Logger:
    """Return the package logger, attaching a stream handler on first use.

    Records are emitted as ``event key=value`` lines (``comparables_tier
    target=123 radius=2km found=10``) so they stay greppable in aggregated logs
    and readable in a terminal. ``level`` overrides ``LOG_LEVEL``.
    """

    logger = logging.getLogger(namespace)
    if level is not None:
        logger.setLevel(level.upper())
    if logger.handlers:
        return logger

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(fmt=_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S"))
    logger.addHandler(handler)
    if level is None:
        logger.setLevel(_LOG_LEVEL)
    logger.propagate = False
    return logger


def get_logger(child: Optional[str] = None) -> logging.Logger:
    """Logger for one engine layer, e.g. ``get_logger("services.comps")``."""

    base = configure_logging()
    if child:
        return base.getChild(child)
    return base

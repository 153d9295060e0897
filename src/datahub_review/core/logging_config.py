"""Logging setup for the service process."""

from __future__ import annotations

import logging

from datahub_review.core.settings import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Install a single stream handler on the package logger.

    Safe to call more than once; repeated calls only adjust the level.
    """
    logger = logging.getLogger("datahub_review")
    logger.setLevel((level or settings.log_level).upper())

    if not any(getattr(handler, "_datahub_review", False) for handler in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._datahub_review = True  # type: ignore[attr-defined]
        logger.addHandler(handler)

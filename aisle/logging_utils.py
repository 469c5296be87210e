"""Logging setup for the pantry service.

Call ``setup_logging(settings)`` once from the app factory; modules then use
``logging.getLogger(__name__)``.
"""
from __future__ import annotations

import logging
import logging.config

from aisle.config import Settings


def build_logging_config(level: str) -> dict:
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "format": "%(asctime)s %(levelname)-8s %(name)s: %(message)s",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "standard",
                "stream": "ext://sys.stderr",
            },
        },
        "root": {"handlers": ["console"], "level": "WARNING"},
        "loggers": {
            "aisle": {"level": level.upper()},
        },
    }


def setup_logging(settings: Settings) -> None:
    """Idempotent: dictConfig replaces the previous configuration of the `aisle` logger."""
    logging.config.dictConfig(build_logging_config(settings.log_level))

"""Logging configuration for the reservation services."""

import logging
import logging.config
import os
from typing import Any, Optional

# Loggers owned by this project
PROJECT_LOGGERS = ("backend", "database", "data")


def setup_logging(level: Optional[str] = None) -> None:
    """
    Configure console logging for the reservation services.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR); defaults to ``LOG_LEVEL``
    """
    level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()

    config: dict[str, Any] = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "structured": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "structured",
                "level": level,
            },
        },
        "loggers": {
            name: {"handlers": ["console"], "level": level, "propagate": False}
            for name in PROJECT_LOGGERS
        },
        "root": {
            "handlers": ["console"],
            "level": "WARNING",
        },
    }

    logging.config.dictConfig(config)

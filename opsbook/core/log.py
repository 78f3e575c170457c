"""Logging setup shared by the API process and scripts."""

from __future__ import annotations

import logging.config


def configure_logging(level: str = "INFO") -> None:
    """Install a single timestamped stream handler on the root logger."""

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "default": {
                    "format": "%(asctime)s %(levelname)s [%(name)s] %(message)s",
                },
            },
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "default",
                },
            },
            "root": {"handlers": ["console"], "level": level.upper()},
        }
    )

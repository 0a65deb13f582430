"""Logging configuration for the fleet tools."""

import logging
import logging.config

from pythonjsonlogger.json import JsonFormatter


def setup_logging(log_level: str = "WARNING", json_output: bool = False) -> None:
    """Send log records to stderr, as plain text or one JSON object per line."""
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "standard": {
                    "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
                },
                "json": {
                    "()": JsonFormatter,
                    "format": "%(asctime)s %(name)s %(levelname)s %(message)s",
                },
            },
            "handlers": {
                "default": {
                    "level": log_level,
                    "formatter": "json" if json_output else "standard",
                    "class": "logging.StreamHandler",
                    "stream": "ext://sys.stderr",
                },
            },
            "loggers": {
                "fleet": {
                    "handlers": ["default"],
                    "level": log_level,
                    "propagate": True,
                },
            },
        }
    )

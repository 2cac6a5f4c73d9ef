"""Logging configuration for the command line entry point."""

import logging
import logging.config
import sys
from typing import Any, Optional

from size_snapshot.config import settings

PACKAGE_LOGGER = "size_snapshot"


def setup_logging(level: Optional[str] = None) -> None:
    """Configure console logging for CLI runs.

    Library callers (plugins embedded in another build) keep whatever
    logging setup their host has; only the CLI calls this.
    """

    log_level = (level or settings.log_level).upper()

    if settings.log_format == "json":
        formatter = "json"
    elif settings.is_development:
        formatter = "detailed"
    else:
        formatter = "simple"

    log_config: dict[str, Any] = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "detailed": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "simple": {
                "format": "%(message)s",
            },
            "json": {
                "()": "pythonjsonlogger.json.JsonFormatter",
                "format": "%(asctime)s %(name)s %(levelname)s %(message)s",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": "DEBUG" if settings.is_development else log_level,
                "formatter": formatter,
                "stream": sys.stdout,
            },
        },
        "loggers": {
            PACKAGE_LOGGER: {
                "level": log_level,
                "handlers": ["console"],
                "propagate": False,
            },
        },
    }

    logging.config.dictConfig(log_config)

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.debug(
        "Logging initialized - Environment: %s, Level: %s", settings.environment, log_level
    )


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance with the specified name.

    Args:
        name: Logger name, typically __name__ of the calling module

    Returns:
        Logger nested under the package logger
    """
    if name == PACKAGE_LOGGER or name.startswith(PACKAGE_LOGGER + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{PACKAGE_LOGGER}.{name}")

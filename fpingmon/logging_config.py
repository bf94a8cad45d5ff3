"""Logging configuration for fpingmon."""

import logging
import os
import sys

LOG_LEVEL_ENV = "FPINGMON_LOG_LEVEL"

_LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def resolve_log_level(value: str | None) -> int:
    """Map a level name to a logging constant, defaulting to INFO."""
    if not value:
        return logging.INFO
    return _LOG_LEVELS.get(value.strip().upper(), logging.INFO)


def configure_logging(level: str | None = None) -> None:
    """Configure application-wide logging.

    Uses level if given, otherwise FPINGMON_LOG_LEVEL (default: INFO).
    Logs go to stderr, the same channel fping writes its summaries to,
    with timestamp, level, module name, and message.

    Examples:
        $ python -m fpingmon 192.0.2.1
        $ FPINGMON_LOG_LEVEL=DEBUG python -m fpingmon 192.0.2.1
    """
    log_level = resolve_log_level(level if level is not None else os.environ.get(LOG_LEVEL_ENV))

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
        force=True,  # Override any existing configuration
    )

    logger = logging.getLogger(__name__)
    logger.debug("Logging configured: level=%s", logging.getLevelName(log_level))

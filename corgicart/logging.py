"""
Logging for the cart engine.

Usage:
    from corgicart.logging import get_logger
    logger = get_logger(__name__)

Only the `corgicart` logger is configured, never the root logger, so a host
application keeps control of its own handlers. The engine never surfaces
persistence failures to callers; these log lines are where they end up.

Environment:
- LOG_LEVEL: level of the `corgicart` logger (default INFO)
- CART_LOG_FORMAT: "detailed" (default) or "simple" (no timestamps)
"""

import logging
import os
import sys
from functools import cache

PACKAGE_LOGGER = "corgicart"

LOG_FORMATS = {
    "detailed": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    "simple": "%(levelname)s - %(name)s - %(message)s",
}

# Line item ids are "{catalog_item_id}_{12 hex}"; keep the readable part
ID_LOG_LENGTH = 24


def configure_logging(
    level: str | None = None,
    log_format: str | None = None,
) -> logging.Logger:
    """
    Attach a stdout handler to the package logger (once).

    Args:
        level: Level name, defaults to LOG_LEVEL
        log_format: Key of LOG_FORMATS, defaults to CART_LOG_FORMAT

    Returns:
        The package logger
    """
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    level_name = (level or os.environ.get("LOG_LEVEL", "INFO")).upper()
    package_logger.setLevel(getattr(logging, level_name, logging.INFO))

    if package_logger.handlers:
        return package_logger

    # A host that configured the root logger already gets our records via propagation
    if logging.getLogger().handlers:
        return package_logger

    format_name = log_format or os.environ.get("CART_LOG_FORMAT", "detailed")
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMATS.get(format_name, LOG_FORMATS["detailed"])))
    package_logger.addHandler(handler)
    return package_logger


configure_logging()


@cache
def get_logger(name: str) -> logging.Logger:
    """Logger for a corgicart module (typically __name__)."""
    return logging.getLogger(name)


def _clip(value: object, limit: int, suffix: str = "") -> str:
    if value is None or value == "":
        return "N/A"
    # CWE-117: stored payloads and ids are user-controlled
    text = (
        str(value).replace("\n", "\\n").replace("\r", "\\r").replace("\t", "\\t").replace("\x00", "")
    )
    return text if len(text) <= limit else text[:limit] + suffix


def sanitize_id_for_logging(id_value: str | None) -> str:
    """Escaped line item or catalog id, cut to ID_LOG_LENGTH characters."""
    return _clip(id_value, ID_LOG_LENGTH)


def sanitize_string_for_logging(value: str | None, max_length: int = 50) -> str:
    """Escaped free text (raw stored records, instructions) with an ellipsis when cut."""
    return _clip(value, max_length, "...")


__all__ = [
    "configure_logging",
    "get_logger",
    "sanitize_id_for_logging",
    "sanitize_string_for_logging",
]

"""
Logging for basket.

Modules log through ``get_logger(__name__)``; every logger lives under the
``basket`` namespace, so a host can tune cart logs with one
``logging.getLogger("basket")`` call.

Environment variables:
    BASKET_LOG_LEVEL  level for cart logs (falls back to LOG_LEVEL, then INFO)
    LOG_FORMAT        "simple" drops timestamps from the stdout handler
"""

import logging
import os
import sys
from functools import cache

PACKAGE_LOGGER = "basket"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_FORMAT_SIMPLE = "%(levelname)s - %(name)s - %(message)s"


def _get_log_level() -> int:
    level_name = os.environ.get("BASKET_LOG_LEVEL") or os.environ.get("LOG_LEVEL") or "INFO"
    return getattr(logging, level_name.strip().upper(), logging.INFO)


def _configure_package_logger() -> None:
    """Set the package level and, for hosts without logging set up, a stdout handler.

    When the root logger already has handlers, cart records propagate to them
    and no handler is added here.
    """
    package = logging.getLogger(PACKAGE_LOGGER)
    package.setLevel(_get_log_level())

    # HttpPriceSource goes through httpx; per-request lines add nothing to cart logs
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    if package.handlers or logging.getLogger().handlers:
        return

    handler = logging.StreamHandler(sys.stdout)
    is_compact = os.environ.get("LOG_FORMAT") == "simple"
    handler.setFormatter(logging.Formatter(LOG_FORMAT_SIMPLE if is_compact else LOG_FORMAT))
    package.addHandler(handler)


_configure_package_logger()


@cache
def get_logger(name: str) -> logging.Logger:
    """Logger for ``name``, placed under the ``basket`` namespace if it is not already."""
    if name != PACKAGE_LOGGER and not name.startswith(PACKAGE_LOGGER + "."):
        name = f"{PACKAGE_LOGGER}.{name}"
    return logging.getLogger(name)


def sanitize_id_for_logging(id_value: str | None, max_length: int = 32) -> str:
    """
    Make an item or variant id safe to put in a log line.

    Ids come from the host, often straight from user input. Line breaks and
    tabs are escaped and null bytes dropped (CWE-117), then the result is
    truncated to ``max_length``.

    Returns:
        The escaped id, or "N/A" for an empty one
    """
    if not id_value:
        return "N/A"
    safe_value = (
        str(id_value)
        .replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\t", "\\t")
        .replace("\x00", "")
    )
    return safe_value[:max_length]


__all__ = ["PACKAGE_LOGGER", "get_logger", "sanitize_id_for_logging"]

"""
Central logging configuration for schedulebot.

The compiler logs its merge and normalization decisions at DEBUG, which is very
verbose on real feeds; by default only INFO and above is shown.
"""

import logging
import os
import sys
from typing import Optional

from colorlog import ColoredFormatter

# HH:MM:SS  LEVEL   logger.name: message
# Only the level is colorized.
LOG_FORMAT = "%(asctime)s %(log_color)s%(levelname)-7s%(reset)s %(name)s: %(message)s"
LOG_DATE_FORMAT = "%H:%M:%S"
LOG_COLORS = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "bold_red",
}

# Loggers that only get DEBUG when debug mode is on
SCHEDULEBOT_MODULES = [
    "schedulebot",
    "schedulebot.normalizer",
    "schedulebot.merger",
    "schedulebot.synthesizer",
    "schedulebot.domain.pipeline",
    "schedulebot.source",
]

# The merge candidate dump is huge; keep it at INFO unless explicitly requested
VERBOSE_MODULES = ["schedulebot.merger"]

_TRUTHY = ("1", "true", "yes", "on")


def create_console_handler(level: int = logging.NOTSET) -> logging.Handler:
    """Create a stderr handler with the colorized formatter."""
    handler = logging.StreamHandler(stream=sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(ColoredFormatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT, log_colors=LOG_COLORS))
    return handler


def configure_logging(
    debug_mode: bool = False,
    force_debug: Optional[bool] = None,
    verbose_merge: bool = False,
) -> None:
    """
    Configure logging levels for schedulebot.

    Args:
        debug_mode: Whether to enable debug logging for schedulebot modules
        force_debug: Override debug mode setting (None to use env var detection)
        verbose_merge: Also log every merge candidate considered by the merger

    Environment Variables:
        SCHEDULEBOT_DEBUG: Set to '1', 'true', 'yes' to force debug logging
        SCHEDULEBOT_LOG_LEVEL: Override root log level (DEBUG, INFO, WARNING, ERROR)
    """
    env_debug = os.getenv("SCHEDULEBOT_DEBUG", "").strip().lower() in _TRUTHY
    env_log_level = os.getenv("SCHEDULEBOT_LOG_LEVEL", "").strip().upper()

    if force_debug is not None:
        final_debug = force_debug
    elif env_debug:
        final_debug = True
    else:
        final_debug = debug_mode

    root_level = logging.DEBUG if final_debug else logging.INFO
    if env_log_level in ("DEBUG", "INFO", "WARNING", "ERROR"):
        root_level = getattr(logging, env_log_level)

    root_logger = logging.getLogger()
    root_logger.setLevel(root_level)

    # Only add a handler if none exist, to avoid duplicate output
    if not root_logger.handlers:
        root_logger.addHandler(create_console_handler())

    module_level = logging.DEBUG if final_debug else logging.INFO
    logger_config: dict[str, int] = {"asyncio": logging.WARNING}
    for module in SCHEDULEBOT_MODULES:
        logger_config[module] = module_level
    if final_debug and not verbose_merge:
        for module in VERBOSE_MODULES:
            logger_config[module] = logging.INFO

    for logger_name, level in logger_config.items():
        logging.getLogger(logger_name).setLevel(level)

    if final_debug:
        root_logger.info("Debug logging enabled for schedulebot modules")
    else:
        root_logger.debug("Production logging configuration applied")


def get_logging_status() -> dict[str, str]:
    """
    Get current logging configuration status.

    Returns:
        Dictionary mapping logger names to their current levels
    """
    status = {"root": logging.getLevelName(logging.getLogger().level)}
    for logger_name in [*SCHEDULEBOT_MODULES, "asyncio"]:
        status[logger_name] = logging.getLevelName(logging.getLogger(logger_name).level)
    return status

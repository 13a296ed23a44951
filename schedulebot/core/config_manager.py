"""Configuration management from environment variables and .env files."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

MAX_UPCOMING_DAYS = 90


def parse_env_file(path: Path) -> dict[str, str]:
    """Parse a .env file and return key-value pairs.

    Args:
        path: Path to .env file

    Returns:
        Dictionary of key-value pairs from the .env file.
        Empty dict if file doesn't exist or cannot be read.

    Note:
        - Skips empty lines and comments (lines starting with #)
        - Strips quotes (both single and double) from values
        - Handles KEY=VALUE format with optional whitespace
    """
    if not path.exists():
        return {}

    result: dict[str, str] = {}

    try:
        content = path.read_text(encoding="utf-8")
    except OSError:
        logger.debug("Failed to read .env file (continuing): %s", str(path), exc_info=True)
        return {}

    for raw_line in content.splitlines():
        line = raw_line.strip()

        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue

        key, val = line.split("=", 1)
        key = key.strip()
        val = val.strip().strip('"').strip("'")

        if key:
            result[key] = val

    return result


class ConfigManager:
    """Manages application configuration from environment variables and .env files."""

    def __init__(self, env_file_path: Path | None = None):
        """Initialize configuration manager.

        Args:
            env_file_path: Optional path to .env file (defaults to .env in current directory)
        """
        self.env_file_path = env_file_path or Path.cwd() / ".env"

    def load_env_file(self) -> list[str]:
        """Load .env file and set environment variables.

        Only sets variables that are not already in the environment.

        Returns:
            List of environment variable keys that were loaded from .env file
        """
        if not self.env_file_path.exists():
            logger.debug("No .env file found at %s", self.env_file_path)
            return []

        set_keys = []
        for key, val in parse_env_file(self.env_file_path).items():
            if key not in os.environ:
                os.environ[key] = val
                set_keys.append(key)

        if set_keys:
            logger.debug("Loaded .env defaults for keys: %s", ", ".join(set_keys))

        return set_keys

    def build_config_from_env(self) -> dict[str, Any]:
        """Build configuration dictionary from environment variables.

        Recognizes:
        - SCHEDULEBOT_SCHEDULES_FILE -> 'schedules_file'
        - SCHEDULEBOT_UPCOMING_DAYS -> 'upcoming_days' (int, 0..90)
        - SCHEDULEBOT_COMPILE_TIMEOUT -> 'compile_timeout' (float seconds, > 0)
        - SCHEDULEBOT_LOG_LEVEL -> 'log_level'
        - SCHEDULEBOT_DEBUG -> 'debug' (bool)

        Invalid values are logged and ignored.

        Returns:
            Configuration dictionary
        """
        cfg: dict[str, Any] = {}

        schedules_file = os.environ.get("SCHEDULEBOT_SCHEDULES_FILE")
        if schedules_file:
            cfg["schedules_file"] = schedules_file

        upcoming = os.environ.get("SCHEDULEBOT_UPCOMING_DAYS")
        if upcoming:
            try:
                days = int(upcoming)
            except ValueError:
                logger.warning("Invalid SCHEDULEBOT_UPCOMING_DAYS=%r; ignoring", upcoming)
            else:
                if 0 <= days <= MAX_UPCOMING_DAYS:
                    cfg["upcoming_days"] = days
                else:
                    logger.warning(
                        "SCHEDULEBOT_UPCOMING_DAYS=%r out of range 0..%d; ignoring",
                        upcoming,
                        MAX_UPCOMING_DAYS,
                    )

        timeout = os.environ.get("SCHEDULEBOT_COMPILE_TIMEOUT")
        if timeout:
            try:
                seconds = float(timeout)
            except ValueError:
                logger.warning("Invalid SCHEDULEBOT_COMPILE_TIMEOUT=%r; ignoring", timeout)
            else:
                if seconds > 0:
                    cfg["compile_timeout"] = seconds
                else:
                    logger.warning("SCHEDULEBOT_COMPILE_TIMEOUT=%r must be positive; ignoring", timeout)

        log_level = os.environ.get("SCHEDULEBOT_LOG_LEVEL")
        if log_level:
            cfg["log_level"] = log_level.strip().upper()

        debug = os.environ.get("SCHEDULEBOT_DEBUG")
        if debug:
            cfg["debug"] = debug.strip().lower() in ("1", "true", "yes", "on")

        return cfg

    def load_full_config(self) -> dict[str, Any]:
        """Load .env file and build configuration from environment.

        Returns:
            Configuration dictionary
        """
        self.load_env_file()
        return self.build_config_from_env()

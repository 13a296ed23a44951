"""schedulebot.config_loader

Config loader for schedulebot.

- Parses the line-oriented schedules file into `ScheduleConfig` entries.
- Exposes a typed dataclass `Config` and a `load_config()` helper combining the
  environment (see `core.config_manager`) with the schedules file.

Schedules file format::

    # comment
    schedule <name> <feed_id|name_to_extend>
    title <text>
    desc <text>
    upcoming <1..90>
    unlisted
    filter.<field> <action> [args...]
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .core.config_manager import MAX_UPCOMING_DAYS, ConfigManager
from .exceptions import FilterConfigError
from .filters import Filters, parse_filter_rule

logger = logging.getLogger(__name__)

DEFAULT_SCHEDULES_FILE = "schedules.txt"
DEFAULT_COMPILE_TIMEOUT = 7.0


@dataclass
class ScheduleConfig:
    """One schedule block of the schedules file.

    Fields:
        name: schedule name (unique, used as its path)
        feed_id: upstream feed identifier
        index: position in the file, for listing order
        filters: conjunctive filter chain applied before compiling
    """

    name: str
    feed_id: int
    index: int = 0
    title: str = ""
    description: str = ""
    upcoming_days: int = 0
    unlisted: bool = False
    filters: Filters = field(default_factory=Filters)

    def extend(self, name: str, index: int) -> ScheduleConfig:
        """Copy this schedule's options and filter chain under a new name."""
        return dataclasses.replace(self, name=name, index=index, filters=self.filters.copy())


def _split_key(text: str) -> tuple[str, str]:
    parts = text.split(None, 1)
    if len(parts) == 1:
        return parts[0], ""
    return parts[0], parts[1].strip()


def _parse_property(schedule: ScheduleConfig, key: str, value: str) -> None:
    if key == "title":
        schedule.title = value
    elif key == "desc":
        schedule.description = value
    elif key == "upcoming":
        try:
            n = int(value)
        except ValueError as e:
            raise FilterConfigError(f"invalid number {value!r}") from e
        if n < 1 or n > MAX_UPCOMING_DAYS:
            raise FilterConfigError(
                f"upcoming days must be between 1 and {MAX_UPCOMING_DAYS} if specified, got {n}"
            )
        schedule.upcoming_days = n
    elif key == "unlisted":
        if value:
            raise FilterConfigError(f"does not take a value, got {value!r}")
        schedule.unlisted = True
    else:
        schedule.filters.append(parse_filter_rule(key, value))


def parse_schedules(text: str) -> dict[str, ScheduleConfig]:
    """Parse the schedules file contents.

    Args:
        text: File contents

    Returns:
        Schedules by name, in file order

    Raises:
        FilterConfigError: With the 1-based line number of the first invalid line
    """
    schedules: dict[str, ScheduleConfig] = {}
    current: ScheduleConfig | None = None

    for line_no, raw_line in enumerate(text.splitlines(), start=1):
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue

        key, value = _split_key(line)
        try:
            if key == "schedule":
                args = value.rsplit(None, 1)
                if len(args) != 2:
                    raise FilterConfigError(
                        "expected 'schedule <name> <feed_id|name_to_extend>', missing feed id"
                    )
                name, source = args[0].strip(), args[1]
                if name in schedules:
                    raise FilterConfigError(f"schedule name {name!r} already used")
                if source.isdigit():
                    current = ScheduleConfig(name=name, feed_id=int(source), index=len(schedules))
                elif source in schedules:
                    current = schedules[source].extend(name, len(schedules))
                else:
                    raise FilterConfigError(
                        f"{source!r} is not a valid feed id or name of a schedule to extend"
                    )
                schedules[name] = current
                continue

            if current is None:
                raise FilterConfigError(f"expected 'schedule <name>' line before properties, got {key!r}")
            _parse_property(current, key, value)
        except FilterConfigError as e:
            if e.line is not None:
                raise
            raise FilterConfigError(str(e), line=line_no) from e

    logger.debug("Parsed %d schedules", len(schedules))
    return schedules


def load_schedules(path: str | Path) -> dict[str, ScheduleConfig]:
    """Read and parse a schedules file.

    Raises:
        OSError: If the file cannot be read
        FilterConfigError: If the file is invalid
    """
    p = Path(path)
    logger.info("Parsing schedule config from %s", p)
    return parse_schedules(p.read_text(encoding="utf-8"))


@dataclass
class Config:
    """Typed configuration for schedulebot.

    Fields:
        schedules_file: path of the schedules file
        upcoming_days: when set, overrides every schedule's upcoming days (0 disables)
        compile_timeout: seconds before an asynchronous compile is abandoned
        log_level: logging level name
        debug: enable debug logging for schedulebot modules
        schedules: parsed schedules by name
    """

    schedules_file: str = DEFAULT_SCHEDULES_FILE
    upcoming_days: int | None = None
    compile_timeout: float = DEFAULT_COMPILE_TIMEOUT
    log_level: str = "INFO"
    debug: bool = False
    schedules: dict[str, ScheduleConfig] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Config:
        """Create Config from a plain mapping, applying defaults.

        Values that cannot be coerced are logged and replaced by their default.
        """
        if data is None:
            data = {}

        upcoming = data.get("upcoming_days")
        if upcoming is not None:
            try:
                upcoming = int(upcoming)
            except (TypeError, ValueError):
                logger.warning("Config upcoming_days=%r is not an int; ignoring", upcoming)
                upcoming = None

        timeout_raw = data.get("compile_timeout", DEFAULT_COMPILE_TIMEOUT)
        try:
            timeout = float(timeout_raw)
        except (TypeError, ValueError):
            logger.warning(
                "Config compile_timeout=%r is not a number; using default %s",
                timeout_raw,
                DEFAULT_COMPILE_TIMEOUT,
            )
            timeout = DEFAULT_COMPILE_TIMEOUT

        log_level = data.get("log_level", "INFO")
        log_level = str(log_level).upper() if log_level is not None else "INFO"

        return cls(
            schedules_file=str(data.get("schedules_file") or DEFAULT_SCHEDULES_FILE),
            upcoming_days=upcoming,
            compile_timeout=timeout,
            log_level=log_level,
            debug=bool(data.get("debug", False)),
        )

    def upcoming_days_for(self, schedule: ScheduleConfig) -> int:
        """Upcoming days to show for a schedule, honoring the global override."""
        if self.upcoming_days is not None:
            return self.upcoming_days
        return schedule.upcoming_days


def load_config(env_file: str | Path | None = None) -> Config:
    """Load configuration from the environment and the schedules file.

    Args:
        env_file: Optional path to a .env file (defaults to ./.env)

    Returns:
        Config with parsed schedules. A missing schedules file yields no schedules.

    Raises:
        FilterConfigError: If the schedules file is invalid
    """
    manager = ConfigManager(Path(env_file) if env_file else None)
    cfg = Config.from_dict(manager.load_full_config())

    path = Path(cfg.schedules_file)
    if not path.exists():
        logger.info("Schedules file %s not found; no schedules configured", path)
        return cfg

    cfg.schedules = load_schedules(path)
    logger.info("Loaded %d schedules from %s", len(cfg.schedules), path)
    return cfg

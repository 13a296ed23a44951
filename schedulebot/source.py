"""Compile schedules from a cached feed collaborator.

The feed itself is fetched and cached elsewhere; this module only consumes a
:class:`ResultCache` and turns whatever it holds into a compiled schedule.
A value paired with an error is stale but usable: it is compiled, and the error
is handed back alongside the schedule so it can be shown as a warning.
"""

from __future__ import annotations

import asyncio
import datetime
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Optional, Protocol

from .compiler import compile_schedule
from .core.datetime_utils import now_utc
from .exceptions import CompileTimeoutError, FeedUnavailableError
from .filters import OccurrenceFilter
from .models import CompiledSchedule, FeedNotifications, FeedSchedule

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FeedSnapshot:
    """The two feed documents, as cached together."""

    schedule: FeedSchedule
    notifications: Optional[FeedNotifications] = None


class ResultCache(Protocol):
    """Read side of the caching collaborator.

    ``get()`` returns ``(value, error)``. A value with an error is stale; no
    value must come with an error.
    """

    def get(self) -> tuple[Optional[FeedSnapshot], Optional[BaseException]]:
        ...


@dataclass(frozen=True)
class CompileOutcome:
    """A compiled schedule, plus the fetch error if it was built from stale data."""

    schedule: CompiledSchedule
    error: Optional[BaseException] = None

    @property
    def is_stale(self) -> bool:
        return self.error is not None


class ScheduleSource:
    """Compiles the latest cached feed for one schedule."""

    def __init__(
        self,
        cache: ResultCache,
        occurrence_filter: Optional[OccurrenceFilter] = None,
        time_provider: Callable[[], datetime.datetime] = now_utc,
    ) -> None:
        """Initialize the source.

        Args:
            cache: Feed cache collaborator
            occurrence_filter: Filter applied to every compile
            time_provider: Clock used for the compile time
        """
        self.cache = cache
        self.occurrence_filter = occurrence_filter
        self.time_provider = time_provider

    def compile(self) -> CompileOutcome:
        """Compile the cached feed.

        Returns:
            The compiled schedule and any fetch error (stale data)

        Raises:
            FeedUnavailableError: If the cache holds no value at all
            ScheduleError: If compilation fails
        """
        snapshot, error = self.cache.get()
        if snapshot is None:
            if error is None:
                raise FeedUnavailableError("feed cache returned neither a value nor an error")
            raise FeedUnavailableError(f"feed unavailable: {error}") from error

        if error is not None:
            logger.warning("Compiling schedule from stale feed data: %s", error)

        schedule = compile_schedule(
            snapshot.schedule,
            snapshot.notifications,
            occurrence_filter=self.occurrence_filter,
            now=self.time_provider(),
        )
        return CompileOutcome(schedule=schedule, error=error)

    async def compile_async(self, timeout: float) -> CompileOutcome:
        """Run :meth:`compile` in a worker thread, racing it against a deadline.

        On timeout the worker is abandoned, not killed; its result is discarded.

        Args:
            timeout: Deadline in seconds

        Raises:
            CompileTimeoutError: If the deadline passes first
        """
        loop = asyncio.get_running_loop()
        try:
            return await asyncio.wait_for(loop.run_in_executor(None, self.compile), timeout=timeout)
        except asyncio.TimeoutError as e:
            logger.warning("Schedule compile exceeded timeout of %.1fs", timeout)
            raise CompileTimeoutError(f"compile exceeded timeout of {timeout}s") from e

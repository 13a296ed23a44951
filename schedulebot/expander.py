"""Expansion of compiled instances back into concrete dated events."""

from __future__ import annotations

import datetime
import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Optional

from .core.datetime_utils import iter_dates, weekday_index
from .models import CompiledSchedule, ExceptionKind, Instance, TimeRange

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExpandedEvent:
    """A concrete event produced from an instance."""

    date: datetime.date
    time: TimeRange
    cancelled: bool = False
    exception: bool = False  # any exception applied to this date


class InstanceExpansion:
    """Lazy, restartable sequence of the events of one instance.

    Each call to ``iter()`` walks the span again from the start.
    """

    def __init__(
        self,
        instance: Instance,
        start: Optional[datetime.date],
        end: Optional[datetime.date],
    ) -> None:
        self.instance = instance
        self.start = start
        self.end = end

    def __iter__(self) -> Iterator[ExpandedEvent]:
        for d in iter_dates(self.start, self.end, self.instance.active_weekdays()):
            event = self.event_on(d)
            if event is not None:
                yield event

    def event_on(self, d: datetime.date) -> Optional[ExpandedEvent]:
        """The event on one date, or None if the instance does not run that day."""
        wd = weekday_index(d)
        if not self.instance.days[wd]:
            return None

        time = self.instance.time
        cancelled = False
        exception = False

        for x in self.instance.exceptions:
            if x.date == d:
                if x.kind == ExceptionKind.EXCLUDED:
                    return None
                if x.kind == ExceptionKind.CANCELLED:
                    cancelled = True
                elif x.kind == ExceptionKind.TIME:
                    time = x.time
                exception = True
            elif x.kind == ExceptionKind.ONLY_ON_WEEKDAY and x.weekday == wd:
                return None
            elif x.kind == ExceptionKind.LAST_ON_WEEKDAY and x.weekday == wd and x.date < d:
                return None

        return ExpandedEvent(date=d, time=time, cancelled=cancelled, exception=exception)

    def __repr__(self) -> str:
        return f"InstanceExpansion({self.instance.time}, {self.start}..{self.end})"


def expand_instance(
    instance: Instance,
    start: Optional[datetime.date],
    end: Optional[datetime.date],
) -> InstanceExpansion:
    """Expand an instance over the inclusive date span ``[start, end]``."""
    return InstanceExpansion(instance, start, end)


def expand_schedule(schedule: CompiledSchedule) -> Iterator[tuple[str, str, ExpandedEvent]]:
    """Yield ``(activity, location, event)`` for every instance of the schedule."""
    for activity in schedule.activities:
        for location in activity.locations:
            for instance in location.instances:
                for event in expand_instance(instance, schedule.start, schedule.end):
                    yield activity.name, location.name, event


# Upcoming view


@dataclass(frozen=True)
class UpcomingEvent:
    """One event of an upcoming day."""

    activity: str
    location: str
    time: TimeRange
    cancelled: bool = False
    exception: bool = False


@dataclass
class UpcomingDay:
    """All events on one date, ordered by time range."""

    date: datetime.date
    events: list[UpcomingEvent] = field(default_factory=list)


def upcoming(schedule: CompiledSchedule, days: int) -> list[UpcomingDay]:
    """Events for up to ``days`` dates from the schedule's compile date.

    Args:
        schedule: Compiled schedule
        days: Maximum number of days to return

    Returns:
        Consecutive days starting at ``schedule.updated``, never past ``schedule.end``
    """
    if schedule.end is None or days <= 0:
        return []

    first = schedule.updated.date()
    result: list[UpcomingDay] = []
    index: dict[datetime.date, UpcomingDay] = {}
    d = first
    while len(result) < days and d <= schedule.end:
        day = UpcomingDay(date=d)
        result.append(day)
        index[d] = day
        d += datetime.timedelta(days=1)

    if not result:
        return result

    last = result[-1].date
    for activity, location, event in expand_schedule(schedule):
        if first <= event.date <= last:
            index[event.date].events.append(
                UpcomingEvent(
                    activity=activity,
                    location=location,
                    time=event.time,
                    cancelled=event.cancelled,
                    exception=event.exception,
                )
            )

    for day in result:
        day.events.sort(key=lambda e: e.time.sort_key())
    logger.debug("Built upcoming view: %d days from %s", len(result), first)
    return result

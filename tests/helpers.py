"""Builders shared by the schedulebot tests."""

import datetime
from typing import Optional

from schedulebot.core.datetime_utils import WEEKDAY_NAMES
from schedulebot.expander import expand_schedule
from schedulebot.models import (
    Category,
    CompiledSchedule,
    ExceptionKind,
    FeedSchedule,
    Instance,
    InstanceException,
    Occurrence,
    TimeRange,
)

UTC = datetime.timezone.utc
UPDATED = datetime.datetime(2023, 1, 1, tzinfo=UTC)
NOW = datetime.datetime(2023, 1, 2, 12, 0, tzinfo=UTC)


def tr(spec: str) -> TimeRange:
    """Parse ``"HH:MM-HH:MM"`` into a TimeRange."""
    start, end = spec.split("-")
    return TimeRange(start=datetime.time.fromisoformat(start), end=datetime.time.fromisoformat(end))


def day(iso: str) -> datetime.date:
    return datetime.date.fromisoformat(iso)


def occ(
    date: str,
    time: str = "10:30-11:30",
    activity: str = "Test",
    location: str = "Test",
    cancelled: bool = False,
    activity_id: str = "",
    description: str = "",
    categories: tuple[tuple[str, str], ...] = (),
) -> Occurrence:
    return Occurrence(
        activity=activity,
        activity_id=activity_id,
        location=location,
        description=description,
        date=day(date),
        time=tr(time),
        cancelled=cancelled,
        categories=[Category(id=cid, name=name) for cid, name in categories],
    )


def feed(occurrences: list[Occurrence], updated: datetime.datetime = UPDATED) -> FeedSchedule:
    return FeedSchedule(updated=updated, occurrences=occurrences)


def exc(date: str, kind: ExceptionKind, time: Optional[str] = None) -> InstanceException:
    return InstanceException(date=day(date), kind=kind, time=tr(time) if time else None)


def days(*names: str) -> tuple[bool, ...]:
    """Days tuple from two-letter abbreviations, e.g. ``days("Tu", "Th")``."""
    abbrevs = [n[:2] for n in WEEKDAY_NAMES]
    return tuple(abbrev in names for abbrev in abbrevs)


def all_instances(schedule: CompiledSchedule) -> list[tuple[str, str, Instance]]:
    return [
        (a.name, loc.name, i)
        for a in schedule.activities
        for loc in a.locations
        for i in loc.instances
    ]


def occurrence_tuples(occurrences: list[Occurrence]) -> list[tuple]:
    return sorted(
        (o.activity, o.location, o.date, o.time.sort_key(), o.cancelled) for o in occurrences
    )


def expanded_tuples(
    schedule: CompiledSchedule,
    dates: Optional[set[datetime.date]] = None,
) -> list[tuple]:
    """Expanded events as comparable tuples, optionally restricted to ``dates``."""
    return sorted(
        (activity, location, e.date, e.time.sort_key(), e.cancelled)
        for activity, location, e in expand_schedule(schedule)
        if dates is None or e.date in dates
    )

"""Build the compiled activity tree and synthesize instance exceptions."""

from __future__ import annotations

import datetime
import logging
from collections.abc import Sequence
from typing import Optional

from .core.datetime_utils import iter_dates, weekday_index
from .models import (
    Activity,
    ExceptionKind,
    Instance,
    InstanceException,
    Location,
    Occurrence,
    TimeRange,
)

logger = logging.getLogger(__name__)

# A weekday's last occurrence only ends the recurrence if it is more than this
# long before the end of the span.
LAST_OCCURRENCE_WINDOW = datetime.timedelta(days=7)


def first_day_truncated(
    d: datetime.date,
    start: datetime.date,
    updated: Optional[datetime.datetime],
) -> bool:
    """Whether a missing occurrence on ``d`` is a feed truncation artifact.

    Feeds drop entries from the past, so a gap on the first covered date is not
    meaningful when that date precedes the feed's own update date.
    """
    if updated is None:
        return False
    return d == start and start < updated.date()


class _InstanceBuilder:
    """Walks the span for one (activity, location, base time) instance."""

    def __init__(
        self,
        occurrences: Sequence[Occurrence],
        members: list[int],
        time: TimeRange,
        start: datetime.date,
        end: datetime.date,
        updated: Optional[datetime.datetime],
    ) -> None:
        self.occurrences = occurrences
        self.time = time
        self.start = start
        self.end = end
        self.updated = updated

        self.by_date: dict[datetime.date, Occurrence] = {}
        days = [False] * 7
        self.counts = [0] * 7
        last: list[Optional[datetime.date]] = [None] * 7
        for i in members:
            occurrence = occurrences[i]
            wd = occurrence.weekday
            self.by_date.setdefault(occurrence.date, occurrence)
            days[wd] = True
            self.counts[wd] += 1
            if last[wd] is None or last[wd] < occurrence.date:
                last[wd] = occurrence.date

        cutoff = end - LAST_OCCURRENCE_WINDOW
        self.last = [d if d is not None and d < cutoff else None for d in last]
        self.days = tuple(days)

        self.span_counts = [0] * 7
        for d in iter_dates(start, end):
            self.span_counts[weekday_index(d)] += 1

    def exceptions_on(self, d: datetime.date) -> list[InstanceException]:
        wd = weekday_index(d)
        occurrence = self.by_date.get(d)
        found: list[InstanceException] = []

        if occurrence is not None:
            if occurrence.cancelled:
                found.append(InstanceException(date=d, kind=ExceptionKind.CANCELLED))
            if occurrence.time != self.time:
                found.append(InstanceException(date=d, kind=ExceptionKind.TIME, time=occurrence.time))

        if self.counts[wd] == 1 and self.span_counts[wd] > 1:
            if occurrence is not None:
                found.append(InstanceException(date=d, kind=ExceptionKind.ONLY_ON_WEEKDAY))
        elif occurrence is None:
            if first_day_truncated(d, self.start, self.updated):
                logger.debug(
                    "ignore exclusion on first schedule day %s before update %s: %s",
                    d,
                    self.updated,
                    self.time,
                )
            elif self.last[wd] is None or d <= self.last[wd]:
                found.append(InstanceException(date=d, kind=ExceptionKind.EXCLUDED))
        elif self.last[wd] == d:
            found.append(InstanceException(date=d, kind=ExceptionKind.LAST_ON_WEEKDAY))

        return found

    def build(self) -> Instance:
        exceptions: list[InstanceException] = []
        active = [wd for wd, on in enumerate(self.days) if on]
        for d in iter_dates(self.start, self.end, active):
            exceptions.extend(self.exceptions_on(d))
        return Instance(time=self.time, days=self.days, exceptions=tuple(exceptions))


def synthesize_activities(
    occurrences: Sequence[Occurrence],
    base_times: Sequence[TimeRange],
    start: Optional[datetime.date],
    end: Optional[datetime.date],
    updated: Optional[datetime.datetime],
) -> tuple[Activity, ...]:
    """Build the activity/location/instance tree for the merged occurrences.

    Activities and locations are sorted by name, instances by base time range.
    Each instance's exceptions are ordered by date.

    Args:
        occurrences: Filtered occurrences
        base_times: Base time range for each occurrence index
        start: First date of the schedule span
        end: Last date of the schedule span
        updated: Upstream update timestamp of the schedule document

    Returns:
        The compiled activities
    """
    if not occurrences or start is None or end is None:
        return ()

    tree: dict[str, dict[str, dict[TimeRange, list[int]]]] = {}
    for index, occurrence in enumerate(occurrences):
        (
            tree.setdefault(occurrence.activity, {})
            .setdefault(occurrence.location, {})
            .setdefault(base_times[index], [])
            .append(index)
        )

    activities = []
    for activity_name in sorted(tree):
        locations = []
        for location_name in sorted(tree[activity_name]):
            instances = tree[activity_name][location_name]
            locations.append(
                Location(
                    name=location_name,
                    instances=tuple(
                        _InstanceBuilder(occurrences, instances[base], base, start, end, updated).build()
                        for base in sorted(instances, key=TimeRange.sort_key)
                    ),
                )
            )
        activities.append(Activity(name=activity_name, locations=tuple(locations)))

    logger.debug(
        "Synthesized %d activities, %d instances",
        len(activities),
        sum(len(loc.instances) for a in activities for loc in a.locations),
    )
    return tuple(activities)

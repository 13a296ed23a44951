"""Partitioning of occurrences by activity, location and weekday."""

from __future__ import annotations

import datetime
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import NamedTuple

from .core.datetime_utils import weekday_abbrev
from .exceptions import DuplicateOccurrenceError
from .models import Occurrence, TimeRange

logger = logging.getLogger(__name__)


class PartitionKey(NamedTuple):
    """Occurrences sharing activity, location and weekday (Sunday=0)."""

    activity: str
    location: str
    weekday: int

    def __str__(self) -> str:
        return f"{self.activity} - {self.location} [{weekday_abbrev(self.weekday)}]"


@dataclass
class TimeGroup:
    """Occurrence indexes grouped under one time range key.

    Initially every member has exactly ``key`` as its time range. After merging,
    ``key`` is just the surviving group's identity.
    """

    key: TimeRange
    members: list[int] = field(default_factory=list)


@dataclass
class Partition:
    """A partition and its time groups, ordered by key."""

    key: PartitionKey
    groups: list[TimeGroup] = field(default_factory=list)

    def group_keys(self) -> list[TimeRange]:
        return [g.key for g in self.groups]


def check_unique(occurrences: Sequence[Occurrence]) -> None:
    """Enforce uniqueness of (activity, location, date, start time).

    Raises:
        DuplicateOccurrenceError: Identifying the first conflicting pair
    """
    seen: dict[tuple[str, str, datetime.date, datetime.time], Occurrence] = {}
    for occurrence in occurrences:
        key = (occurrence.activity, occurrence.location, occurrence.date, occurrence.time.start)
        if key in seen:
            raise DuplicateOccurrenceError(seen[key], occurrence)
        seen[key] = occurrence


def partition_occurrences(occurrences: Sequence[Occurrence]) -> list[Partition]:
    """Group occurrences by partition key, then by exact time range.

    Partitions are ordered by activity, location, then weekday; groups within
    a partition by time range. Members start out in date order; merging later
    appends the merged group's members after the surviving group's.

    Args:
        occurrences: Filtered occurrences

    Returns:
        Ordered partitions
    """
    buckets: dict[PartitionKey, dict[TimeRange, list[int]]] = {}
    order = sorted(range(len(occurrences)), key=lambda i: occurrences[i].date)
    for index in order:
        occurrence = occurrences[index]
        pk = PartitionKey(occurrence.activity, occurrence.location, occurrence.weekday)
        buckets.setdefault(pk, {}).setdefault(occurrence.time, []).append(index)

    partitions = [
        Partition(
            key=pk,
            groups=[TimeGroup(key=tr, members=groups[tr]) for tr in sorted(groups, key=TimeRange.sort_key)],
        )
        for pk, groups in sorted(buckets.items(), key=lambda item: item[0])
    ]
    logger.debug("Partitioned %d occurrences into %d partitions", len(occurrences), len(partitions))
    return partitions

"""Recurrence merging: collapse time groups into a few base time ranges.

Within each partition (activity, location, weekday) the merger greedily applies
the single best legal merge of two time groups, re-ranking every remaining
candidate after each merge, until no legal merge is left. Candidates rank by:

1. exclusion penalty: dates of the partition's weekday in the schedule span
   without an occurrence in the merged group
2. exception penalty: occurrence boundaries (start and end counted separately)
   that differ from the merged base time range
3. duration penalty: duration of the group being merged away, so short
   one-off slots collapse into longer regular ones
4. the receiving group's time range, earliest first
"""

from __future__ import annotations

import datetime
import logging
from collections.abc import Sequence
from dataclasses import dataclass

from .core.datetime_utils import iter_dates, most_common_by, weekday_index
from .models import Occurrence, TimeRange
from .partitioner import Partition, TimeGroup

logger = logging.getLogger(__name__)

WeekdayDates = dict[int, list[datetime.date]]


@dataclass
class MergeCandidate:
    """A simulated merge of ``source`` into ``into``."""

    into: TimeGroup
    source: TimeGroup
    members: list[int]
    time: TimeRange
    exclusion_penalty: int
    exception_penalty: int
    duration_penalty: datetime.timedelta

    def rank_key(self) -> tuple[int, int, datetime.timedelta, tuple[datetime.time, datetime.time]]:
        return (
            self.exclusion_penalty,
            self.exception_penalty,
            self.duration_penalty,
            self.into.key.sort_key(),
        )

    def __str__(self) -> str:
        return (
            f"[{self.exception_penalty} {self.exclusion_penalty} {self.duration_penalty}] "
            f"{self.into.key} <- {self.source.key}"
        )


def span_weekday_dates(start: datetime.date | None, end: datetime.date | None) -> WeekdayDates:
    """Map each Sunday=0 weekday to its dates within ``[start, end]``."""
    dates: WeekdayDates = {wd: [] for wd in range(7)}
    for d in iter_dates(start, end):
        dates[weekday_index(d)].append(d)
    return dates


def base_time_range(occurrences: Sequence[Occurrence], members: Sequence[int]) -> TimeRange:
    """The most common start time and most common end time among the members."""
    start = most_common_by(members, lambda i: occurrences[i].time.start)
    end = most_common_by(members, lambda i: occurrences[i].time.end)
    return TimeRange(start=start, end=end)


def count_exclusions(
    occurrences: Sequence[Occurrence],
    members: Sequence[int],
    weekday_dates: Sequence[datetime.date],
) -> int:
    """Count span dates for the weekday that have no member occurrence."""
    present = {occurrences[i].date for i in members}
    return sum(1 for d in weekday_dates if d not in present)


def is_legal_merge(occurrences: Sequence[Occurrence], into: TimeGroup, source: TimeGroup) -> bool:
    """Check whether ``source`` may be merged into ``into``.

    The groups must not share a date, and every occurrence in ``source`` must
    overlap (in time of day) at least one occurrence in ``into``, so unrelated
    time slots that happen to share a partition stay apart.
    """
    into_dates = {occurrences[i].date for i in into.members}
    if any(occurrences[i].date in into_dates for i in source.members):
        return False

    into_times = [occurrences[i].time for i in into.members]
    return all(
        any(occurrences[i].time.overlaps(t) for t in into_times) for i in source.members
    )


def simulate_merge(
    occurrences: Sequence[Occurrence],
    into: TimeGroup,
    source: TimeGroup,
    weekday_dates: Sequence[datetime.date],
) -> MergeCandidate:
    """Build a scored candidate for merging ``source`` into ``into``."""
    members = into.members + source.members
    merged_time = base_time_range(occurrences, members)

    exception_penalty = 0
    for i in members:
        t = occurrences[i].time
        if t.start != merged_time.start:
            exception_penalty += 1
        if t.end != merged_time.end:
            exception_penalty += 1

    return MergeCandidate(
        into=into,
        source=source,
        members=members,
        time=merged_time,
        exclusion_penalty=count_exclusions(occurrences, members, weekday_dates),
        exception_penalty=exception_penalty,
        duration_penalty=base_time_range(occurrences, source.members).duration(),
    )


def rank_candidates(
    occurrences: Sequence[Occurrence],
    partition: Partition,
    weekday_dates: Sequence[datetime.date],
) -> list[MergeCandidate]:
    """Enumerate and rank every legal merge in the partition, best first."""
    candidates = [
        simulate_merge(occurrences, into, source, weekday_dates)
        for into in partition.groups
        for source in partition.groups
        if into is not source and is_legal_merge(occurrences, into, source)
    ]
    candidates.sort(key=MergeCandidate.rank_key)
    return candidates


def merge_partition(
    occurrences: Sequence[Occurrence],
    partition: Partition,
    weekday_dates: Sequence[datetime.date],
) -> int:
    """Merge the partition's groups in place until no legal merge remains.

    Returns:
        Number of merges performed
    """
    epoch = 0
    while True:
        candidates = rank_candidates(occurrences, partition, weekday_dates)
        if not candidates:
            return epoch
        if epoch == 0:
            logger.debug("merging %s", partition.key)

        if logger.isEnabledFor(logging.DEBUG):
            for n, c in enumerate(candidates):
                logger.debug(
                    "merge candidate %s epoch=%d %s result=%s (%d += %d) best=%s",
                    partition.key,
                    epoch,
                    c,
                    c.time,
                    len(c.into.members),
                    len(c.source.members),
                    n == 0,
                )

        best = candidates[0]
        best.into.members = best.members
        partition.groups = [g for g in partition.groups if g is not best.source]
        epoch += 1


def assign_base_times(
    occurrences: Sequence[Occurrence],
    partitions: Sequence[Partition],
) -> list[TimeRange]:
    """Compute every occurrence's base time range from its final group."""
    base_times: list[TimeRange] = [o.time for o in occurrences]
    for partition in partitions:
        for group in partition.groups:
            base = base_time_range(occurrences, group.members)
            for i in group.members:
                if occurrences[i].time != base:
                    logger.debug("move into %s: %s", base, occurrences[i].describe())
                base_times[i] = base
    return base_times


def split_irregular_groups(
    occurrences: Sequence[Occurrence],
    partitions: Sequence[Partition],
    base_times: list[TimeRange],
    weekday_dates: WeekdayDates,
) -> int:
    """Undo merges that produced an instance made only of exceptions.

    A group is split back into its individual time ranges when it has no
    cancellations, no two of its occurrences share a time range, and its
    weekday has at least as many missing dates as it has distinct ranges.

    Returns:
        Number of groups split
    """
    split = 0
    for partition in partitions:
        for group in partition.groups:
            times: set[TimeRange] = set()
            regular = False
            for i in group.members:
                occurrence = occurrences[i]
                if occurrence.cancelled or occurrence.time in times:
                    regular = True
                    break
                times.add(occurrence.time)
            if regular or len(times) == 1:
                continue

            exclusions = count_exclusions(occurrences, group.members, weekday_dates[partition.key.weekday])
            if exclusions < len(times):
                continue

            logger.debug("splitting %s %s", partition.key, group.key)
            for i in group.members:
                base_times[i] = occurrences[i].time
            split += 1
    return split


def resolve_base_collisions(
    occurrences: Sequence[Occurrence],
    partitions: Sequence[Partition],
    base_times: list[TimeRange],
) -> int:
    """Keep two groups of a partition from sharing one base range on one date.

    Distinct groups can end up with the same base time range; if they also share
    a date the compiled instance would hold two occurrences on that date. Both
    groups are reverted to exact time ranges until no such pair remains.

    Returns:
        Number of groups reverted
    """
    reverted_total = 0
    for partition in partitions:
        reverted: set[int] = set()
        while True:
            owner: dict[tuple[TimeRange, datetime.date], int] = {}
            collision = None
            for gi, group in enumerate(partition.groups):
                for i in group.members:
                    slot = (base_times[i], occurrences[i].date)
                    other = owner.setdefault(slot, gi)
                    if other != gi:
                        collision = (other, gi)
                        break
                if collision is not None:
                    break

            if collision is None:
                break
            if all(gi in reverted for gi in collision):
                logger.warning("unresolvable base time collision in %s", partition.key)
                break

            for gi in collision:
                if gi in reverted:
                    continue
                logger.debug("revert %s %s (base collision)", partition.key, partition.groups[gi].key)
                for i in partition.groups[gi].members:
                    base_times[i] = occurrences[i].time
                reverted.add(gi)
                reverted_total += 1
    return reverted_total


def merge_recurrences(
    occurrences: Sequence[Occurrence],
    partitions: Sequence[Partition],
    start: datetime.date | None,
    end: datetime.date | None,
) -> list[TimeRange]:
    """Run merging, base time assignment, splitting and collision resolution.

    Args:
        occurrences: Filtered occurrences
        partitions: Partitions from :func:`partition_occurrences` (mutated)
        start: First date of the schedule span
        end: Last date of the schedule span

    Returns:
        Base time range for each occurrence index
    """
    weekday_dates = span_weekday_dates(start, end)
    merges = 0
    for partition in partitions:
        merges += merge_partition(occurrences, partition, weekday_dates[partition.key.weekday])

    base_times = assign_base_times(occurrences, partitions)
    split = split_irregular_groups(occurrences, partitions, base_times, weekday_dates)
    reverted = resolve_base_collisions(occurrences, partitions, base_times)
    logger.debug(
        "Merged %d groups across %d partitions (%d split, %d reverted)",
        merges,
        len(partitions),
        split,
        reverted,
    )
    return base_times

"""Date helpers shared by the schedule compiler and expander."""

from __future__ import annotations

import datetime
import logging
from collections import Counter
from collections.abc import Callable, Hashable, Iterable, Iterator
from typing import Optional, TypeVar

from dateutil.rrule import DAILY, WEEKLY, rrule

logger = logging.getLogger(__name__)

T = TypeVar("T")
K = TypeVar("K", bound=Hashable)

WEEKDAY_NAMES = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")


def now_utc() -> datetime.datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.datetime.now(datetime.timezone.utc)


def weekday_index(d: datetime.date) -> int:
    """Return the weekday of ``d`` numbered Sunday=0 through Saturday=6."""
    return d.isoweekday() % 7


def weekday_abbrev(index: int) -> str:
    """Two-letter weekday abbreviation (Su, Mo, ...)."""
    return WEEKDAY_NAMES[index][:2]


def _to_dateutil_weekday(index: int) -> int:
    # dateutil numbers weekdays Monday=0 like datetime.weekday()
    return (index - 1) % 7


def iter_dates(
    start: Optional[datetime.date],
    end: Optional[datetime.date],
    weekdays: Optional[Iterable[int]] = None,
) -> Iterator[datetime.date]:
    """Iterate every date in the inclusive range ``[start, end]``.

    Args:
        start: First date (inclusive); nothing is yielded if None
        end: Last date (inclusive); nothing is yielded if None
        weekdays: Optional Sunday=0 weekday indexes to restrict the dates to

    Yields:
        Dates in chronological order
    """
    if start is None or end is None or end < start:
        return

    dtstart = datetime.datetime.combine(start, datetime.time())
    until = datetime.datetime.combine(end, datetime.time())

    if weekdays is None:
        rule = rrule(DAILY, dtstart=dtstart, until=until)
    else:
        byweekday = sorted({_to_dateutil_weekday(w) for w in weekdays})
        if not byweekday:
            return
        rule = rrule(WEEKLY, dtstart=dtstart, until=until, byweekday=byweekday)

    for dt in rule:
        yield dt.date()


def most_common(values: Iterable[T]) -> Optional[T]:
    """Return the most frequent value, ties going to the first one seen.

    Returns None for an empty iterable.
    """
    counts: Counter[T] = Counter()
    order: list[T] = []
    for value in values:
        if value not in counts:
            order.append(value)
        counts[value] += 1

    best: Optional[T] = None
    best_count = 0
    for value in order:
        if counts[value] > best_count:
            best = value
            best_count = counts[value]
    return best


def most_common_by(items: Iterable[T], key: Callable[[T], K]) -> Optional[K]:
    """Like :func:`most_common`, over ``key(item)`` for each item."""
    return most_common(key(item) for item in items)


def ensure_utc(dt: datetime.datetime) -> datetime.datetime:
    """Treat a naive datetime as UTC; aware datetimes are returned unchanged."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=datetime.timezone.utc)
    return dt

"""Public entry point: compile a feed into a compact weekly schedule."""

from __future__ import annotations

import datetime
import logging
from typing import Optional

from .core.datetime_utils import ensure_utc, now_utc
from .domain.pipeline import CompileContext
from .domain.pipeline_stages import create_compile_pipeline
from .filters import OccurrenceFilter
from .models import CompiledSchedule, FeedNotifications, FeedSchedule, Notification

logger = logging.getLogger(__name__)


def feed_span(feed: FeedSchedule) -> tuple[Optional[datetime.date], Optional[datetime.date]]:
    """First and last occurrence date of the whole (unfiltered) feed."""
    if not feed.occurrences:
        return None, None
    dates = [o.date for o in feed.occurrences]
    return min(dates), max(dates)


def compile_notifications(notifications: Optional[FeedNotifications]) -> tuple[Notification, ...]:
    """Convert feed notifications, newest first.

    Notifications with equal send times end up in reverse feed order.
    """
    if notifications is None:
        return ()
    ordered = sorted(
        (Notification(text=n.text, sent=n.sent) for n in notifications.notifications),
        key=lambda n: n.sent,
    )
    ordered.reverse()
    return tuple(ordered)


def last_modified(
    feed: FeedSchedule,
    notifications: Optional[FeedNotifications],
    now: datetime.datetime,
) -> datetime.datetime:
    """The newer of the two documents' update stamps, never later than ``now``."""
    modified = feed.updated
    if notifications is not None and notifications.updated > modified:
        modified = notifications.updated
    return min(modified, now)


def compile_schedule(
    feed: FeedSchedule,
    notifications: Optional[FeedNotifications] = None,
    occurrence_filter: Optional[OccurrenceFilter] = None,
    now: Optional[datetime.datetime] = None,
) -> CompiledSchedule:
    """Compile feed occurrences into activities, locations and recurring instances.

    The caller's occurrences are copied before normalization and filtering, so
    the feed passed in is never modified. The schedule span always covers the
    whole unfiltered feed.

    Args:
        feed: Schedule document
        notifications: Optional notifications document
        occurrence_filter: Optional filter, applied after normalization
        now: Compile time; defaults to the current UTC time. Naive values
            are taken as UTC.

    Returns:
        The compiled schedule

    Raises:
        DuplicateOccurrenceError: If two filtered occurrences share activity,
            location, date and start time
        ScheduleError: If a compilation stage fails unexpectedly
    """
    now = now_utc() if now is None else ensure_utc(now)

    start, end = feed_span(feed)
    context = CompileContext(
        occurrences=[o.model_copy(deep=True) for o in feed.occurrences],
        updated=feed.updated,
        start=start,
        end=end,
    )
    create_compile_pipeline(occurrence_filter).process(context)

    schedule = CompiledSchedule(
        updated=now,
        modified=last_modified(feed, notifications, now),
        start=start,
        end=end,
        activities=context.activities,
        notifications=compile_notifications(notifications),
    )
    logger.debug(
        "Compiled schedule %s..%s: %d activities, %d notifications",
        start,
        end,
        len(schedule.activities),
        len(schedule.notifications),
    )
    return schedule

"""schedulebot - compiles activity feeds into compact weekly schedules.

A feed lists every concrete occurrence of every activity. The compiler groups
those into recurring instances (a time range on a set of weekdays) with
per-date exceptions, and the expander turns them back into dated events.
"""

__version__ = "0.1.0"

from .compiler import compile_schedule
from .dump import dump
from .exceptions import (
    CompileTimeoutError,
    DuplicateOccurrenceError,
    FeedUnavailableError,
    FilterConfigError,
    ScheduleError,
)
from .expander import ExpandedEvent, UpcomingDay, UpcomingEvent, expand_instance, expand_schedule, upcoming
from .filters import FilterFunc, Filters, OccurrenceFilter, build_filters
from .models import (
    Activity,
    Category,
    CompiledSchedule,
    ExceptionKind,
    FeedNotification,
    FeedNotifications,
    FeedSchedule,
    Instance,
    InstanceException,
    Location,
    Notification,
    Occurrence,
    TimeRange,
)
from .source import CompileOutcome, FeedSnapshot, ResultCache, ScheduleSource

__all__ = [
    "Activity",
    "Category",
    "CompileOutcome",
    "CompileTimeoutError",
    "CompiledSchedule",
    "DuplicateOccurrenceError",
    "ExceptionKind",
    "ExpandedEvent",
    "FeedNotification",
    "FeedNotifications",
    "FeedSchedule",
    "FeedSnapshot",
    "FeedUnavailableError",
    "FilterConfigError",
    "FilterFunc",
    "Filters",
    "Instance",
    "InstanceException",
    "Location",
    "Notification",
    "Occurrence",
    "OccurrenceFilter",
    "ResultCache",
    "ScheduleError",
    "ScheduleSource",
    "TimeRange",
    "UpcomingDay",
    "UpcomingEvent",
    "build_filters",
    "compile_schedule",
    "dump",
    "expand_instance",
    "expand_schedule",
    "upcoming",
]

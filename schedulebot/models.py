"""Data models for feed documents and compiled schedules."""

import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator, model_validator

from .core.datetime_utils import ensure_utc, weekday_index

_SECONDS_PER_DAY = 24 * 60 * 60


def _seconds(t: datetime.time) -> int:
    return t.hour * 3600 + t.minute * 60 + t.second


class TimeRange(BaseModel):
    """A time-of-day range. ``end`` may be earlier than ``start`` for ranges past midnight."""

    model_config = ConfigDict(frozen=True)

    start: datetime.time = Field(..., description="Start time of day")
    end: datetime.time = Field(..., description="End time of day")

    def sort_key(self) -> tuple[datetime.time, datetime.time]:
        """Ordering key: start time, then end time."""
        return (self.start, self.end)

    def __lt__(self, other: "TimeRange") -> bool:
        return self.sort_key() < other.sort_key()

    @property
    def wraps_midnight(self) -> bool:
        """True if the range ends on the following day."""
        return self.end < self.start

    def duration(self) -> datetime.timedelta:
        """Wall-clock duration of the range."""
        if self.wraps_midnight:
            back = _seconds(self.start) - _seconds(self.end)
            return datetime.timedelta(seconds=_SECONDS_PER_DAY - back)
        return datetime.timedelta(seconds=_seconds(self.end) - _seconds(self.start))

    def _segments(self) -> list[tuple[int, int]]:
        s, e = _seconds(self.start), _seconds(self.end)
        if self.wraps_midnight:
            return [(s, _SECONDS_PER_DAY), (0, e)]
        return [(s, e)]

    def overlaps(self, other: "TimeRange") -> bool:
        """Check whether two ranges share any time of day."""
        return any(
            a_start < b_end and b_start < a_end
            for a_start, a_end in self._segments()
            for b_start, b_end in other._segments()
        )

    def __str__(self) -> str:
        return f"{self.start:%H:%M:%S}-{self.end:%H:%M:%S}"


# Feed documents


class Category(BaseModel):
    """Category tag attached to an occurrence."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., description="Category identifier")
    name: str = Field(default="", description="Category display name")


class Occurrence(BaseModel):
    """A single concrete activity occurrence from the feed.

    Occurrences are mutable: the normalizer and filters rewrite them in place.
    """

    model_config = ConfigDict(populate_by_name=True)

    activity: str = Field(..., description="Activity name")
    activity_id: str = Field(default="", alias="activityId", description="Stable activity identifier")
    location: str = Field(default="", description="Location name")
    description: str = Field(default="", description="Free-text description")
    date: datetime.date = Field(..., description="Date the occurrence happens on")
    time: TimeRange = Field(..., description="Time of day the occurrence happens at")
    cancelled: bool = Field(default=False, alias="isCancelled", description="Cancellation flag")
    categories: list[Category] = Field(default_factory=list, alias="category")

    @property
    def weekday(self) -> int:
        """Sunday=0 weekday of the occurrence date."""
        return weekday_index(self.date)

    def category_names(self) -> list[str]:
        return [c.name for c in self.categories]

    def category_ids(self) -> list[str]:
        return [c.id for c in self.categories]

    def describe(self) -> str:
        """Short human-readable identification used in diagnostics."""
        return (
            f"{self.date.isoformat()} {self.time} {self.activity!r} @ {self.location!r}"
            f" (id={self.activity_id!r}, cancelled={self.cancelled})"
        )


class FeedSchedule(BaseModel):
    """The schedule document: every occurrence the upstream feed knows about."""

    model_config = ConfigDict(populate_by_name=True)

    updated: datetime.datetime = Field(..., description="Upstream last-update timestamp")
    occurrences: list[Occurrence] = Field(default_factory=list)

    @field_validator("updated")
    @classmethod
    def _updated_utc(cls, v: datetime.datetime) -> datetime.datetime:
        """Feeds often omit the offset; naive timestamps are UTC."""
        return ensure_utc(v)


class FeedNotification(BaseModel):
    """A free-text notification from the feed."""

    text: str
    sent: datetime.datetime

    @field_validator("sent")
    @classmethod
    def _sent_utc(cls, v: datetime.datetime) -> datetime.datetime:
        return ensure_utc(v)


class FeedNotifications(BaseModel):
    """The notifications document."""

    updated: datetime.datetime
    notifications: list[FeedNotification] = Field(default_factory=list)

    @field_validator("updated")
    @classmethod
    def _updated_utc(cls, v: datetime.datetime) -> datetime.datetime:
        return ensure_utc(v)


# Compiled schedule


class ExceptionKind(str, Enum):
    """Kinds of per-date deviation from an instance's regular pattern."""

    ONLY_ON_WEEKDAY = "only_on_weekday"
    LAST_ON_WEEKDAY = "last_on_weekday"
    CANCELLED = "cancelled"
    EXCLUDED = "excluded"
    TIME = "time"


class InstanceException(BaseModel):
    """A per-date exception to an instance. ``time`` is set only for TIME exceptions."""

    model_config = ConfigDict(frozen=True)

    date: datetime.date
    kind: ExceptionKind
    time: Optional[TimeRange] = None

    @model_validator(mode="after")
    def _check_time(self) -> "InstanceException":
        if (self.kind == ExceptionKind.TIME) != (self.time is not None):
            raise ValueError("time must be set exactly when kind is 'time'")
        return self

    @property
    def weekday(self) -> int:
        return weekday_index(self.date)


Days = tuple[bool, bool, bool, bool, bool, bool, bool]

NO_DAYS: Days = (False,) * 7  # type: ignore[assignment]


class Instance(BaseModel):
    """A recurring time slot on a set of weekdays, plus its exceptions."""

    model_config = ConfigDict(frozen=True)

    time: TimeRange
    days: Days = NO_DAYS
    exceptions: tuple[InstanceException, ...] = ()

    @model_validator(mode="after")
    def _check_exception_weekdays(self) -> "Instance":
        for x in self.exceptions:
            if not self.days[x.weekday]:
                raise ValueError(
                    f"exception on {x.date.isoformat()} falls on an inactive weekday"
                )
        return self

    def active_weekdays(self) -> list[int]:
        """Sunday=0 indexes of the weekdays this instance runs on."""
        return [wd for wd, active in enumerate(self.days) if active]


class Location(BaseModel):
    """A location an activity happens at."""

    model_config = ConfigDict(frozen=True)

    name: str
    instances: tuple[Instance, ...] = Field(..., min_length=1)


class Activity(BaseModel):
    """An activity and the locations it happens at."""

    model_config = ConfigDict(frozen=True)

    name: str
    locations: tuple[Location, ...] = Field(..., min_length=1)


class Notification(BaseModel):
    """A notification carried through to the compiled schedule."""

    model_config = ConfigDict(frozen=True)

    text: str
    sent: datetime.datetime

    @field_serializer("sent")
    def serialize_sent(self, dt: datetime.datetime) -> str:
        """Serialize datetime to ISO format."""
        return dt.isoformat()


class CompiledSchedule(BaseModel):
    """The compact weekly schedule produced by the compiler. Immutable."""

    model_config = ConfigDict(frozen=True)

    updated: datetime.datetime = Field(..., description="When the schedule was compiled")
    modified: datetime.datetime = Field(..., description="When the feed data last changed")
    start: Optional[datetime.date] = Field(default=None, description="First covered date")
    end: Optional[datetime.date] = Field(default=None, description="Last covered date")
    activities: tuple[Activity, ...] = ()
    notifications: tuple[Notification, ...] = ()

    @field_serializer("updated", "modified")
    def serialize_datetime(self, dt: datetime.datetime) -> str:
        """Serialize datetime fields to ISO format."""
        return dt.isoformat()

"""Plain-text dump of a compiled schedule, for debugging and determinism checks."""

from __future__ import annotations

import datetime
import json

from .core.datetime_utils import iter_dates, weekday_abbrev, weekday_index
from .expander import expand_instance
from .models import CompiledSchedule, ExceptionKind, Instance, InstanceException

EXCEPTION_LABELS = {
    ExceptionKind.ONLY_ON_WEEKDAY: "ONLY_WEEKDAY",
    ExceptionKind.LAST_ON_WEEKDAY: "LAST_WEEKDAY",
    ExceptionKind.CANCELLED: "CANCELLED",
    ExceptionKind.EXCLUDED: "EXCLUDED",
    ExceptionKind.TIME: "TIME",
}


def _quote(s: str) -> str:
    return json.dumps(s, ensure_ascii=False)


def _days(instance: Instance) -> str:
    return "[" + " ".join(weekday_abbrev(wd) for wd in instance.active_weekdays()) + "]"


def _label(x: InstanceException) -> str:
    if x.kind == ExceptionKind.TIME:
        return f"TIME {x.time}"
    return EXCEPTION_LABELS[x.kind]


def _dump_schedule(schedule: CompiledSchedule, out: list[str]) -> None:
    out.append("=== SCHEDULE ===")
    out.append(f"Modified: {schedule.modified.astimezone(datetime.timezone.utc).isoformat()}")
    out.append(f"Start: {schedule.start}")
    out.append(f"End: {schedule.end}")
    out.append("---")
    for n in schedule.notifications:
        out.append(n.sent.isoformat())
        out.append(f"\t{_quote(n.text)}")
    out.append("---")
    for activity in schedule.activities:
        out.append(_quote(activity.name))
        for location in activity.locations:
            out.append(f"\t{_quote(location.name)}")
            for instance in location.instances:
                out.append(f"\t\t{instance.time} {_days(instance)}")
                for x in instance.exceptions:
                    out.append(f"\t\t\t{weekday_abbrev(x.weekday)} {x.date}  {_label(x)}")


def _dump_events(schedule: CompiledSchedule, out: list[str]) -> None:
    out.append("=== EVENTS ===")
    expansions = [
        (activity.name, location.name, instance, expand_instance(instance, schedule.start, schedule.end))
        for activity in schedule.activities
        for location in activity.locations
        for instance in location.instances
    ]
    for d in iter_dates(schedule.start, schedule.end):
        events = []
        for activity, location, instance, expansion in expansions:
            event = expansion.event_on(d)
            if event is None:
                continue
            description = f"{instance.time} {_days(instance)}"
            labels = [_label(x) for x in instance.exceptions if x.date == d]
            if labels:
                description = f"{description:<40}  {' '.join(labels)}"
            events.append((activity, location, event.time, description))

        events.sort(key=lambda e: (e[0], e[1], e[2].sort_key()))
        for activity, location, time, description in events:
            out.append(
                f"{weekday_abbrev(weekday_index(d))} {d} {time} "
                f"{_quote(activity):<40} {_quote(location):<30} | {description}"
            )


def dump(schedule: CompiledSchedule) -> str:
    """Render the schedule tree followed by every expanded event in its span.

    Tabs are expanded to three spaces. Equal schedules always dump identically.
    """
    out: list[str] = []
    _dump_schedule(schedule, out)
    _dump_events(schedule, out)
    return "\n".join(out).replace("\t", "   ") + "\n"

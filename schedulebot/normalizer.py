"""Occurrence normalization: text cleanup and fake-cancellation repair."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Optional

from .core.datetime_utils import most_common
from .models import Occurrence

logger = logging.getLogger(__name__)

# Checked in order, case-sensitively, against the trimmed activity name.
CANCELLED_PREFIXES: tuple[str, ...] = (
    "CANCELLED - ",
    "CANCELED - ",
)

CANCELLED_SUFFIXES: tuple[str, ...] = (
    " - CANCELLED",
    " - CANCELED",
    " [CANCELLED]",
    " [CANCELED]",
    " [Cancelled]",
    " [Canceled]",
    " [cancelled]",
    " [canceled]",
    " (CANCELLED)",
    " (CANCELED)",
    " (Cancelled)",
    " (Canceled)",
    " (cancelled)",
    " (canceled)",
)


def strip_cancellation_marker(name: str) -> tuple[str, bool]:
    """Remove the first matching cancellation marker from an activity name.

    Args:
        name: Activity name

    Returns:
        Tuple of (name without the marker, whether a marker was found)
    """
    for prefix in CANCELLED_PREFIXES:
        if name.startswith(prefix):
            return name[len(prefix) :], True
    for suffix in CANCELLED_SUFFIXES:
        if name.endswith(suffix):
            return name[: -len(suffix)], True
    return name, False


def sibling_sort_key(o: Occurrence) -> tuple:
    """Total order over siblings; backfill ties go to the first."""
    return (o.date, o.location, o.activity_id, o.description, o.time.sort_key(), o.cancelled)


def find_siblings(occurrences: Sequence[Occurrence], index: int) -> list[Occurrence]:
    """Find the other occurrences with the same activity name, start time and weekday.

    Siblings are returned sorted by :func:`sibling_sort_key`; ties in the
    backfill go to the first of them.
    """
    target = occurrences[index]
    siblings = [
        other
        for i, other in enumerate(occurrences)
        if i != index
        and other.activity == target.activity
        and other.time.start == target.time.start
        and other.weekday == target.weekday
    ]
    siblings.sort(key=sibling_sort_key)
    return siblings


BACKFILL_FIELDS = ("activity_id", "description", "location")


def backfill_values(siblings: Sequence[Occurrence]) -> dict[str, str]:
    """Most common non-empty value of each backfilled field among the siblings."""
    values: dict[str, str] = {}
    for field in BACKFILL_FIELDS:
        value: Optional[str] = most_common(v for v in (getattr(o, field) for o in siblings) if v)
        if value is not None:
            values[field] = value
    return values


def _backfill(occurrence: Occurrence, values: dict[str, str]) -> None:
    for field, value in values.items():
        old = getattr(occurrence, field)
        if value != old:
            logger.debug(
                "... update cancellation %s: %r -> %r (%s)",
                field,
                old,
                value,
                occurrence.activity,
            )
            setattr(occurrence, field, value)


def normalize_occurrences(occurrences: list[Occurrence]) -> list[Occurrence]:
    """Clean occurrences in place and return the same list.

    Activity and location names are trimmed. Activities whose name carries a
    textual cancellation marker are converted to real cancellations, and their
    identifier, description and location are repaired from the most common
    values among matching siblings, since feeds often omit them on those
    entries.

    Markers are stripped from the whole list first, and every repair is
    computed before any is applied, so the result is the same for any
    ordering of the input.

    Args:
        occurrences: Occurrences to clean (mutated in place)

    Returns:
        The same list, for chaining
    """
    for occurrence in occurrences:
        occurrence.activity = occurrence.activity.strip()
        occurrence.location = occurrence.location.strip()

    converted: list[int] = []
    for index, occurrence in enumerate(occurrences):
        if occurrence.cancelled:
            continue

        name, cancelled = strip_cancellation_marker(occurrence.activity)
        if not cancelled:
            continue

        occurrence.activity = name
        occurrence.cancelled = True
        converted.append(index)
        logger.debug("convert fake cancellation: %s", occurrence.describe())

    repairs = []
    for index in converted:
        siblings = find_siblings(occurrences, index)
        if siblings:
            repairs.append((occurrences[index], backfill_values(siblings)))
    for occurrence, values in repairs:
        _backfill(occurrence, values)

    if converted:
        logger.debug("Converted %d fake cancellations", len(converted))
    return occurrences

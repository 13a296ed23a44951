"""Occurrence filters and filter rule construction.

A filter is applied to each occurrence in feed order. It may rewrite the
occurrence in place (e.g. shorten a location name) before deciding whether to
keep it. A :class:`Filters` chain is conjunctive, and rewrites made by earlier
filters are visible to later ones.
"""

from __future__ import annotations

import logging
import shlex
from collections.abc import Callable, Iterable, Sequence
from typing import Optional, Protocol

from .exceptions import FilterConfigError
from .models import Occurrence

logger = logging.getLogger(__name__)


class OccurrenceFilter(Protocol):
    """Protocol for anything that can filter (and rewrite) occurrences."""

    def filter(self, occurrence: Occurrence) -> bool:
        """Return True to keep the occurrence."""
        ...


class FilterFunc:
    """Adapts a plain function to :class:`OccurrenceFilter`."""

    def __init__(self, fn: Callable[[Occurrence], bool], description: str = "") -> None:
        self.fn = fn
        self.description = description or getattr(fn, "__name__", "filter")

    def filter(self, occurrence: Occurrence) -> bool:
        return self.fn(occurrence)

    def __repr__(self) -> str:
        return f"FilterFunc({self.description})"


class Filters(list):
    """A list of filters applied in sequence; all must keep the occurrence."""

    def filter(self, occurrence: Occurrence) -> bool:
        for f in self:
            if not f.filter(occurrence):
                return False
        return True

    def copy(self) -> Filters:
        return Filters(self)


def apply_filter(
    occurrences: Iterable[Occurrence],
    occurrence_filter: Optional[OccurrenceFilter],
) -> list[Occurrence]:
    """Return the occurrences the filter keeps, in their original order."""
    if occurrence_filter is None:
        return list(occurrences)
    return [o for o in occurrences if occurrence_filter.filter(o)]


# Filter rules

# A value action receives the field's current values, may rewrite them in
# place, and returns whether the occurrence is kept.
ValueAction = Callable[[list[str]], bool]

FILTER_FIELDS = ("activity", "location", "category", "category_id")


def _in_action(args: list[str], negate: bool) -> ValueAction:
    def action(values: list[str]) -> bool:
        found = any(v in args for v in values)
        return not found if negate else found

    return action


def _contains_action(needle: str, negate: bool) -> ValueAction:
    def action(values: list[str]) -> bool:
        found = any(needle in v for v in values)
        return not found if negate else found

    return action


def _rewrite_action(rewrite: Callable[[str], str]) -> ValueAction:
    def action(values: list[str]) -> bool:
        values[:] = [rewrite(v) for v in values]
        return True

    return action


def _remove_prefix(prefix: str) -> Callable[[str], str]:
    return lambda v: v[len(prefix) :] if v.startswith(prefix) else v


def _remove_suffix(suffix: str) -> Callable[[str], str]:
    return lambda v: v[: -len(suffix)] if suffix and v.endswith(suffix) else v


def build_value_action(action: str, args: Sequence[str]) -> ValueAction:
    """Build the value-level behavior for a filter action.

    Raises:
        FilterConfigError: If the action is unknown or has the wrong number of arguments
    """
    args = list(args)
    if action in ("in", "notIn"):
        if len(args) < 1:
            raise FilterConfigError(f"expected at least 1 argument for filter action {action!r}")
        return _in_action(args, negate=action == "notIn")

    if action in ("trimPrefix", "trimSuffix", "contains", "notContains"):
        if len(args) != 1:
            raise FilterConfigError(f"expected exactly 1 argument for filter action {action!r}")
        if action == "trimPrefix":
            return _rewrite_action(_remove_prefix(args[0]))
        if action == "trimSuffix":
            return _rewrite_action(_remove_suffix(args[0]))
        return _contains_action(args[0], negate=action == "notContains")

    if action in ("replace", "map"):
        if len(args) != 2:
            raise FilterConfigError(f"expected exactly 2 arguments for filter action {action!r}")
        old, new = args
        if action == "replace":
            return _rewrite_action(lambda v: v.replace(old, new))
        return _rewrite_action(lambda v: new if v == old else v)

    raise FilterConfigError(f"unknown filter action {action!r}")


def _field_filter(field: str, value_action: ValueAction) -> Callable[[Occurrence], bool]:
    if field in ("activity", "location"):

        def single(occurrence: Occurrence) -> bool:
            values = [getattr(occurrence, field)]
            keep = value_action(values)
            setattr(occurrence, field, values[0])
            return keep

        return single

    attr = "name" if field == "category" else "id"

    def categories(occurrence: Occurrence) -> bool:
        values = [getattr(c, attr) for c in occurrence.categories]
        keep = value_action(values)
        for category, value in zip(occurrence.categories, values):
            setattr(category, attr, value)
        return keep

    return categories


def build_filter_rule(field: str, action: str, args: Sequence[str]) -> FilterFunc:
    """Build a filter for one ``filter.<field> <action> [args...]`` rule.

    Args:
        field: Occurrence field (activity, location, category, category_id)
        action: Filter action name
        args: Action arguments

    Returns:
        A filter applying the rule

    Raises:
        FilterConfigError: If the field, action or arguments are invalid
    """
    if field not in FILTER_FIELDS:
        raise FilterConfigError(f"unknown filter key {field!r}")
    value_action = build_value_action(action, args)
    description = " ".join([f"filter.{field}", action, *(repr(a) for a in args)])
    return FilterFunc(_field_filter(field, value_action), description)


def split_args(value: str) -> list[str]:
    """Split whitespace-delimited, optionally quoted arguments.

    Raises:
        FilterConfigError: If the quoting is malformed
    """
    try:
        return shlex.split(value, posix=True)
    except ValueError as e:
        raise FilterConfigError(f"parse whitespace-delimited optionally-quoted fields: {e}") from e


def parse_filter_rule(key: str, value: str) -> FilterFunc:
    """Parse a configuration line such as ``filter.location trimPrefix "Pool - "``.

    Args:
        key: Property name including the ``filter.`` prefix
        value: Remainder of the line

    Raises:
        FilterConfigError: If the line does not describe a valid rule
    """
    if not key.startswith("filter."):
        raise FilterConfigError(f"unknown property {key!r}")
    field = key[len("filter.") :]
    args = split_args(value)
    if not args:
        raise FilterConfigError("missing filter action")
    return build_filter_rule(field, args[0], args[1:])


def build_filters(rules: Iterable[tuple[str, str]]) -> Filters:
    """Build a conjunctive filter chain from ``(key, value)`` rule lines."""
    chain = Filters()
    for key, value in rules:
        chain.append(parse_filter_rule(key, value))
    logger.debug("Built filter chain with %d rules", len(chain))
    return chain

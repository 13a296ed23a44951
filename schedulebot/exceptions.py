"""Exception hierarchy for schedule compilation.

Heuristic stages (normalization, merging, exception synthesis) never raise for
irregular input; the errors below are the only failures callers need to handle.
"""

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .models import Occurrence


class ScheduleError(Exception):
    """Base exception for all schedule compilation errors."""


class DuplicateOccurrenceError(ScheduleError):
    """Two filtered occurrences share activity, location, date and start time.

    The compiler relies on that tuple being unique. Picking one of the two would
    hide a defect in the upstream feed, so compilation is aborted instead.
    """

    def __init__(self, first: "Occurrence", second: "Occurrence") -> None:
        self.first = first
        self.second = second
        super().__init__(
            "duplicate occurrence (same activity, location, date and start time): "
            f"{first.describe()} conflicts with {second.describe()}"
        )


class FilterConfigError(ScheduleError, ValueError):
    """A filter rule or schedule configuration line is invalid.

    Raised while building filters, before any compilation runs.
    """

    def __init__(self, message: str, line: Optional[int] = None) -> None:
        self.line = line
        if line is not None:
            message = f"line {line}: {message}"
        super().__init__(message)


class FeedUnavailableError(ScheduleError):
    """No feed data is available at all, not even a stale copy.

    The collaborator's error is chained as ``__cause__``.
    """


class CompileTimeoutError(ScheduleError):
    """Compilation did not finish before the caller's deadline.

    The worker is abandoned rather than killed; its result is discarded.
    """

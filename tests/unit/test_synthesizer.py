"""Tests for schedulebot.synthesizer module."""

import datetime

import pytest
from helpers import UTC, day, days, exc, occ, tr

from schedulebot.models import ExceptionKind
from schedulebot.synthesizer import first_day_truncated, synthesize_activities

pytestmark = pytest.mark.unit

START = day("2023-01-03")
END = day("2023-01-31")
UPDATED = datetime.datetime(2023, 1, 1, tzinfo=UTC)


def synthesize(occurrences, start=START, end=END, updated=UPDATED, base_times=None):
    if base_times is None:
        base_times = [o.time for o in occurrences]
    return synthesize_activities(occurrences, base_times, start, end, updated)


def only_instance(activities):
    (activity,) = activities
    (location,) = activity.locations
    (instance,) = location.instances
    return instance


class TestExceptions:
    """Tests for synthesized instance exceptions."""

    def test_regular_weekly_has_no_exceptions(self):
        tuesdays = ["2023-01-03", "2023-01-10", "2023-01-17", "2023-01-24", "2023-01-31"]
        instance = only_instance(synthesize([occ(d) for d in tuesdays]))
        assert instance.time == tr("10:30-11:30")
        assert instance.days == days("Tu")
        assert instance.exceptions == ()

    def test_missing_dates_are_excluded(self):
        instance = only_instance(synthesize([occ("2023-01-03"), occ("2023-01-17"), occ("2023-01-31")]))
        assert instance.exceptions == (
            exc("2023-01-10", ExceptionKind.EXCLUDED),
            exc("2023-01-24", ExceptionKind.EXCLUDED),
        )

    def test_early_stop_is_last_on_weekday(self):
        instance = only_instance(synthesize([occ("2023-01-03"), occ("2023-01-10")]))
        assert instance.exceptions == (exc("2023-01-10", ExceptionKind.LAST_ON_WEEKDAY),)

    def test_stop_near_end_is_not_last_on_weekday(self):
        # Stops within a week of the span's end
        occurrences = [occ("2023-01-03"), occ("2023-01-10"), occ("2023-01-17"), occ("2023-01-24")]
        instance = only_instance(synthesize(occurrences))
        assert instance.exceptions == (exc("2023-01-31", ExceptionKind.EXCLUDED),)

    def test_single_occurrence_is_only_on_weekday(self):
        instance = only_instance(synthesize([occ("2023-01-17")]))
        assert instance.exceptions == (exc("2023-01-17", ExceptionKind.ONLY_ON_WEEKDAY),)

    def test_single_occurrence_in_one_week_span(self):
        instance = only_instance(synthesize([occ("2023-01-03")], start=day("2023-01-01"), end=day("2023-01-07")))
        assert instance.exceptions == ()

    def test_time_variant(self):
        occurrences = [occ("2023-01-03"), occ("2023-01-10", "10:45-11:30"), occ("2023-01-17")]
        base = tr("10:30-11:30")
        instance = only_instance(synthesize(occurrences, end=day("2023-01-17"), base_times=[base] * 3))
        assert instance.exceptions == (exc("2023-01-10", ExceptionKind.TIME, "10:45-11:30"),)

    def test_cancelled_with_other_time_keeps_both(self):
        occurrences = [
            occ("2023-01-03"),
            occ("2023-01-10", "10:45-11:30", cancelled=True),
            occ("2023-01-17"),
        ]
        base = tr("10:30-11:30")
        instance = only_instance(synthesize(occurrences, end=day("2023-01-17"), base_times=[base] * 3))
        assert instance.exceptions == (
            exc("2023-01-10", ExceptionKind.CANCELLED),
            exc("2023-01-10", ExceptionKind.TIME, "10:45-11:30"),
        )

    def test_exceptions_ordered_by_date(self):
        occurrences = [occ("2023-01-05"), occ("2023-01-03"), occ("2023-01-12"), occ("2023-01-17")]
        instance = only_instance(synthesize(occurrences, end=day("2023-01-19")))
        assert instance.days == days("Tu", "Th")
        assert [x.date for x in instance.exceptions] == sorted(x.date for x in instance.exceptions)
        assert exc("2023-01-10", ExceptionKind.EXCLUDED) in instance.exceptions


class TestFirstDayTruncation:
    """Tests for ignoring a missing first date that precedes the feed update."""

    TUESDAYS = ["2023-01-10", "2023-01-17", "2023-01-24", "2023-01-31"]

    def test_ignored_before_update(self):
        occurrences = [occ(d) for d in self.TUESDAYS]
        updated = datetime.datetime(2023, 1, 5, tzinfo=UTC)
        assert only_instance(synthesize(occurrences, updated=updated)).exceptions == ()

    def test_excluded_when_span_starts_after_update(self):
        occurrences = [occ(d) for d in self.TUESDAYS]
        instance = only_instance(synthesize(occurrences))
        assert instance.exceptions == (exc("2023-01-03", ExceptionKind.EXCLUDED),)

    def test_excluded_without_update(self):
        occurrences = [occ(d) for d in self.TUESDAYS]
        instance = only_instance(synthesize(occurrences, updated=None))
        assert instance.exceptions == (exc("2023-01-03", ExceptionKind.EXCLUDED),)

    def test_predicate(self):
        updated = datetime.datetime(2023, 1, 5, 8, 0, tzinfo=UTC)
        assert first_day_truncated(START, START, updated)
        assert not first_day_truncated(day("2023-01-04"), START, updated)
        assert not first_day_truncated(START, START, datetime.datetime(2023, 1, 3, 8, 0, tzinfo=UTC))
        assert not first_day_truncated(START, START, None)


class TestTree:
    """Tests for the activity/location/instance tree shape."""

    def test_sorted_names_and_times(self):
        occurrences = [
            occ("2023-01-03", "18:00-19:00", activity="Swim", location="Pool"),
            occ("2023-01-03", "07:00-08:00", activity="Swim", location="Pool"),
            occ("2023-01-03", activity="Swim", location="Lake"),
            occ("2023-01-03", activity="Aqua", location="Pool"),
        ]
        activities = synthesize(occurrences, end=START)
        assert [a.name for a in activities] == ["Aqua", "Swim"]
        swim = activities[1]
        assert [loc.name for loc in swim.locations] == ["Lake", "Pool"]
        assert [i.time for i in swim.locations[1].instances] == [tr("07:00-08:00"), tr("18:00-19:00")]

    def test_base_times_select_instances(self):
        occurrences = [occ("2023-01-03"), occ("2023-01-10", "10:30-11:45")]
        activities = synthesize(occurrences, end=day("2023-01-10"), base_times=[tr("10:30-11:30")] * 2)
        instance = only_instance(activities)
        assert instance.exceptions == (exc("2023-01-10", ExceptionKind.TIME, "10:30-11:45"),)

    def test_empty(self):
        assert synthesize([]) == ()
        assert synthesize([occ("2023-01-03")], start=None, end=None) == ()

"""Shared fixtures for schedulebot tests."""

import logging
from collections.abc import Generator
from typing import Any

import pytest
from helpers import NOW, feed, occ

from schedulebot.lite_logging import SCHEDULEBOT_MODULES
from schedulebot.models import FeedSchedule


@pytest.fixture
def now():
    """Fixed compile time so compiled schedules are reproducible."""
    return NOW


@pytest.fixture
def weekly_feed() -> FeedSchedule:
    """Fourteen consecutive days of "Test" at 10:30-11:30 starting on a Sunday."""
    return feed([occ(f"2023-01-{d:02d}") for d in range(1, 15)])


@pytest.fixture
def interleaved_feed() -> FeedSchedule:
    """Tue/Thu classes with time variants and a gap, plus a one-off weekend slot."""
    return feed(
        [
            occ("2023-01-03", "10:30-11:30"),  # Tu
            occ("2023-01-05", "10:30-11:30"),  # Th
            occ("2023-01-10", "10:30-11:30"),  # Tu
            occ("2023-01-12", "10:30-11:45"),  # Th
            occ("2023-01-17", "10:30-11:30"),  # Tu
            occ("2023-01-19", "10:45-11:30"),  # Th
            occ("2023-01-24", "10:30-11:30"),  # Tu
            occ("2023-01-31", "10:15-11:45"),  # Tu
            occ("2023-02-02", "10:30-11:30"),  # Th
            occ("2023-02-04", "08:00-09:00"),  # Sa
            occ("2023-02-05", "08:00-09:00"),  # Su
        ]
    )


@pytest.fixture(autouse=True)
def clean_test_environment(monkeypatch: Any) -> Generator[None, Any, None]:
    """Clear SCHEDULEBOT_* variables and restore logger levels between tests."""
    import os

    for key in list(os.environ):
        if key.startswith("SCHEDULEBOT_"):
            monkeypatch.delenv(key, raising=False)

    root = logging.getLogger()
    saved_root_level = root.level
    saved_handlers = list(root.handlers)
    yield
    root.setLevel(saved_root_level)
    for handler in list(root.handlers):
        if handler not in saved_handlers:
            root.removeHandler(handler)
    for name in [*SCHEDULEBOT_MODULES, "asyncio"]:
        logging.getLogger(name).setLevel(logging.NOTSET)

"""Tests for environment configuration and the schedules file."""

import os

import pytest
from helpers import occ

from schedulebot.config_loader import (
    DEFAULT_COMPILE_TIMEOUT,
    Config,
    ScheduleConfig,
    load_config,
    parse_schedules,
)
from schedulebot.core.config_manager import ConfigManager, parse_env_file
from schedulebot.exceptions import FilterConfigError

pytestmark = pytest.mark.unit

SCHEDULES = """
# Aquatics
schedule aquatics 123
title Aquatics Centre
desc Pools and diving
upcoming 14
filter.location trimPrefix "Aquatics - "

schedule lanes aquatics
filter.activity contains Lane
unlisted

schedule gym 456
"""


@pytest.fixture
def isolated_environ():
    """os.environ, with any SCHEDULEBOT_* keys set by the test removed afterwards."""
    yield os.environ
    for key in [k for k in os.environ if k.startswith("SCHEDULEBOT_")]:
        del os.environ[key]


class TestParseEnvFile:
    """Tests for parse_env_file."""

    def test_parses_pairs(self, tmp_path):
        env = tmp_path / ".env"
        env.write_text('# comment\n\nSCHEDULEBOT_LOG_LEVEL = "debug"\nNOEQUALS\nSCHEDULEBOT_UPCOMING_DAYS=\'7\'\n')
        assert parse_env_file(env) == {
            "SCHEDULEBOT_LOG_LEVEL": "debug",
            "SCHEDULEBOT_UPCOMING_DAYS": "7",
        }

    def test_missing_file(self, tmp_path):
        assert parse_env_file(tmp_path / "missing.env") == {}


class TestConfigManager:
    """Tests for ConfigManager."""

    def test_env_file_does_not_override_environment(self, tmp_path, isolated_environ):
        env = tmp_path / ".env"
        env.write_text("SCHEDULEBOT_LOG_LEVEL=debug\nSCHEDULEBOT_DEBUG=true\n")
        isolated_environ["SCHEDULEBOT_LOG_LEVEL"] = "warning"

        loaded = ConfigManager(env).load_env_file()
        assert loaded == ["SCHEDULEBOT_DEBUG"]
        assert isolated_environ["SCHEDULEBOT_LOG_LEVEL"] == "warning"

    def test_build_config(self, tmp_path, isolated_environ):
        isolated_environ.update(
            {
                "SCHEDULEBOT_SCHEDULES_FILE": "/etc/schedules.txt",
                "SCHEDULEBOT_UPCOMING_DAYS": "0",
                "SCHEDULEBOT_COMPILE_TIMEOUT": "2.5",
                "SCHEDULEBOT_LOG_LEVEL": " warning ",
                "SCHEDULEBOT_DEBUG": "yes",
            }
        )
        assert ConfigManager(tmp_path / ".env").build_config_from_env() == {
            "schedules_file": "/etc/schedules.txt",
            "upcoming_days": 0,
            "compile_timeout": 2.5,
            "log_level": "WARNING",
            "debug": True,
        }

    @pytest.mark.parametrize(
        ("key", "value"),
        [
            ("SCHEDULEBOT_UPCOMING_DAYS", "soon"),
            ("SCHEDULEBOT_UPCOMING_DAYS", "91"),
            ("SCHEDULEBOT_COMPILE_TIMEOUT", "fast"),
            ("SCHEDULEBOT_COMPILE_TIMEOUT", "0"),
        ],
    )
    def test_invalid_values_ignored(self, tmp_path, isolated_environ, key, value, caplog):
        isolated_environ[key] = value
        assert ConfigManager(tmp_path / ".env").build_config_from_env() == {}
        assert key in caplog.text


class TestParseSchedules:
    """Tests for the schedules file format."""

    def test_parses_blocks(self):
        schedules = parse_schedules(SCHEDULES)
        assert list(schedules) == ["aquatics", "lanes", "gym"]

        aquatics = schedules["aquatics"]
        assert aquatics.feed_id == 123
        assert aquatics.title == "Aquatics Centre"
        assert aquatics.description == "Pools and diving"
        assert aquatics.upcoming_days == 14
        assert not aquatics.unlisted
        assert len(aquatics.filters) == 1

        assert schedules["gym"] == ScheduleConfig(name="gym", feed_id=456, index=2)

    def test_extend_copies_options_and_filters(self):
        schedules = parse_schedules(SCHEDULES)
        lanes = schedules["lanes"]
        assert lanes.feed_id == 123
        assert lanes.index == 1
        assert lanes.title == "Aquatics Centre"
        assert lanes.unlisted
        assert len(lanes.filters) == 2
        assert len(schedules["aquatics"].filters) == 1

        o = occ("2023-01-03", activity="Lane Swim", location="Aquatics - Main Pool")
        assert lanes.filters.filter(o)
        assert o.location == "Main Pool"
        assert not lanes.filters.filter(occ("2023-01-03", activity="Diving"))

    def test_schedule_name_with_spaces(self):
        schedules = parse_schedules("schedule Main Pool 123\n")
        assert schedules["Main Pool"].feed_id == 123

    @pytest.mark.parametrize(
        ("text", "line", "message"),
        [
            ("title Orphan\n", 1, "before properties"),
            ("schedule a 1\nschedule a 2\n", 2, "already used"),
            ("schedule a\n", 1, "missing feed id"),
            ("schedule a 1\nschedule b nope\n", 2, "not a valid feed id"),
            ("schedule a 1\n\n# note\nupcoming 0\n", 4, "between 1 and 90"),
            ("schedule a 1\nupcoming many\n", 2, "invalid number"),
            ("schedule a 1\nunlisted yes\n", 2, "does not take a value"),
            ("schedule a 1\nfilter.weekday in Mo\n", 2, ""),
            ("schedule a 1\ncolour blue\n", 2, ""),
        ],
    )
    def test_errors_carry_line_numbers(self, text, line, message):
        with pytest.raises(FilterConfigError, match=message) as excinfo:
            parse_schedules(text)
        assert excinfo.value.line == line
        assert str(excinfo.value).startswith(f"line {line}: ")


class TestLoadConfig:
    """Tests for load_config and Config."""

    def test_loads_env_and_schedules(self, tmp_path, isolated_environ):
        schedules_file = tmp_path / "schedules.txt"
        schedules_file.write_text(SCHEDULES)
        env = tmp_path / ".env"
        env.write_text(f"SCHEDULEBOT_SCHEDULES_FILE={schedules_file}\nSCHEDULEBOT_COMPILE_TIMEOUT=3\n")

        cfg = load_config(env)
        assert cfg.compile_timeout == 3.0
        assert cfg.log_level == "INFO"
        assert list(cfg.schedules) == ["aquatics", "lanes", "gym"]

    def test_missing_schedules_file(self, tmp_path, isolated_environ):
        isolated_environ["SCHEDULEBOT_SCHEDULES_FILE"] = str(tmp_path / "missing.txt")
        cfg = load_config(tmp_path / ".env")
        assert cfg.schedules == {}

    def test_invalid_schedules_file_raises(self, tmp_path, isolated_environ):
        schedules_file = tmp_path / "schedules.txt"
        schedules_file.write_text("schedule a 1\nfilter.activity bogus x\n")
        isolated_environ["SCHEDULEBOT_SCHEDULES_FILE"] = str(schedules_file)
        with pytest.raises(FilterConfigError):
            load_config(tmp_path / ".env")

    def test_from_dict_defaults(self):
        cfg = Config.from_dict({"compile_timeout": "slow", "upcoming_days": "x", "log_level": "debug"})
        assert cfg.compile_timeout == DEFAULT_COMPILE_TIMEOUT
        assert cfg.upcoming_days is None
        assert cfg.log_level == "DEBUG"

    def test_upcoming_override(self):
        schedule = ScheduleConfig(name="a", feed_id=1, upcoming_days=14)
        assert Config().upcoming_days_for(schedule) == 14
        assert Config(upcoming_days=0).upcoming_days_for(schedule) == 0

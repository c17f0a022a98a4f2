"""Tests for schedule validation, next runs and descriptions."""

import time
from datetime import datetime, timedelta

import pytest

from cronmanager.crontab.schedule import (
    DAILY_MIDNIGHT,
    EVERY_HOUR,
    EVERY_MINUTE,
    INVALID_SCHEDULE,
    MONTHLY,
    WEEKLY_SUNDAY,
    from_natural_language,
    get_next_run,
    get_next_runs,
    get_presets,
    is_valid_schedule,
    to_human_readable,
    validate_schedule,
)

START = datetime(2024, 1, 15, 10, 30)


@pytest.fixture
def new_york_time(monkeypatch):
    """Run the test in a timezone with daylight saving time."""
    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset is not available on this platform")
    monkeypatch.setenv("TZ", "America/New_York")
    time.tzset()
    yield
    monkeypatch.undo()
    time.tzset()


class TestValidateSchedule:
    """Tests for validate_schedule."""

    @pytest.mark.parametrize("expression", [
        "* * * * *",
        "0 9 * * 1-5",
        "*/15 * * * *",
        "0,30 8-18/2 1,15 1-12 0-6",
        "  0   2 * * *  ",
        "0 9 * JAN,jul MON-FRI",
    ])
    def test_valid(self, expression):
        result = validate_schedule(expression)

        assert result.valid is True
        assert result.error is None

    def test_wrong_field_count(self):
        result = validate_schedule("* * * *")

        assert result.valid is False
        assert "5 fields" in result.error

    def test_unknown_name(self):
        result = validate_schedule("0 9 * * FUNDAY")

        assert result.valid is False
        assert "day of week" in result.error

    def test_six_fields_rejected(self):
        assert not is_valid_schedule("0 * * * * *")

    @pytest.mark.parametrize("expression", [
        "60 * * * *",
        "* 24 * * *",
        "* * 0 * *",
        "* * 32 * *",
        "* * * 13 *",
        "* * * * 7",
    ])
    def test_out_of_range(self, expression):
        result = validate_schedule(expression)

        assert result.valid is False
        assert "out of range" in result.error

    @pytest.mark.parametrize("expression", [
        "*/0 * * * *",
        "*/60 * * * *",
        "10-5 * * * *",
        "a * * * *",
        "1,,2 * * * *",
        "",
    ])
    def test_malformed(self, expression):
        assert validate_schedule(expression).valid is False


class TestNextRuns:
    """Tests for get_next_runs."""

    def test_hourly(self):
        runs = get_next_runs("0 * * * *", 3, start=START)

        assert len(runs) == 3
        assert [run.replace(tzinfo=None) for run in runs] == [
            datetime(2024, 1, 15, 11, 0),
            datetime(2024, 1, 15, 12, 0),
            datetime(2024, 1, 15, 13, 0),
        ]

    def test_runs_are_increasing_and_on_the_hour(self):
        runs = get_next_runs("0 * * * *", 3)

        assert all(b > a for a, b in zip(runs, runs[1:]))
        assert all(run.minute == 0 and run.second == 0 for run in runs)
        assert runs[0] > datetime.now().astimezone()

    def test_results_are_timezone_aware(self):
        assert get_next_runs("*/5 * * * *", 1, start=START)[0].tzinfo is not None

    def test_start_is_exclusive(self):
        runs = get_next_runs("30 10 * * *", 1, start=START)

        assert runs[0].replace(tzinfo=None) == START + timedelta(days=1)

    def test_weekday_schedule(self):
        # 2024-01-15 is a Monday
        runs = get_next_runs("0 9 * * 6", 2, start=START)

        assert [run.replace(tzinfo=None) for run in runs] == [
            datetime(2024, 1, 20, 9, 0),
            datetime(2024, 1, 27, 9, 0),
        ]

    def test_day_and_month_names(self):
        runs = get_next_runs("0 9 * FEB SAT", 1, start=START)

        assert runs[0].replace(tzinfo=None) == datetime(2024, 2, 3, 9, 0)

    def test_daylight_saving_change_keeps_wall_clock_time(self, new_york_time):
        # Clocks go forward on 2026-03-08
        runs = get_next_runs("0 9 * * *", 4, start=datetime(2026, 3, 6, 12, 0))

        assert [run.hour for run in runs] == [9, 9, 9, 9]
        assert [run.day for run in runs] == [7, 8, 9, 10]
        assert runs[0].utcoffset() == timedelta(hours=-5)
        assert runs[-1].utcoffset() == timedelta(hours=-4)

    def test_aware_start_is_converted_to_local_time(self, new_york_time):
        # 12:00 in New York
        start = datetime.fromisoformat("2026-03-06T17:00:00+00:00")

        runs = get_next_runs("0 13 * * *", 1, start=start)

        assert runs[0].replace(tzinfo=None) == datetime(2026, 3, 6, 13, 0)

    @pytest.mark.parametrize("count", [0, -1])
    def test_non_positive_count(self, count):
        assert get_next_runs("* * * * *", count) == []

    def test_invalid_expression(self):
        assert get_next_runs("61 * * * *", 5) == []
        assert get_next_run("bogus") is None

    def test_get_next_run(self):
        assert get_next_run("0 0 1 * *", start=START).replace(tzinfo=None) == datetime(2024, 2, 1)


class TestHumanReadable:
    """Tests for to_human_readable."""

    @pytest.mark.parametrize("expression,expected", [
        ("* * * * *", EVERY_MINUTE),
        ("0 * * * *", EVERY_HOUR),
        ("0 0 * * *", DAILY_MIDNIGHT),
        ("0 0 * * 0", WEEKLY_SUNDAY),
        ("0 0 1 * *", MONTHLY),
    ])
    def test_fixed_phrases(self, expression, expected):
        assert to_human_readable(expression) == expected

    def test_malformed(self):
        assert to_human_readable("* * *") == INVALID_SCHEDULE
        assert to_human_readable("") == INVALID_SCHEDULE

    def test_steps_and_weekday_range(self):
        assert to_human_readable("*/15 9-17 * * 1-5") == "Every 15 minutes hour 9-17 Monday-Friday"

    def test_specific_time(self):
        assert to_human_readable("30 14 1 * *") == "Minute 30 hour 14 day 1"

    def test_month_names(self):
        assert to_human_readable("0 12 * 1,7 *") == "Minute 0 hour 12 Jan, Jul"

    def test_hour_and_day_steps(self):
        assert to_human_readable("0 */2 */3 * *") == "Minute 0 every 2 hours every 3 days"

    def test_extra_whitespace(self):
        assert to_human_readable("  *   * * * * ") == EVERY_MINUTE


class TestNaturalLanguage:
    """Tests for from_natural_language."""

    @pytest.mark.parametrize("text,schedule,confidence", [
        ("every minute", "* * * * *", 1.0),
        ("every hour", "0 * * * *", 1.0),
        ("Hourly", "0 * * * *", 1.0),
        ("daily", "0 0 * * *", 1.0),
        ("every day", "0 0 * * *", 1.0),
        ("weekly", "0 0 * * 0", 0.8),
        ("monthly", "0 0 1 * *", 0.8),
        ("every 15 minutes", "*/15 * * * *", 1.0),
        ("every 2 hours", "0 */2 * * *", 1.0),
        ("at 9am", "0 9 * * *", 0.9),
        ("12 am", "0 0 * * *", 0.9),
        ("6 pm", "0 18 * * *", 0.9),
        ("12pm", "0 12 * * *", 0.9),
        ("9 o'clock 30 minutes", "30 9 * * *", 0.9),
    ])
    def test_recognized(self, text, schedule, confidence):
        result = from_natural_language(text)

        assert result.schedule == schedule
        assert result.confidence == confidence

    @pytest.mark.parametrize("text", ["", "whenever you feel like it", "every 90 minutes", "13 pm"])
    def test_unrecognized(self, text):
        result = from_natural_language(text)

        assert result.schedule is None
        assert result.confidence == 0

    def test_results_are_valid(self):
        for text in ["every 5 minutes", "every 12 hours", "7 pm"]:
            assert is_valid_schedule(from_natural_language(text).schedule)


class TestPresets:
    """Tests for get_presets."""

    def test_unique_ids(self):
        ids = [preset.id for preset in get_presets()]

        assert len(ids) == len(set(ids))

    def test_all_schedules_valid(self):
        for preset in get_presets():
            assert is_valid_schedule(preset.schedule), preset.id

    def test_includes_common_presets(self):
        schedules = {preset.id: preset.schedule for preset in get_presets()}

        assert schedules["every-minute"] == "* * * * *"
        assert schedules["workday-9am"] == "0 9 * * 1-5"

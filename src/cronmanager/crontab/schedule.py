"""Schedule computation for crontab jobs.

This module validates five-field cron expressions, computes upcoming run
times in local time, describes expressions in plain English and recognizes
a fixed set of natural-language phrases.
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from croniter import CroniterError, croniter

from cronmanager.crontab.types import NaturalLanguageResult, SchedulePreset, ScheduleValidation

logger = logging.getLogger(__name__)

# Fixed descriptions for the most common expressions
EVERY_MINUTE = "Every minute"
EVERY_HOUR = "Every hour"
DAILY_MIDNIGHT = "Every day at midnight"
WEEKLY_SUNDAY = "Every Sunday at midnight"
MONTHLY = "On the 1st of every month at midnight"
INVALID_SCHEDULE = "Invalid schedule"

_CANONICAL_DESCRIPTIONS = {
    "* * * * *": EVERY_MINUTE,
    "0 * * * *": EVERY_HOUR,
    "0 0 * * *": DAILY_MIDNIGHT,
    "0 0 * * 0": WEEKLY_SUNDAY,
    "0 0 1 * *": MONTHLY,
}

MONTH_NAMES = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
               "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]
DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday",
             "Thursday", "Friday", "Saturday"]


@dataclass(frozen=True)
class _CronField:
    name: str
    low: int
    high: int
    # Three-letter aliases, the first one standing for `low`
    aliases: tuple[str, ...] = ()


_FIELDS = (
    _CronField("minute", 0, 59),
    _CronField("hour", 0, 23),
    _CronField("day of month", 1, 31),
    _CronField("month", 1, 12, tuple(name[:3].lower() for name in MONTH_NAMES)),
    _CronField("day of week", 0, 6, tuple(name[:3].lower() for name in DAY_NAMES)),
)

_ITEM_RE = re.compile(r"^(\*|\d+(?:-\d+)?)(?:/(\d+))?$")
_ALIAS_RE = re.compile(r"[A-Za-z]+")


def _replace_aliases(value: str, field: _CronField) -> str | None:
    """Replace JAN or MON style names with numbers; None if a name is unknown."""
    unknown = False

    def number_for(match: re.Match) -> str:
        nonlocal unknown
        alias = match.group(0).lower()
        if alias not in field.aliases:
            unknown = True
            return alias
        return str(field.low + field.aliases.index(alias))

    replaced = _ALIAS_RE.sub(number_for, value)
    return None if unknown else replaced


def normalize_expression(expression: str) -> str:
    """Collapse surrounding and repeated whitespace."""
    return " ".join(expression.split())


def _validate_field(value: str, field: _CronField) -> str | None:
    """Return an error message for one field, or None if it is valid."""
    numeric = _replace_aliases(value, field)
    if numeric is None:
        return f"Invalid {field.name} value '{value}'"

    for item in numeric.split(","):
        match = _ITEM_RE.match(item)
        if not match:
            return f"Invalid {field.name} value '{item}'"

        base, step = match.group(1), match.group(2)

        if base != "*":
            bounds = [int(part) for part in base.split("-")]
            for number in bounds:
                if not field.low <= number <= field.high:
                    return (
                        f"{field.name.capitalize()} value {number} out of range "
                        f"({field.low}-{field.high})"
                    )
            if len(bounds) == 2 and bounds[0] > bounds[1]:
                return f"Invalid {field.name} range '{base}'"

        if step is not None:
            step_value = int(step)
            if not 1 <= step_value <= field.high:
                return f"Invalid {field.name} step '{step}'"

    return None


def validate_schedule(expression: str) -> ScheduleValidation:
    """Validate a five-field cron expression.

    Supports ``*``, single values, ranges (``a-b``), steps (``*/n``,
    ``a-b/n``, ``a/n``) and comma lists. Values must be in range for their
    field: minute 0-59, hour 0-23, day of month 1-31, month 1-12 (or
    JAN-DEC), day of week 0-6 (or SUN-SAT).

    Args:
        expression: The cron expression.

    Returns:
        Validation result with an error message when invalid.
    """
    normalized = normalize_expression(expression)
    if not normalized:
        return ScheduleValidation(valid=False, error="Schedule is empty")

    parts = normalized.split(" ")
    if len(parts) != 5:
        return ScheduleValidation(
            valid=False,
            error=f"Expected 5 fields (minute hour day month weekday), got {len(parts)}",
        )

    for value, field in zip(parts, _FIELDS):
        error = _validate_field(value, field)
        if error:
            return ScheduleValidation(valid=False, error=error)

    if not croniter.is_valid(normalized):
        return ScheduleValidation(valid=False, error="Invalid cron expression")

    return ScheduleValidation(valid=True)


def is_valid_schedule(expression: str) -> bool:
    """Check whether a cron expression is valid."""
    return validate_schedule(expression).valid


def get_next_runs(
    expression: str,
    count: int = 5,
    start: datetime | None = None,
) -> list[datetime]:
    """Compute upcoming run times for a cron expression.

    Args:
        expression: The cron expression.
        count: Number of run times to compute.
        start: Reference time (defaults to now). Naive datetimes are taken
            as local time.

    Returns:
        Up to ``count`` strictly increasing, timezone-aware local datetimes,
        all after ``start``. Empty for invalid expressions or
        ``count <= 0``.
    """
    if count <= 0:
        return []

    if not is_valid_schedule(expression):
        return []

    # Iterate over naive local wall-clock times; a fixed UTC offset would
    # shift every run after a daylight saving change
    start = start or datetime.now()
    if start.tzinfo is not None:
        start = start.astimezone().replace(tzinfo=None)
    cron = croniter(normalize_expression(expression), start)

    runs: list[datetime] = []
    for _ in range(count):
        try:
            # Each call continues from the previously returned occurrence
            runs.append(cron.get_next(datetime).astimezone())
        except CroniterError as e:
            logger.debug(f"No further runs for '{expression}': {e}")
            break

    return runs


def get_next_run(expression: str, start: datetime | None = None) -> datetime | None:
    """Compute the next run time, or None for an invalid expression."""
    runs = get_next_runs(expression, 1, start)
    return runs[0] if runs else None


def _step_of(value: str) -> str:
    return value.split("/", 1)[1]


def _named_values(value: str, names: list[str], offset: int) -> str:
    def name_for(token: str) -> str:
        if not token.isdigit():
            return token
        index = int(token) - offset
        return names[index] if 0 <= index < len(names) else token

    items = []
    for item in value.split(","):
        if "/" in item or "*" in item:
            items.append(item)
        else:
            items.append("-".join(name_for(token) for token in item.split("-")))
    return ", ".join(items)


def to_human_readable(expression: str) -> str:
    """Describe a cron expression in plain English.

    The five most common expressions map to fixed phrases; anything else is
    described field by field, e.g. ``*/15 9-17 * * 1-5`` becomes
    ``Every 15 minutes hour 9-17 Monday-Friday``.

    Args:
        expression: The cron expression.

    Returns:
        Description, or :data:`INVALID_SCHEDULE` when the expression does
        not have five fields.
    """
    normalized = normalize_expression(expression)
    parts = normalized.split(" ") if normalized else []
    if len(parts) != 5:
        return INVALID_SCHEDULE

    if normalized in _CANONICAL_DESCRIPTIONS:
        return _CANONICAL_DESCRIPTIONS[normalized]

    minute, hour, day, month, weekday = parts
    descriptions = []

    # Minute
    if minute == "*":
        descriptions.append("every minute")
    elif "/" in minute:
        descriptions.append(f"every {_step_of(minute)} minutes")
    else:
        descriptions.append(f"minute {minute}")

    # Hour
    if hour != "*":
        if "/" in hour:
            descriptions.append(f"every {_step_of(hour)} hours")
        else:
            descriptions.append(f"hour {hour}")

    # Day of month
    if day != "*":
        if "/" in day:
            descriptions.append(f"every {_step_of(day)} days")
        else:
            descriptions.append(f"day {day}")

    # Month
    if month != "*":
        if month.startswith("*/"):
            descriptions.append(f"every {_step_of(month)} months")
        else:
            descriptions.append(_named_values(month, MONTH_NAMES, offset=1))

    # Day of week
    if weekday != "*":
        descriptions.append(_named_values(weekday, DAY_NAMES, offset=0))

    text = " ".join(descriptions)
    return text[0].upper() + text[1:]


# -- natural language -----------------------------------------------------

_ScheduleBuilder = Callable[[re.Match], str | None]


def _every_minutes(match: re.Match) -> str:
    return f"*/{int(match.group(1))} * * * *"


def _every_hours(match: re.Match) -> str:
    return f"0 */{int(match.group(1))} * * *"


def _clock_hour(match: re.Match) -> int | None:
    hour = int(next(group for group in match.groups() if group is not None))
    return hour if 1 <= hour <= 12 else None


def _am_hour(match: re.Match) -> str | None:
    hour = _clock_hour(match)
    if hour is None:
        return None
    return f"0 {0 if hour == 12 else hour} * * *"


def _pm_hour(match: re.Match) -> str | None:
    hour = _clock_hour(match)
    if hour is None:
        return None
    return f"0 {12 if hour == 12 else hour + 12} * * *"


def _hour_and_minutes(match: re.Match) -> str:
    return f"{int(match.group(2))} {int(match.group(1))} * * *"


def _meridiem_pattern(suffix: str) -> str:
    # "9 am", "9am", "9 o'clock am", "am 9"
    return rf"\b(\d{{1,2}})\s*(?:o'?clock\s*)?{suffix}\b|\b{suffix}\s*(\d{{1,2}})\b"


# Ordered; the first match wins
_NATURAL_PATTERNS: list[tuple[re.Pattern, str | _ScheduleBuilder, float]] = [
    (re.compile(r"\bevery\s+minute\b"), "* * * * *", 1.0),
    (re.compile(r"\bevery\s+hour\b|\bhourly\b"), "0 * * * *", 1.0),
    (re.compile(r"\bdaily\b|\bevery\s+day\b"), "0 0 * * *", 1.0),
    (re.compile(r"\bweekly\b|\bevery\s+week\b"), "0 0 * * 0", 0.8),
    (re.compile(r"\bmonthly\b|\bevery\s+month\b"), "0 0 1 * *", 0.8),
    (re.compile(r"\bevery\s+(\d+)\s*(?:minutes?|mins?)\b"), _every_minutes, 1.0),
    (re.compile(r"\bevery\s+(\d+)\s*(?:hours?|hrs?)\b"), _every_hours, 1.0),
    (re.compile(_meridiem_pattern(r"a\.?m\.?")), _am_hour, 0.9),
    (re.compile(_meridiem_pattern(r"p\.?m\.?")), _pm_hour, 0.9),
    (re.compile(r"\b(\d{1,2})\s*o'?clock\s*(\d{1,2})\s*(?:minutes?|mins?)\b"), _hour_and_minutes, 0.9),
]


def from_natural_language(text: str) -> NaturalLanguageResult:
    """Turn a short English phrase into a cron expression.

    Recognizes a fixed list of phrases such as "every minute", "hourly",
    "daily", "weekly", "every 15 minutes", "every 2 hours", "9 am",
    "6 pm" and "9 o'clock 30 minutes". Phrases that imply an assumption
    (weekly runs on Sunday, monthly on the 1st) get a lower confidence.

    Args:
        text: The phrase.

    Returns:
        Result with the schedule and a confidence between 0 and 1;
        confidence 0 and no schedule when nothing matched.
    """
    normalized = " ".join(text.lower().split())
    if not normalized:
        return NaturalLanguageResult()

    for pattern, schedule, confidence in _NATURAL_PATTERNS:
        match = pattern.search(normalized)
        if not match:
            continue

        expression = schedule(match) if callable(schedule) else schedule
        if expression is None or not is_valid_schedule(expression):
            logger.debug(f"Pattern {pattern.pattern!r} matched '{text}' but gave no valid schedule")
            continue

        return NaturalLanguageResult(schedule=expression, confidence=confidence)

    return NaturalLanguageResult()


# -- presets --------------------------------------------------------------

_PRESETS = [
    ("every-minute", "Every minute", "Runs once a minute", "* * * * *"),
    ("every-5-minutes", "Every 5 minutes", "Runs every 5 minutes", "*/5 * * * *"),
    ("every-10-minutes", "Every 10 minutes", "Runs every 10 minutes", "*/10 * * * *"),
    ("every-15-minutes", "Every 15 minutes", "Runs every 15 minutes", "*/15 * * * *"),
    ("every-30-minutes", "Every 30 minutes", "Runs every 30 minutes", "*/30 * * * *"),
    ("every-hour", "Every hour", "Runs at the top of every hour", "0 * * * *"),
    ("every-2-hours", "Every 2 hours", "Runs every 2 hours", "0 */2 * * *"),
    ("every-6-hours", "Every 6 hours", "Runs every 6 hours", "0 */6 * * *"),
    ("daily-midnight", "Daily at midnight", "Runs every day at 00:00", "0 0 * * *"),
    ("daily-6am", "Daily at 6 AM", "Runs every day at 06:00", "0 6 * * *"),
    ("daily-9am", "Daily at 9 AM", "Runs every day at 09:00", "0 9 * * *"),
    ("daily-6pm", "Daily at 6 PM", "Runs every day at 18:00", "0 18 * * *"),
    ("weekly-sunday", "Weekly on Sunday", "Runs every Sunday at midnight", "0 0 * * 0"),
    ("weekly-monday", "Weekly on Monday", "Runs every Monday at midnight", "0 0 * * 1"),
    ("monthly", "Monthly", "Runs on the 1st of every month at midnight", "0 0 1 * *"),
    ("workday-9am", "Weekdays at 9 AM", "Runs Monday to Friday at 09:00", "0 9 * * 1-5"),
]


def get_presets() -> list[SchedulePreset]:
    """Get the catalog of common schedules, in display order."""
    return [
        SchedulePreset(id=preset_id, name=name, description=description, schedule=schedule)
        for preset_id, name, description, schedule in _PRESETS
    ]

"""Conversion between structured schedules and cron expressions.

The backend stores automation schedules as six-field cron expressions
(second minute hour day-of-month month day-of-week). Day-of-month and
day-of-week are mutually exclusive: the field that does not drive the
recurrence is "?" (or "*" for daily schedules).

Supported shapes:
    Daily:   "0 {minute} {hour} * * ?"
    Weekly:  "0 {minute} {hour} ? * {MON..SUN}"
    Monthly: "0 {minute} {hour} {day} * ?"
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import IntEnum, StrEnum

_LOGGER = logging.getLogger(__name__)

CRON_FIELD_COUNT = 6

# Field positions
FIELD_MINUTE = 1
FIELD_HOUR = 2
FIELD_DAY_OF_MONTH = 3
FIELD_DAY_OF_WEEK = 5

ANY = "*"
NO_SPECIFIC_VALUE = "?"

MAX_HOUR = 23
MAX_MINUTE = 59
MAX_DAY_OF_MONTH = 31
NOON = 12


class InvalidScheduleError(ValueError):
    """Exception raised when a schedule has out-of-range fields."""


class Frequency(StrEnum):
    """How often a schedule recurs."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class Weekday(IntEnum):
    """Day of week, numbered as in cron (0 = Sunday)."""

    SUNDAY = 0
    MONDAY = 1
    TUESDAY = 2
    WEDNESDAY = 3
    THURSDAY = 4
    FRIDAY = 5
    SATURDAY = 6


WEEKDAY_CODE_MAP = {
    Weekday.MONDAY: "MON",
    Weekday.TUESDAY: "TUE",
    Weekday.WEDNESDAY: "WED",
    Weekday.THURSDAY: "THU",
    Weekday.FRIDAY: "FRI",
    Weekday.SATURDAY: "SAT",
    Weekday.SUNDAY: "SUN",
}
WEEKDAY_CODE_REVERSE_MAP = {value: key for key, value in WEEKDAY_CODE_MAP.items()}


@dataclass(frozen=True)
class ScheduleSpec:
    """A recurring schedule as presented to the user.

    Attributes:
        frequency: Daily, weekly or monthly recurrence.
        hour: Hour of day, 0-23.
        minute: Minute, 0-59.
        weekday: Day of week for weekly schedules, None otherwise.
        day_of_month: Day of month (1-31) for monthly schedules, None
            otherwise.

    """

    frequency: Frequency
    hour: int
    minute: int
    weekday: Weekday | None = None
    day_of_month: int | None = None

    def validate(self) -> None:
        """Check field ranges before encoding.

        Raises:
            InvalidScheduleError: If a field is out of range, missing, or set
                for a frequency that does not use it.

        """
        if not 0 <= self.hour <= MAX_HOUR:
            error_msg = f"Hour out of range: {self.hour}"
            raise InvalidScheduleError(error_msg)
        if not 0 <= self.minute <= MAX_MINUTE:
            error_msg = f"Minute out of range: {self.minute}"
            raise InvalidScheduleError(error_msg)
        if self.frequency is Frequency.WEEKLY and self.weekday is None:
            error_msg = "Weekly schedule requires a weekday"
            raise InvalidScheduleError(error_msg)
        if self.frequency is Frequency.MONTHLY and (
            self.day_of_month is None or not 1 <= self.day_of_month <= MAX_DAY_OF_MONTH
        ):
            error_msg = f"Day of month out of range: {self.day_of_month}"
            raise InvalidScheduleError(error_msg)
        if self.weekday is not None and self.frequency is not Frequency.WEEKLY:
            error_msg = f"Weekday is only used by weekly schedules, not {self.frequency}"
            raise InvalidScheduleError(error_msg)
        if self.day_of_month is not None and self.frequency is not Frequency.MONTHLY:
            error_msg = (
                f"Day of month is only used by monthly schedules, not {self.frequency}"
            )
            raise InvalidScheduleError(error_msg)


def encode(spec: ScheduleSpec) -> str:
    """Encode a schedule as a six-field cron expression.

    The schedule is expected to be valid; see ScheduleSpec.validate.
    """
    if spec.frequency is Frequency.WEEKLY:
        return f"0 {spec.minute} {spec.hour} ? * {WEEKDAY_CODE_MAP[spec.weekday]}"

    if spec.frequency is Frequency.MONTHLY:
        return f"0 {spec.minute} {spec.hour} {spec.day_of_month} * ?"

    return f"0 {spec.minute} {spec.hour} * * ?"


def decode(cron: str) -> ScheduleSpec:
    """Decode a cron expression into a schedule.

    Missing trailing fields default to minute/hour 0, day-of-month "*" and
    day-of-week "?". Expressions that are neither daily nor weekly are read
    as monthly.

    Args:
        cron: Cron expression as stored by the backend.

    Returns:
        The decoded ScheduleSpec.

    """
    parts = cron.split()
    if len(parts) < CRON_FIELD_COUNT:
        _LOGGER.debug("Cron expression %r has %d fields", cron, len(parts))

    minute = _parse_int(_field(parts, FIELD_MINUTE, "0"), default=0)
    hour = _parse_int(_field(parts, FIELD_HOUR, "0"), default=0)
    day = _field(parts, FIELD_DAY_OF_MONTH, ANY)
    weekday_field = _field(parts, FIELD_DAY_OF_WEEK, NO_SPECIFIC_VALUE)

    if day == ANY and weekday_field in (ANY, NO_SPECIFIC_VALUE):
        return ScheduleSpec(frequency=Frequency.DAILY, hour=hour, minute=minute)

    weekday = decode_weekday(weekday_field)
    if day == NO_SPECIFIC_VALUE and weekday is not None:
        return ScheduleSpec(
            frequency=Frequency.WEEKLY, hour=hour, minute=minute, weekday=weekday
        )

    return ScheduleSpec(
        frequency=Frequency.MONTHLY,
        hour=hour,
        minute=minute,
        day_of_month=_parse_int(day, default=1),
    )


def decode_weekday(code: str) -> Weekday | None:
    """Decode a day-of-week field.

    Accepts three-letter codes (any case) and numbers 0-7, where both 0 and
    7 mean Sunday.

    Returns:
        The Weekday, or None if the field is not a single concrete day.

    """
    code = code.strip().upper()
    if code in WEEKDAY_CODE_REVERSE_MAP:
        return WEEKDAY_CODE_REVERSE_MAP[code]

    if code.isdigit():
        number = int(code)
        if number == len(Weekday):
            return Weekday.SUNDAY
        if 0 <= number < len(Weekday):
            return Weekday(number)

    return None


def format_time(hour: int, minute: int) -> str:
    """Format a time of day on a 12-hour clock, e.g. "9:30 AM"."""
    hour12 = hour % NOON or NOON
    suffix = "PM" if hour >= NOON else "AM"
    return f"{hour12}:{minute:02d} {suffix}"


def describe(spec: ScheduleSpec) -> str:
    """Return a short human-readable recurrence, e.g. "Monday / Week"."""
    if spec.frequency is Frequency.WEEKLY and spec.weekday is not None:
        return f"{spec.weekday.name.capitalize()} / Week"

    if spec.frequency is Frequency.MONTHLY:
        return f"Day {spec.day_of_month} / Month"

    return "Everyday"


def _field(parts: list[str], index: int, default: str) -> str:
    return parts[index] if len(parts) > index else default


def _parse_int(value: str, default: int) -> int:
    try:
        return int(value)
    except ValueError:
        return default

# backend/reception/services/slots/recurrence.py
"""
Recurrence rules for reception templates.

A rule is one of a closed set of cadences:
  nth_weekday_of_month  "2nd Tuesday of every month"
  weekly                "every Monday"
  daily                 "every day"
  custom                stored as-is, never expanded

Weekdays use date.weekday() numbering: 0 = Monday ... 6 = Sunday.
"""

import re
from calendar import monthrange
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum

from .config import (
    ReceptionConfig,
    get_reception_config,
    minutes_to_time_str,
    time_str_to_minutes,
)
from .errors import ValidationError


class Cadence(str, Enum):
    NTH_WEEKDAY_OF_MONTH = "nth_weekday_of_month"
    WEEKLY = "weekly"
    DAILY = "daily"
    CUSTOM = "custom"


WEEKDAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]
ORDINALS = ["first", "second", "third", "fourth", "fifth"]


@dataclass(frozen=True)
class RecurrenceRule:
    cadence: Cadence
    start_time: str | None
    end_time: str | None
    slot_duration_minutes: int
    months_ahead: int
    weekday: int | None = None
    week_number: int | None = None
    text: str | None = None  # free-text source of a custom rule

    @classmethod
    def from_template(cls, template) -> "RecurrenceRule":
        """Build a rule from a RecurringTemplates row (or any object with the same fields)."""
        try:
            cadence = Cadence(template.cadence)
        except ValueError:
            raise ValidationError(f"Unknown recurrence cadence: {template.cadence!r}") from None

        return cls(
            cadence=cadence,
            start_time=template.start_time,
            end_time=template.end_time,
            slot_duration_minutes=template.slot_duration_minutes,
            months_ahead=template.months_ahead,
            weekday=template.weekday,
            week_number=template.week_number,
        )

    def validate(self, config: ReceptionConfig | None = None) -> None:
        """Raise ValidationError unless the rule can be expanded into slots."""
        if self.cadence == Cadence.CUSTOM:
            raise ValidationError("Custom recurrence has no generation rule and cannot be expanded")

        self.check_fields(config)

        if self.cadence in (Cadence.NTH_WEEKDAY_OF_MONTH, Cadence.WEEKLY) and self.weekday is None:
            raise ValidationError("weekday must be within 0..6 (0 = Monday)")
        if self.cadence == Cadence.NTH_WEEKDAY_OF_MONTH and self.week_number is None:
            raise ValidationError("week_number must be within 1..5")

    def check_fields(self, config: ReceptionConfig | None = None) -> None:
        """
        Field shape only: window, duration, horizon and the ranges of
        weekday/week_number when set. Passes for a storable custom rule.
        """
        config = config or get_reception_config()

        start_min, end_min = window_minutes(self.start_time, self.end_time)

        if self.slot_duration_minutes is None or self.slot_duration_minutes <= 0:
            raise ValidationError("Slot duration must be a positive number of minutes")
        if self.slot_duration_minutes > end_min - start_min:
            raise ValidationError(
                f"Slot duration {self.slot_duration_minutes} min does not fit into "
                f"{self.start_time}-{self.end_time}"
            )

        if self.months_ahead is None or not 1 <= self.months_ahead <= config.max_months_ahead:
            raise ValidationError(f"months_ahead must be within 1..{config.max_months_ahead}")

        if self.weekday is not None and not 0 <= self.weekday <= 6:
            raise ValidationError("weekday must be within 0..6 (0 = Monday)")
        if self.week_number is not None and not 1 <= self.week_number <= 5:
            raise ValidationError("week_number must be within 1..5")


def window_minutes(start_time: str, end_time: str) -> tuple[int, int]:
    """Parse a reception window; raises ValidationError if malformed or empty."""
    try:
        start_min = time_str_to_minutes(start_time)
        end_min = time_str_to_minutes(end_time)
    except ValueError as e:
        raise ValidationError(str(e)) from None

    if start_min >= end_min:
        raise ValidationError("End time must be later than start time")
    return start_min, end_min


# ── Calendar helpers ─────────────────────────────────────────────────────


def week_number_in_month(day: date) -> int:
    """Which occurrence of its weekday `day` is within its month (1..5)."""
    return (day.day - 1) // 7 + 1


def nth_weekday_of_month(year: int, month: int, weekday: int, n: int) -> date | None:
    """The n-th `weekday` of the month, or None if the month has fewer."""
    first = date(year, month, 1)
    offset = (weekday - first.weekday()) % 7
    day = 1 + offset + (n - 1) * 7
    if day > monthrange(year, month)[1]:
        return None
    return date(year, month, day)


def add_months(day: date, months: int) -> date:
    """Shift by whole months, clamping to the last day of the target month."""
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    return date(year, month, min(day.day, monthrange(year, month)[1]))


# ── Expansion ────────────────────────────────────────────────────────────


def find_recurring_dates(rule: RecurrenceRule, start: date) -> list[date]:
    """
    Dates matching the rule within the horizon [start, start + months_ahead months],
    both ends inclusive.

    nth_weekday_of_month: the n-th occurrence in every calendar month the
    horizon touches; months without an n-th occurrence are skipped.
    weekly/daily: every matching date in the horizon.
    """
    end = add_months(start, rule.months_ahead)

    if rule.cadence == Cadence.NTH_WEEKDAY_OF_MONTH:
        dates = []
        month_start = start.replace(day=1)
        while month_start <= end:
            target = nth_weekday_of_month(
                month_start.year, month_start.month, rule.weekday, rule.week_number
            )
            if target is not None and start <= target <= end:
                dates.append(target)
            month_start = add_months(month_start, 1)
        return dates

    if rule.cadence in (Cadence.WEEKLY, Cadence.DAILY):
        if rule.cadence == Cadence.WEEKLY:
            current = start + timedelta(days=(rule.weekday - start.weekday()) % 7)
            step = timedelta(days=7)
        else:
            current = start
            step = timedelta(days=1)

        dates = []
        while current <= end:
            dates.append(current)
            current += step
        return dates

    raise ValidationError(f"Recurrence cadence {rule.cadence.value!r} cannot be expanded")


def split_window(
    day: date,
    start_time: str,
    end_time: str,
    duration_minutes: int,
) -> list[tuple[datetime, datetime]]:
    """
    Split [start_time, end_time) on `day` into consecutive slots.

    A trailing remainder shorter than duration_minutes is dropped.
    """
    start_min, end_min = window_minutes(start_time, end_time)
    if duration_minutes <= 0:
        raise ValidationError("Slot duration must be a positive number of minutes")

    midnight = datetime.combine(day, datetime.min.time())
    windows = []
    t = start_min
    while t + duration_minutes <= end_min:
        windows.append((
            midnight + timedelta(minutes=t),
            midnight + timedelta(minutes=t + duration_minutes),
        ))
        t += duration_minutes
    return windows


def describe(rule: RecurrenceRule) -> str:
    """Human-readable description, e.g. "Every first Monday of the month, 09:00-12:00"."""
    hours = f"{rule.start_time}-{rule.end_time}"

    if rule.cadence == Cadence.NTH_WEEKDAY_OF_MONTH and rule.weekday is not None:
        if rule.week_number and 1 <= rule.week_number <= len(ORDINALS):
            ordinal = ORDINALS[rule.week_number - 1]
        else:
            ordinal = f"#{rule.week_number}"
        return f"Every {ordinal} {WEEKDAY_NAMES[rule.weekday]} of the month, {hours}"

    if rule.cadence == Cadence.WEEKLY and rule.weekday is not None:
        return f"Every {WEEKDAY_NAMES[rule.weekday]}, {hours}"

    if rule.cadence == Cadence.DAILY:
        return f"Every day, {hours}"

    if rule.text:
        return rule.text
    if rule.start_time is None:
        return "Custom schedule"
    return f"Custom schedule, {hours}"


# ── Free-text schedules ──────────────────────────────────────────────────

# A single reception time ("at 14:00") books one slot of this length
EXACT_TIME_DURATION_MINUTES = 60

_WEEKDAY_ALT = "|".join(name.lower() for name in WEEKDAY_NAMES)
_ORDINAL_ALT = "|".join(ORDINALS)
_TIME = r"(\d{1,2})[:.](\d{2})"

_HEAD_PATTERNS = [
    (
        Cadence.NTH_WEEKDAY_OF_MONTH,
        re.compile(
            rf"^every (?P<ordinal>{_ORDINAL_ALT}) (?P<weekday>{_WEEKDAY_ALT}) of (?:the|every) month\b"
        ),
    ),
    (Cadence.WEEKLY, re.compile(rf"^every (?P<weekday>{_WEEKDAY_ALT})\b")),
    (Cadence.DAILY, re.compile(r"^(?:daily|every day)\b")),
]
_RANGE_RE = re.compile(rf"^(?:from )?{_TIME} ?(?:-|to|till|until) ?{_TIME}$")
_EXACT_RE = re.compile(rf"^at {_TIME}$")


def parse_schedule(text: str, config: ReceptionConfig | None = None) -> RecurrenceRule:
    """
    Parse a manager's free-text reception schedule.

    Recognised forms (case-insensitive, "9.00" and "09:00" both accepted):
      Every first Friday of the month at 14:00
      Every second Tuesday of the month from 15:30 to 17:00
      Every Monday from 9:00 to 12:00 / Every Monday at 14:00
      Daily from 10:00 to 11:00 / Every day at 14:00
    plus the output of describe(). A time range is split into slots of the
    default duration; a single time is one EXACT_TIME_DURATION_MINUTES slot.

    Anything else (e.g. "by appointment") becomes a custom rule that keeps
    the text and is never expanded.
    """
    config = config or get_reception_config()
    normalized = " ".join((text or "").lower().split())

    for cadence, pattern in _HEAD_PATTERNS:
        match = pattern.match(normalized)
        if not match:
            continue
        window = _parse_window(normalized[match.end():].strip(" ,."), config)
        if window is None:
            break

        groups = match.groupdict()
        start_time, end_time, duration = window
        return RecurrenceRule(
            cadence=cadence,
            start_time=start_time,
            end_time=end_time,
            slot_duration_minutes=duration,
            months_ahead=config.default_months_ahead,
            weekday=WEEKDAY_NAMES.index(groups["weekday"].capitalize()) if groups.get("weekday") else None,
            week_number=ORDINALS.index(groups["ordinal"]) + 1 if groups.get("ordinal") else None,
        )

    return RecurrenceRule(
        cadence=Cadence.CUSTOM,
        start_time=None,
        end_time=None,
        slot_duration_minutes=config.default_slot_duration_minutes,
        months_ahead=config.default_months_ahead,
        text=(text or "").strip() or None,
    )


def _parse_window(rest: str, config: ReceptionConfig) -> tuple[str, str, int] | None:
    exact = _EXACT_RE.match(rest)
    if exact:
        start = _clock(*exact.groups())
        if start is None:
            return None
        end_min = time_str_to_minutes(start) + EXACT_TIME_DURATION_MINUTES
        if end_min >= 24 * 60:
            return None
        return start, minutes_to_time_str(end_min), EXACT_TIME_DURATION_MINUTES

    ranged = _RANGE_RE.match(rest)
    if ranged:
        h1, m1, h2, m2 = ranged.groups()
        start, end = _clock(h1, m1), _clock(h2, m2)
        if start is None or end is None:
            return None
        return start, end, config.default_slot_duration_minutes

    return None


def _clock(hour: str, minute: str) -> str | None:
    h, m = int(hour), int(minute)
    if h > 23 or m > 59:
        return None
    return f"{h:02d}:{m:02d}"

from datetime import date, datetime

import pytest

from reception.services.slots.errors import ValidationError
from reception.services.slots.recurrence import (
    Cadence,
    RecurrenceRule,
    add_months,
    describe,
    find_recurring_dates,
    nth_weekday_of_month,
    parse_schedule,
    split_window,
    week_number_in_month,
)


def _rule(**overrides) -> RecurrenceRule:
    fields = dict(
        cadence=Cadence.NTH_WEEKDAY_OF_MONTH,
        start_time="09:00",
        end_time="12:00",
        slot_duration_minutes=10,
        months_ahead=3,
        weekday=0,
        week_number=1,
    )
    fields.update(overrides)
    return RecurrenceRule(**fields)


def test_nth_weekday_of_month() -> None:
    assert nth_weekday_of_month(2026, 8, 0, 1) == date(2026, 8, 3)
    assert nth_weekday_of_month(2026, 8, 0, 5) == date(2026, 8, 31)
    # September 2026 has only four Mondays
    assert nth_weekday_of_month(2026, 9, 0, 5) is None


def test_week_number_in_month() -> None:
    assert week_number_in_month(date(2026, 8, 3)) == 1
    assert week_number_in_month(date(2026, 8, 7)) == 1
    assert week_number_in_month(date(2026, 8, 8)) == 2
    assert week_number_in_month(date(2026, 8, 31)) == 5


def test_add_months_clamps_to_month_end() -> None:
    assert add_months(date(2026, 1, 31), 1) == date(2026, 2, 28)
    assert add_months(date(2026, 11, 15), 3) == date(2027, 2, 15)


def test_nth_weekday_dates_one_per_month(august_2026) -> None:
    dates = find_recurring_dates(_rule(months_ahead=3), august_2026)
    assert dates == [date(2026, 8, 3), date(2026, 9, 7), date(2026, 10, 5)]


def test_nth_weekday_skips_months_without_occurrence(august_2026) -> None:
    dates = find_recurring_dates(_rule(week_number=5, months_ahead=2), august_2026)
    assert dates == [date(2026, 8, 31)]


def test_nth_weekday_drops_dates_before_start() -> None:
    dates = find_recurring_dates(_rule(months_ahead=2), date(2026, 8, 10))
    assert dates == [date(2026, 9, 7), date(2026, 10, 5)]


def test_nth_weekday_late_start_reaches_next_month() -> None:
    # horizon 2026-08-20..2026-09-20; this month's first Monday has passed
    dates = find_recurring_dates(_rule(months_ahead=1), date(2026, 8, 20))
    assert dates == [date(2026, 9, 7)]


def test_nth_weekday_horizon_end_is_inclusive() -> None:
    # horizon 2026-08-07..2026-09-07 ends on the first Monday of September
    dates = find_recurring_dates(_rule(months_ahead=1), date(2026, 8, 7))
    assert dates == [date(2026, 9, 7)]


def test_weekly_dates(august_2026) -> None:
    dates = find_recurring_dates(
        _rule(cadence=Cadence.WEEKLY, week_number=None, months_ahead=1), august_2026
    )
    assert dates == [date(2026, 8, d) for d in (3, 10, 17, 24, 31)]


def test_daily_dates(august_2026) -> None:
    dates = find_recurring_dates(
        _rule(cadence=Cadence.DAILY, weekday=None, week_number=None, months_ahead=1),
        august_2026,
    )
    # 2026-08-01..2026-09-01, both ends included
    assert len(dates) == 32
    assert dates[0] == date(2026, 8, 1)
    assert dates[-1] == date(2026, 9, 1)


def test_weekly_horizon_end_is_inclusive() -> None:
    dates = find_recurring_dates(
        _rule(cadence=Cadence.WEEKLY, weekday=3, week_number=None, months_ahead=1),
        date(2026, 8, 3),
    )
    assert dates[0] == date(2026, 8, 6)
    assert dates[-1] == date(2026, 9, 3)


def test_split_window_exact() -> None:
    windows = split_window(date(2026, 8, 3), "09:00", "09:30", 10)
    assert [(s.strftime("%H:%M"), e.strftime("%H:%M")) for s, e in windows] == [
        ("09:00", "09:10"),
        ("09:10", "09:20"),
        ("09:20", "09:30"),
    ]


def test_split_window_drops_remainder() -> None:
    windows = split_window(date(2026, 8, 3), "09:00", "09:25", 10)
    assert len(windows) == 2
    assert windows[-1][1] == datetime(2026, 8, 3, 9, 20)


@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"start_time": "12:00", "end_time": "09:00"}, "later than start"),
        ({"start_time": "09:00", "end_time": "09:00"}, "later than start"),
        ({"slot_duration_minutes": 0}, "positive"),
        ({"slot_duration_minutes": 240}, "does not fit"),
        ({"start_time": "9:00"}, "HH:MM"),
        ({"months_ahead": 0}, "months_ahead"),
        ({"months_ahead": 13}, "months_ahead"),
        ({"weekday": 7}, "weekday"),
        ({"week_number": 6}, "week_number"),
        ({"cadence": Cadence.CUSTOM}, "Custom"),
    ],
)
def test_validate_rejects_malformed_rules(overrides, message) -> None:
    with pytest.raises(ValidationError, match=message):
        _rule(**overrides).validate()


def test_weekly_rule_does_not_need_week_number() -> None:
    _rule(cadence=Cadence.WEEKLY, week_number=None).validate()


def test_describe() -> None:
    assert describe(_rule()) == "Every first Monday of the month, 09:00-12:00"
    assert describe(_rule(cadence=Cadence.WEEKLY, weekday=2)) == "Every Wednesday, 09:00-12:00"
    assert describe(_rule(cadence=Cadence.DAILY)) == "Every day, 09:00-12:00"


def test_custom_rule_is_storable_but_not_expandable() -> None:
    rule = _rule(cadence=Cadence.CUSTOM, week_number=None)

    rule.check_fields()
    with pytest.raises(ValidationError, match="Custom"):
        rule.validate()


@pytest.mark.parametrize(
    "text, expected",
    [
        (
            "Every first Friday of the month at 14.00",
            (Cadence.NTH_WEEKDAY_OF_MONTH, 4, 1, "14:00", "15:00", 60),
        ),
        (
            "every second Tuesday of every month from 15:30 to 17:00",
            (Cadence.NTH_WEEKDAY_OF_MONTH, 1, 2, "15:30", "17:00", 10),
        ),
        (
            "Every Monday from 9:00 to 12:00",
            (Cadence.WEEKLY, 0, None, "09:00", "12:00", 10),
        ),
        ("Every Monday at 14:00", (Cadence.WEEKLY, 0, None, "14:00", "15:00", 60)),
        ("Daily from 10.00 to 11.00", (Cadence.DAILY, None, None, "10:00", "11:00", 10)),
        ("every day at 8:30", (Cadence.DAILY, None, None, "08:30", "09:30", 60)),
    ],
)
def test_parse_schedule_recognised(text, expected) -> None:
    rule = parse_schedule(text)

    assert (
        rule.cadence,
        rule.weekday,
        rule.week_number,
        rule.start_time,
        rule.end_time,
        rule.slot_duration_minutes,
    ) == expected
    rule.validate()


def test_parse_schedule_reads_descriptions() -> None:
    rule = _rule(week_number=3, weekday=2)

    assert parse_schedule(describe(rule)) == rule


@pytest.mark.parametrize(
    "text",
    ["By appointment", "Every Monday", "Every Monday at 25:00", "Every first Moonday of the month at 14:00"],
)
def test_parse_schedule_falls_back_to_custom(text) -> None:
    rule = parse_schedule(text)

    assert rule.cadence == Cadence.CUSTOM
    assert rule.text == text
    assert describe(rule) == text
    with pytest.raises(ValidationError):
        rule.validate()

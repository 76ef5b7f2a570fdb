from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from mustdo.dates import (
    OVERDUE,
    TODAY,
    TOMORROW,
    end_of_tomorrow,
    format_date,
    is_must_do,
    label,
    local_now,
)

NOW = datetime(2024, 6, 10, 9, 30)


@pytest.mark.parametrize(
    "due,expected_label,expected_must_do",
    [
        (date(2024, 6, 9), OVERDUE, True),
        (date(2024, 6, 10), TODAY, True),
        (date(2024, 6, 11), TOMORROW, True),
        (date(2024, 6, 12), 'Jun 12, 2024', False),
        (None, None, False),
    ],
)
def test_scenario_for_june_tenth(due, expected_label, expected_must_do):
    assert label(due, NOW) == expected_label
    assert is_must_do(due, NOW) is expected_must_do


def test_end_of_tomorrow_is_last_instant_of_next_day():
    eot = end_of_tomorrow(NOW)
    assert eot.date() == date(2024, 6, 11)
    assert eot.time() == time.max
    assert eot.tzinfo is None


def test_end_of_tomorrow_keeps_timezone():
    tz = ZoneInfo('America/Los_Angeles')
    eot = end_of_tomorrow(datetime(2024, 6, 10, 23, 0, tzinfo=tz))
    assert eot.tzinfo is tz
    assert eot.date() == date(2024, 6, 11)


def test_must_do_is_inclusive_up_to_end_of_tomorrow():
    assert is_must_do(datetime(2024, 6, 11, 23, 59, 59), NOW)
    assert is_must_do(end_of_tomorrow(NOW), NOW)
    assert not is_must_do(datetime(2024, 6, 12, 0, 0), NOW)


def test_everything_between_now_and_end_of_tomorrow_is_must_do():
    due = NOW
    while due <= end_of_tomorrow(NOW):
        assert is_must_do(due, NOW), due
        due += timedelta(hours=3, minutes=7)


def test_label_ignores_time_of_day():
    day = date(2024, 6, 11)
    labels = {label(datetime.combine(day, t), NOW) for t in (time(0, 0), time(8, 15), time(23, 59, 59))}
    assert labels == {TOMORROW}
    far = {label(datetime.combine(date(2024, 7, 4), t), NOW) for t in (time(1), time(22))}
    assert far == {'Jul 4, 2024'}


def test_label_uses_calendar_day_of_now_not_elapsed_hours():
    late = datetime(2024, 6, 10, 23, 59)
    assert label(date(2024, 6, 11), late) == TOMORROW
    assert label(date(2024, 6, 10), late) == TODAY
    early = datetime(2024, 6, 10, 0, 1)
    assert label(date(2024, 6, 9), early) == OVERDUE


def test_aware_due_datetime_is_read_in_zone_of_now():
    tz = ZoneInfo('America/New_York')
    now = datetime(2024, 6, 10, 12, 0, tzinfo=tz)
    # 02:00 UTC on the 11th is still the evening of the 10th in New York
    due = datetime(2024, 6, 11, 2, 0, tzinfo=timezone.utc)
    assert label(due, now) == TODAY
    assert is_must_do(due, now)


def test_format_date_is_locale_independent():
    assert format_date(date(2024, 1, 5)) == 'Jan 5, 2024'
    assert format_date(date(2025, 12, 31)) == 'Dec 31, 2025'


def test_local_now_named_zone_and_fallback():
    now = local_now('UTC')
    assert now.utcoffset() == timedelta(0)
    fallback = local_now('Not/AZone')
    assert fallback.tzinfo is not None

"""Tests for calendar-day relations."""

from datetime import UTC, datetime
from zoneinfo import ZoneInfo

from backend.srs.calendar_days import calendar_date, is_same_calendar_day, is_today, is_yesterday

TZ_UTC = ZoneInfo("UTC")
NEW_YORK = ZoneInfo("America/New_York")


def test_minutes_apart_across_midnight_are_different_days() -> None:
    late = datetime(2024, 3, 14, 23, 59)
    early = datetime(2024, 3, 15, 0, 1)
    assert not is_same_calendar_day(late, early, TZ_UTC)
    assert is_yesterday(late, early, TZ_UTC)


def test_long_gap_within_a_day_is_same_day() -> None:
    assert is_today(datetime(2024, 3, 15, 0, 0), datetime(2024, 3, 15, 23, 59), TZ_UTC)


def test_yesterday_is_calendar_based_not_elapsed() -> None:
    now = datetime(2024, 3, 15, 23, 0)
    assert is_yesterday(datetime(2024, 3, 14, 0, 30), now, TZ_UTC)  # ~46h earlier
    assert not is_yesterday(datetime(2024, 3, 13, 23, 30), now, TZ_UTC)  # ~47h earlier


def test_month_and_year_boundaries() -> None:
    assert is_yesterday(datetime(2023, 12, 31, 18, 0), datetime(2024, 1, 1, 8, 0), TZ_UTC)
    assert is_yesterday(datetime(2024, 2, 29, 12, 0), datetime(2024, 3, 1, 12, 0), TZ_UTC)
    assert not is_today(datetime(2023, 3, 15, 12, 0), datetime(2024, 3, 15, 12, 0), TZ_UTC)


def test_reference_timezone_shifts_the_day() -> None:
    # 02:00 UTC on the 15th is still the evening of the 14th in New York.
    moment = datetime(2024, 3, 15, 2, 0)
    assert calendar_date(moment, NEW_YORK).day == 14
    assert is_yesterday(moment, datetime(2024, 3, 15, 14, 0), NEW_YORK)
    assert is_today(moment, datetime(2024, 3, 15, 14, 0), TZ_UTC)


def test_yesterday_across_dst_change() -> None:
    # New York springs forward on 2024-03-10, a 23-hour local day.
    before = datetime(2024, 3, 10, 4, 30)  # 23:30 on the 9th local
    after = datetime(2024, 3, 11, 4, 30)  # 00:30 on the 11th local
    assert calendar_date(before, NEW_YORK).day == 9
    assert not is_yesterday(before, after, NEW_YORK)
    assert is_yesterday(datetime(2024, 3, 10, 5, 30), after, NEW_YORK)


def test_aware_datetimes_are_accepted() -> None:
    aware = datetime(2024, 3, 15, 12, 0, tzinfo=UTC)
    assert is_today(aware, datetime(2024, 3, 15, 1, 0), TZ_UTC)

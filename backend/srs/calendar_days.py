"""Calendar-day relations used by the streak engine.

Two instants are on the "same day" when their year, month and day match in
a fixed reference timezone. This is deliberately not an elapsed-time check:
23:59 and 00:01 are different days, and 23 hours apart across midnight can
still be "yesterday".
"""

from datetime import UTC, date, datetime, timedelta
from zoneinfo import ZoneInfo


def calendar_date(moment: datetime, tz: ZoneInfo) -> date:
    """Return the local calendar date of ``moment``. Naive values are treated as UTC."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=UTC)
    return moment.astimezone(tz).date()


def is_same_calendar_day(a: datetime, b: datetime, tz: ZoneInfo) -> bool:
    return calendar_date(a, tz) == calendar_date(b, tz)


def is_today(moment: datetime, now: datetime, tz: ZoneInfo) -> bool:
    return is_same_calendar_day(moment, now, tz)


def is_yesterday(moment: datetime, now: datetime, tz: ZoneInfo) -> bool:
    # Calendar subtraction, so DST days of 23 or 25 hours still step back one date.
    return calendar_date(moment, tz) == calendar_date(now, tz) - timedelta(days=1)

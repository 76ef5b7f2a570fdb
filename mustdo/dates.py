"""Classify due dates into display buckets.

A due date is either a ``date`` (a plain calendar day, read as local
midnight) or a ``datetime``. Naive datetimes are wall-clock time in the
zone of ``now``; aware ones are converted into that zone first. Only the
calendar day matters for labels; ``is_must_do`` compares against the last
instant of tomorrow.
"""
import logging
import zoneinfo
from datetime import date, datetime, time, timedelta

logger = logging.getLogger(__name__)

OVERDUE = 'Overdue'
TODAY = 'Today'
TOMORROW = 'Tomorrow'

# strftime('%b') follows the process locale; labels should not.
_MONTH_ABBR = ('Jan', 'Feb', 'Mar', 'Apr', 'May', 'Jun',
               'Jul', 'Aug', 'Sep', 'Oct', 'Nov', 'Dec')


def local_now(tz_name: str | None = None) -> datetime:
    """Current time in the named IANA zone, or the system local time.

    Unknown zone names fall back to local time with a warning.
    """
    if tz_name:
        try:
            return datetime.now(zoneinfo.ZoneInfo(tz_name))
        except (zoneinfo.ZoneInfoNotFoundError, ValueError):
            logger.warning('unknown timezone %r; using server local time', tz_name)
    return datetime.now().astimezone()


def _in_zone_of(dt: datetime, now: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=now.tzinfo)
    if now.tzinfo is None:
        return dt.astimezone().replace(tzinfo=None)
    return dt.astimezone(now.tzinfo)


def _calendar_day(due: date | datetime, now: datetime) -> date:
    if isinstance(due, datetime):
        return _in_zone_of(due, now).date()
    return due


def end_of_tomorrow(now: datetime | None = None) -> datetime:
    """Last instant of the day after ``now``'s calendar day."""
    if now is None:
        now = local_now()
    return datetime.combine(now.date() + timedelta(days=1), time.max, tzinfo=now.tzinfo)


def is_must_do(due: date | datetime | None, now: datetime | None = None) -> bool:
    """True when the task is due on or before the end of tomorrow.

    Overdue tasks count. A task without a due date never does.
    """
    if due is None:
        return False
    if now is None:
        now = local_now()
    if isinstance(due, datetime):
        due_at = _in_zone_of(due, now)
    else:
        due_at = datetime.combine(due, time.min, tzinfo=now.tzinfo)
    return due_at <= end_of_tomorrow(now)


def format_date(d: date | datetime) -> str:
    """Short human date, e.g. ``Jun 12, 2024``."""
    return f"{_MONTH_ABBR[d.month - 1]} {d.day}, {d.year}"


def label(due: date | datetime | None, now: datetime | None = None) -> str | None:
    """Display bucket for a due date.

    ``Overdue``, ``Today`` or ``Tomorrow`` by calendar day, otherwise the
    formatted date. Returns None when there is no due date.
    """
    if due is None:
        return None
    if now is None:
        now = local_now()
    today = now.date()
    day = _calendar_day(due, now)
    if day < today:
        return OVERDUE
    if day == today:
        return TODAY
    if day == today + timedelta(days=1):
        return TOMORROW
    return format_date(day)

import logging
import re
from datetime import date, datetime, timezone

from .errors import ValidationError

logger = logging.getLogger(__name__)

_WIRE_DATE_RE = re.compile(r"([0-9]{4})-([0-9]{2})-([0-9]{2})")


def now_utc() -> datetime:
    """Return timezone-aware current UTC datetime."""
    return datetime.now(timezone.utc)


def isoformat_utc(dt: datetime | None) -> str | None:
    """Format a stored timestamp as ISO-8601 in UTC.

    SQLite hands back naive datetimes; those are assumed to already be UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat()


def parse_wire_date(value) -> date | None:
    """Turn a ``YYYY-MM-DD`` wire value into a calendar date.

    The string is read as a plain calendar day, never as a UTC instant, so a
    client west of UTC gets back the same day it sent. ``None`` and empty
    strings mean "no due date". Date objects pass through (datetimes are
    reduced to their calendar day).
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise ValidationError('Due date must be a YYYY-MM-DD string')
    value = value.strip()
    if not value:
        return None
    m = _WIRE_DATE_RE.fullmatch(value)
    if not m:
        raise ValidationError('Due date must be a YYYY-MM-DD string')
    try:
        return date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
    except ValueError:
        raise ValidationError(f'Invalid due date: {value}')


def format_wire_date(d: date | None) -> str | None:
    """Inverse of parse_wire_date."""
    if d is None:
        return None
    if isinstance(d, datetime):
        d = d.date()
    return f"{d.year:04d}-{d.month:02d}-{d.day:02d}"

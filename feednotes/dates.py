"""
Date helpers: feed date parsing, template formatting and retention windows.

Feed dates come as RFC 822 (RSS) or ISO 8601 / W3C-DTF (Atom).
"""

import time
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime

MINUTE_MS = 60 * 1000
HOUR_MS = 60 * MINUTE_MS
DAY_MS = 24 * HOUR_MS

UNIT_MS = {
    "minutes": MINUTE_MS,
    "hours": HOUR_MS,
    "days": DAY_MS,
    "months": 30 * DAY_MS,
}

TEMPLATE_FORMAT = "%Y-%m-%dT%H:%M:%S"


def now_ms() -> int:
    return int(time.time() * 1000)


def to_milliseconds(value: float, unit: str) -> int:
    """Length of `value` units in ms; unknown units count as minutes."""
    return int(value * UNIT_MS.get(unit, MINUTE_MS))


def parse_feed_date(value: str | None) -> datetime | None:
    """Parse a feed date string into an aware datetime, or None."""
    if not value or not value.strip():
        return None
    value = value.strip()

    # Dates written by format_local are local wall-clock time
    try:
        return datetime.strptime(value, TEMPLATE_FORMAT).astimezone()
    except ValueError:
        pass

    try:
        dt = parsedate_to_datetime(value)
        return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)
    except (TypeError, ValueError):
        pass

    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    return dt if dt.tzinfo else dt.astimezone()


def to_epoch_ms(dt: datetime) -> int:
    return int(dt.timestamp() * 1000)


def format_local(dt: datetime) -> str:
    """Local wall-clock time, no timezone suffix, no milliseconds."""
    if dt.tzinfo is not None:
        dt = dt.astimezone()
    return dt.strftime(TEMPLATE_FORMAT)


def format_pub_date(value: str) -> str:
    """Reformat a publish date for templates, passing unparseable input through."""
    dt = parse_feed_date(value)
    return format_local(dt) if dt else value

"""Datetime utilities."""

from datetime import datetime, timezone

from dateutil.parser import parse as parse_date


def parse_datetime(value) -> datetime:
    """Parse datetime from an ISO or RFC 822 string, or return as-is if already datetime.

    Naive results are assumed to be UTC.
    """
    if value is None:
        return datetime.now(timezone.utc)
    if isinstance(value, datetime):
        return value
    dt = parse_date(value)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def generation_timestamp(now: datetime | None = None) -> str:
    """Timestamp used as a fallback revision tag, e.g. ``20240101_120000``."""
    now = now or datetime.now()
    return now.strftime("%Y%m%d_%H%M%S")

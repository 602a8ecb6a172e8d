"""
Timezone Utilities.

Golden Rules:
1. Database: Always store UTC
2. API: Return ISO 8601
3. Date-range filters are converted to UTC before they reach a query
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

# UTC constant
UTC = timezone.utc


# ============================================================
# CORE FUNCTIONS
# ============================================================

def utc_now() -> datetime:
    """
    Get current time in UTC (timezone-aware).

    Always use this instead of datetime.utcnow() which returns
    naive datetime.
    """
    return datetime.now(UTC)


def to_utc(dt: datetime, source_tz: Optional[str] = None) -> datetime:
    """
    Convert datetime to UTC.

    Naive datetimes are assumed to be in `source_tz`, or UTC when no
    source timezone is given.
    """
    if dt.tzinfo is None:
        if source_tz:
            dt = dt.replace(tzinfo=ZoneInfo(source_tz))
        else:
            dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


# ============================================================
# WINDOWS
# ============================================================

def start_of_day(day: date | datetime | None = None) -> datetime:
    """Midnight UTC of `day` (today when omitted)."""
    if day is None:
        day = utc_now()
    if isinstance(day, datetime):
        day = to_utc(day).date()
    return datetime.combine(day, time.min, tzinfo=UTC)


def days_ago(days: int) -> datetime:
    """
    Start of a trailing window of `days` days.

    Usage:
        since = days_ago(7)
        stats = await audit.get_stats(since)
    """
    return utc_now() - timedelta(days=days)

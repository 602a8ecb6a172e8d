"""Utility functions."""

from conservatory.utils.pagination import OffsetParams, page_count
from conservatory.utils.timezone import (
    UTC,
    utc_now,
    to_utc,
    start_of_day,
    days_ago,
)

__all__ = [
    # Pagination
    "OffsetParams",
    "page_count",
    # Timezone
    "UTC",
    "utc_now",
    "to_utc",
    "start_of_day",
    "days_ago",
]

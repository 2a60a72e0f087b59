"""
Period bucketing for the analytics endpoints.
"""

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Iterable, Optional


class Period(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


DEFAULT_WINDOW_DAYS = 30

_FORMATS = {
    Period.DAILY: "%Y-%m-%d",
    # Sunday-based week of year
    Period.WEEKLY: "%Y-%U",
    Period.MONTHLY: "%Y-%m",
}


def bucket_key(moment: datetime, period: Period = Period.DAILY) -> str:
    return moment.strftime(_FORMATS[Period(period)])


def resolve_window(
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> tuple[datetime, datetime]:
    """Fill a missing window with the last 30 days; aware bounds become naive UTC."""
    now = now or datetime.utcnow()
    end = _naive_utc(end) or now
    start = _naive_utc(start) or (now - timedelta(days=DEFAULT_WINDOW_DAYS))
    return start, end


def _naive_utc(moment: Optional[datetime]) -> Optional[datetime]:
    if moment is None or moment.tzinfo is None:
        return moment
    return moment.astimezone(timezone.utc).replace(tzinfo=None)


def count_by_period(
    moments: Iterable[datetime],
    period: Period = Period.DAILY,
) -> list[dict]:
    """
    Group timestamps into buckets.

    Returns:
        [{"date": key, "count": n}] sorted by key
    """
    buckets: dict[str, int] = {}
    for moment in moments:
        key = bucket_key(moment, period)
        buckets[key] = buckets.get(key, 0) + 1

    return [{"date": key, "count": buckets[key]} for key in sorted(buckets)]


def sum_by_period(
    rows: Iterable[tuple[datetime, int]],
    period: Period = Period.DAILY,
    value_name: str = "total_duration",
) -> list[dict]:
    """
    Group (timestamp, value) rows into buckets.

    Returns:
        [{"date": key, "count": n, value_name: sum}] sorted by key
    """
    buckets: dict[str, dict] = {}
    for moment, value in rows:
        key = bucket_key(moment, period)
        bucket = buckets.setdefault(key, {"date": key, "count": 0, value_name: 0})
        bucket["count"] += 1
        bucket[value_name] += value or 0

    return [buckets[key] for key in sorted(buckets)]

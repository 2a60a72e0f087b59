"""
Streak and progress calculations.

Pure functions over dates and ratings so the rules can be tested
without a database.
"""

from datetime import date, datetime, timedelta
from typing import Iterable, Optional, Sequence, Union

DayLike = Union[date, datetime]

CONSISTENCY_WINDOW_DAYS = 30
PROGRESS_WINDOW = 3
RATING_SCALE = 5


def _as_day(value: DayLike) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def consecutive_days(
    days: Iterable[DayLike],
    today: Optional[date] = None,
    require_recent: bool = False,
) -> int:
    """
    Count consecutive calendar days ending at the most recent day.

    Args:
        days: Activity dates or timestamps, in any order, duplicates allowed
        today: Reference day (defaults to the current UTC date)
        require_recent: When True the streak is 0 unless the most recent
            day is today or yesterday

    Returns:
        Length of the streak
    """
    unique = sorted({_as_day(d) for d in days}, reverse=True)
    if not unique:
        return 0

    latest = unique[0]
    if require_recent:
        today = today or datetime.utcnow().date()
        if latest not in (today, today - timedelta(days=1)):
            return 0

    streak = 1
    expected = latest - timedelta(days=1)
    for day in unique[1:]:
        if day != expected:
            break
        streak += 1
        expected = day - timedelta(days=1)

    return streak


def emotional_progress(ratings: Sequence[int]) -> int:
    """
    Percentage change between the three newest ratings and the three before.

    Args:
        ratings: Emotional ratings (1..5), newest first

    Returns:
        Rounded percentage, or 0 with fewer than six ratings
    """
    if len(ratings) < PROGRESS_WINDOW * 2:
        return 0

    recent = ratings[:PROGRESS_WINDOW]
    previous = ratings[PROGRESS_WINDOW:PROGRESS_WINDOW * 2]

    recent_avg = sum(recent) / PROGRESS_WINDOW
    previous_avg = sum(previous) / PROGRESS_WINDOW

    return round((recent_avg - previous_avg) / RATING_SCALE * 100)


def consistency_rate(entries_in_window: int, window_days: int = CONSISTENCY_WINDOW_DAYS) -> int:
    """Share of days in the window with an entry, as a rounded percentage."""
    if window_days <= 0:
        return 0
    return round(entries_in_window / window_days * 100)

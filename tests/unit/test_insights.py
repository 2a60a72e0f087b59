"""
Unit tests for streak, progress, period and milestone calculations.
"""

from datetime import date, datetime, timedelta

import pytest

from mentemerecedora.insights import (
    MilestoneInputs,
    Period,
    build_milestones,
    bucket_key,
    consecutive_days,
    consistency_rate,
    count_by_period,
    emotional_progress,
    resolve_window,
    sum_by_period,
)


TODAY = date(2024, 5, 20)


class TestConsecutiveDays:
    """Tests for consecutive_days."""

    def test_empty(self):
        assert consecutive_days([]) == 0

    def test_counts_back_from_latest_day(self):
        days = [TODAY, TODAY - timedelta(days=1), TODAY - timedelta(days=2)]
        assert consecutive_days(days, today=TODAY) == 3

    def test_gap_breaks_streak(self):
        days = [TODAY, TODAY - timedelta(days=1), TODAY - timedelta(days=3)]
        assert consecutive_days(days, today=TODAY) == 2

    def test_duplicates_and_order_ignored(self):
        days = [
            datetime(2024, 5, 18, 9),
            datetime(2024, 5, 20, 8),
            datetime(2024, 5, 19, 22),
            datetime(2024, 5, 20, 21),
        ]
        assert consecutive_days(days, today=TODAY) == 3

    def test_old_streak_counts_without_recency(self):
        days = [date(2024, 1, 1), date(2024, 1, 2)]
        assert consecutive_days(days, today=TODAY) == 2

    def test_old_streak_is_zero_with_recency(self):
        days = [date(2024, 1, 1), date(2024, 1, 2)]
        assert consecutive_days(days, today=TODAY, require_recent=True) == 0

    def test_yesterday_keeps_recent_streak(self):
        yesterday = TODAY - timedelta(days=1)
        days = [yesterday, yesterday - timedelta(days=1)]
        assert consecutive_days(days, today=TODAY, require_recent=True) == 2

    def test_timestamps_compared_by_utc_day(self):
        # Naive UTC timestamps late in the day still belong to that day
        stamps = [datetime(2024, 5, 19, 23, 50), datetime(2024, 5, 20, 0, 10)]
        assert consecutive_days(stamps, today=TODAY, require_recent=True) == 2
        assert consecutive_days(stamps, today=TODAY + timedelta(days=2), require_recent=True) == 0


class TestEmotionalProgress:
    """Tests for emotional_progress."""

    def test_needs_six_ratings(self):
        assert emotional_progress([5, 5, 5, 1, 1]) == 0

    def test_improvement(self):
        # (5 - 3) / 5 * 100
        assert emotional_progress([5, 5, 5, 3, 3, 3]) == 40

    def test_decline(self):
        assert emotional_progress([2, 2, 2, 4, 4, 4]) == -40

    def test_rounding(self):
        # recent avg 4.0, previous avg 11/3 -> 6.67
        assert emotional_progress([4, 4, 4, 4, 4, 3]) == 7

    def test_only_six_newest_used(self):
        assert emotional_progress([3, 3, 3, 3, 3, 3, 1, 1]) == 0


class TestConsistencyRate:

    @pytest.mark.parametrize("entries,expected", [(0, 0), (15, 50), (30, 100), (10, 33)])
    def test_rate(self, entries, expected):
        assert consistency_rate(entries) == expected


class TestPeriods:
    """Tests for period bucketing."""

    def test_bucket_keys(self):
        moment = datetime(2024, 5, 20, 15, 30)
        assert bucket_key(moment, Period.DAILY) == "2024-05-20"
        assert bucket_key(moment, Period.MONTHLY) == "2024-05"
        assert bucket_key(moment, Period.WEEKLY) == moment.strftime("%Y-%U")

    def test_count_by_period_sorted(self):
        moments = [
            datetime(2024, 5, 21, 10),
            datetime(2024, 5, 20, 9),
            datetime(2024, 5, 21, 23),
        ]
        assert count_by_period(moments) == [
            {"date": "2024-05-20", "count": 1},
            {"date": "2024-05-21", "count": 2},
        ]

    def test_sum_by_period(self):
        rows = [
            (datetime(2024, 5, 1, 10), 600),
            (datetime(2024, 5, 15, 10), 300),
            (datetime(2024, 6, 2, 10), None),
        ]
        assert sum_by_period(rows, Period.MONTHLY) == [
            {"date": "2024-05", "count": 2, "total_duration": 900},
            {"date": "2024-06", "count": 1, "total_duration": 0},
        ]

    def test_resolve_window_defaults_to_last_30_days(self):
        now = datetime(2024, 5, 20, 12)
        start, end = resolve_window(now=now)
        assert end == now
        assert start == now - timedelta(days=30)

    def test_resolve_window_keeps_explicit_bounds(self):
        start_in = datetime(2024, 1, 1)
        end_in = datetime(2024, 2, 1)
        assert resolve_window(start_in, end_in) == (start_in, end_in)


class TestMilestones:
    """Tests for build_milestones."""

    def _by_id(self, facts):
        return {m.id: m for m in build_milestones(facts)}

    def test_all_milestones_present(self):
        ids = [m.id for m in build_milestones(MilestoneInputs())]
        assert ids == [
            "diario-first",
            "diario-7days",
            "diario-30days",
            "diario-streak-7",
            "pratica-first",
            "pratica-10",
            "pratica-60min",
            "luzia-first",
            "manifestacao-first",
        ]

    def test_nothing_reached_without_activity(self):
        assert not any(m.reached for m in build_milestones(MilestoneInputs()))

    def test_diary_thresholds_and_dates(self):
        dates = [datetime(2024, 5, 1) + timedelta(days=i) for i in range(7)]
        milestones = self._by_id(MilestoneInputs(diary_total=7, diary_dates=dates))

        assert milestones["diario-first"].reached
        assert milestones["diario-first"].date == dates[0]
        assert milestones["diario-7days"].reached
        assert milestones["diario-7days"].date == dates[6]
        assert not milestones["diario-30days"].reached
        assert milestones["diario-30days"].date is None

    def test_streak_milestone(self):
        milestones = self._by_id(MilestoneInputs(diary_streak=7))
        assert milestones["diario-streak-7"].reached
        assert milestones["diario-streak-7"].date is None

    def test_practice_minutes(self):
        assert not self._by_id(MilestoneInputs(practice_seconds=59 * 60 + 59))["pratica-60min"].reached
        assert self._by_id(MilestoneInputs(practice_seconds=3600))["pratica-60min"].reached

    def test_first_conversation_and_manifestation(self):
        when = datetime(2024, 5, 3, 10)
        milestones = self._by_id(MilestoneInputs(
            conversation_total=1,
            conversation_dates=[when],
            manifestation_total=2,
            manifestation_dates=[when],
        ))
        assert milestones["luzia-first"].date == when
        assert milestones["manifestacao-first"].reached

    def test_to_dict(self):
        data = build_milestones(MilestoneInputs())[0].to_dict()
        assert set(data) == {"id", "title", "description", "category", "reached", "date"}

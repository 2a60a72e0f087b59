"""
Insights Module

Pure calculations behind the diary, practice and analytics statistics.
"""

from mentemerecedora.insights.streaks import (
    consecutive_days,
    emotional_progress,
    consistency_rate,
)
from mentemerecedora.insights.periods import (
    Period,
    bucket_key,
    resolve_window,
    count_by_period,
    sum_by_period,
)
from mentemerecedora.insights.milestones import (
    Milestone,
    MilestoneInputs,
    build_milestones,
)

__all__ = [
    "consecutive_days",
    "emotional_progress",
    "consistency_rate",
    "Period",
    "bucket_key",
    "resolve_window",
    "count_by_period",
    "sum_by_period",
    "Milestone",
    "MilestoneInputs",
    "build_milestones",
]

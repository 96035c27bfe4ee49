"""Day-over-day streak of qualifying goal-aligned days."""

from __future__ import annotations

from datetime import timedelta

from goalday.alignment.models import GoalAlignedDayRecord


def qualifies(total_minutes: float, threshold_minutes: float = 0.0) -> bool:
    return total_minutes > threshold_minutes


def apply_streak(
    record: GoalAlignedDayRecord,
    previous: GoalAlignedDayRecord | None,
    existing: GoalAlignedDayRecord | None = None,
    threshold_minutes: float = 0.0,
) -> GoalAlignedDayRecord:
    """Return `record` with current/longest streak filled in.

    `previous` is the latest persisted record strictly before `record.date`;
    it only extends the streak when it is the day before and itself qualified.
    `existing` is the stored row for the same day, if any, whose longest
    streak is carried forward. Streak values depend only on earlier days,
    so recomputing a day never moves them further.
    """
    carried_longest = max(
        previous.longest_streak if previous is not None else 0,
        existing.longest_streak if existing is not None else 0,
    )

    if not qualifies(record.total_goal_aligned_minutes, threshold_minutes):
        current = 0
    elif (
        previous is not None
        and previous.date == record.date - timedelta(days=1)
        and qualifies(previous.total_goal_aligned_minutes, threshold_minutes)
    ):
        current = max(previous.current_streak, 0) + 1
    else:
        current = 1

    return record.model_copy(
        update={"current_streak": current, "longest_streak": max(carried_longest, current)}
    )

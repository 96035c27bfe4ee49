"""Pure stateless tally functions, math only.

Each source is reduced to an immutable tally; the engine merges tallies.
Nothing here mutates its inputs, so the same inputs always give the same day.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Iterable, Mapping

from goalday.alignment.models import Goal, GoalBreakdownEntry, HabitCheckin, ScheduledBlock, Task

DAY_MINUTES = 1440.0


def round1(value: float) -> float:
    """Round to one decimal, halves away from zero for non-negative input."""
    return math.floor(value * 10.0 + 0.5) / 10.0


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


# ---------------------------------------------------------------------------
# Task classification
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ConsumedByBlock:
    """Task whose time is already counted by a linked scheduled block."""

    task: Task


@dataclass(frozen=True, slots=True)
class StandaloneTask:
    task: Task
    minutes: float
    mindful: bool


TaskUnit = ConsumedByBlock | StandaloneTask


def is_goal_aligned(task: Task) -> bool:
    return task.completed_at is not None and bool(task.goal_ids)


def effective_duration(task: Task, default_minutes: float) -> float:
    return default_minutes if task.duration_minutes is None else float(task.duration_minutes)


def effective_rating(task: Task, default_rating: int) -> int:
    return default_rating if task.mindful_rating is None else task.mindful_rating


def classify_tasks(
    tasks: Iterable[Task],
    consumed_task_ids: frozenset[str],
    default_minutes: float,
    mindful_threshold: int,
) -> list[TaskUnit]:
    units: list[TaskUnit] = []
    for task in tasks:
        if task.id in consumed_task_ids:
            units.append(ConsumedByBlock(task=task))
            continue
        # Missing ratings never make a task mindful, regardless of the default.
        mindful = task.mindful_rating is not None and task.mindful_rating >= mindful_threshold
        units.append(
            StandaloneTask(
                task=task,
                minutes=effective_duration(task, default_minutes),
                mindful=mindful,
            )
        )
    return units


# ---------------------------------------------------------------------------
# Per-source tallies
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class BlockTally:
    minutes: float = 0.0
    goal_minutes: dict[str, float] = field(default_factory=dict)
    consumed_task_ids: frozenset[str] = frozenset()


@dataclass(frozen=True, slots=True)
class HabitTally:
    minutes: float = 0.0
    goal_minutes: dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class TaskTally:
    minutes: float = 0.0
    goal_minutes: dict[str, float] = field(default_factory=dict)
    mindful_count: int = 0
    mindful_minutes: float = 0.0
    mindful_goal_minutes: dict[str, float] = field(default_factory=dict)


def tally_blocks(blocks: Iterable[ScheduledBlock]) -> BlockTally:
    """Sum goal-tagged sub-intervals and collect the task ids they cover."""
    minutes = 0.0
    goal_minutes: dict[str, float] = {}
    consumed: set[str] = set()
    for block in blocks:
        for item in block.items:
            if not item.goal_id or not item.duration:
                continue
            minutes += item.duration
            goal_minutes[item.goal_id] = goal_minutes.get(item.goal_id, 0.0) + item.duration
            if item.task_id:
                consumed.add(item.task_id)
    return BlockTally(minutes=minutes, goal_minutes=goal_minutes, consumed_task_ids=frozenset(consumed))


def tally_checkins(checkins: Iterable[HabitCheckin]) -> HabitTally:
    minutes = 0.0
    goal_minutes: dict[str, float] = {}
    for checkin in checkins:
        if not checkin.goal_id or not checkin.value_min:
            continue
        minutes += checkin.value_min
        goal_minutes[checkin.goal_id] = goal_minutes.get(checkin.goal_id, 0.0) + checkin.value_min
    return HabitTally(minutes=minutes, goal_minutes=goal_minutes)


def tally_tasks(units: Iterable[TaskUnit]) -> TaskTally:
    """Sum standalone tasks, splitting each evenly across its goals."""
    minutes = 0.0
    goal_minutes: dict[str, float] = {}
    mindful_count = 0
    mindful_minutes = 0.0
    mindful_goal_minutes: dict[str, float] = {}

    for unit in units:
        if isinstance(unit, ConsumedByBlock):
            continue
        minutes += unit.minutes
        if unit.mindful:
            mindful_count += 1
            mindful_minutes += unit.minutes
        goal_ids = list(dict.fromkeys(unit.task.goal_ids))
        if not goal_ids:
            continue
        share = unit.minutes / len(goal_ids)
        for goal_id in goal_ids:
            goal_minutes[goal_id] = goal_minutes.get(goal_id, 0.0) + share
            if unit.mindful:
                mindful_goal_minutes[goal_id] = mindful_goal_minutes.get(goal_id, 0.0) + share

    return TaskTally(
        minutes=minutes,
        goal_minutes=goal_minutes,
        mindful_count=mindful_count,
        mindful_minutes=mindful_minutes,
        mindful_goal_minutes=mindful_goal_minutes,
    )


def merge_goal_minutes(*maps: Mapping[str, float]) -> dict[str, float]:
    merged: dict[str, float] = {}
    for m in maps:
        for goal_id, minutes in m.items():
            merged[goal_id] = merged.get(goal_id, 0.0) + minutes
    return merged


# ---------------------------------------------------------------------------
# Scores
# ---------------------------------------------------------------------------


def clamp_total(raw_minutes: float) -> float:
    return clamp(raw_minutes, 0.0, DAY_MINUTES)


def compute_scores(total_minutes: float) -> tuple[float, float]:
    """Return (score24, score_percentage) for a clamped day total.

    score24 is hours rounded to one decimal, capped at 24.
    score_percentage is score24 as a share of 24h, 0 when the day is empty.
    """
    score24 = clamp(min(24.0, round1(total_minutes / 60.0)), 0.0, 24.0)
    if total_minutes <= 0:
        return score24, 0.0
    pct = round1(score24 / 24.0 * 100.0)
    return score24, clamp(pct, 0.0, 100.0)


def average_rating(tasks: list[Task], default_rating: int) -> float:
    """Mean effective rating, clamped to [1, 5]. An empty list yields 1.0."""
    if not tasks:
        return clamp(0.0, 1.0, 5.0)
    mean = sum(effective_rating(t, default_rating) for t in tasks) / len(tasks)
    return clamp(round1(mean), 1.0, 5.0)


def build_breakdown(
    goal_minutes: Mapping[str, float],
    mindful_goal_minutes: Mapping[str, float],
    goals: Mapping[str, Goal],
    total_minutes: float,
    raw_total_minutes: float,
) -> list[GoalBreakdownEntry]:
    """Per-goal share of the day, heaviest first.

    Goal ids missing from `goals` are dropped. When the raw total was clamped,
    minutes are scaled down so the breakdown still sums to the day's total.
    """
    scale = 1.0
    if raw_total_minutes > total_minutes > 0:
        scale = total_minutes / raw_total_minutes

    entries: list[GoalBreakdownEntry] = []
    for goal_id, minutes in goal_minutes.items():
        goal = goals.get(goal_id)
        if goal is None:
            continue
        scaled = minutes * scale
        entries.append(
            GoalBreakdownEntry(
                goal_id=goal.id,
                name=goal.name,
                color=goal.color,
                minutes=round1(scaled),
                percentage_of_day=round1(scaled / total_minutes * 100.0) if total_minutes > 0 else 0.0,
                mindful_minutes=round1(mindful_goal_minutes.get(goal_id, 0.0)),
            )
        )

    entries.sort(key=lambda e: (-e.minutes, e.name))
    return entries

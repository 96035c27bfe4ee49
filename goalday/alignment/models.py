"""Goal-aligned day entities — Pydantic v2 models.

Attributes are snake_case; JSON uses camelCase aliases so the wire format
keeps the field names the UI already reads (``totalGoalAlignedMinutes``...).
"""

from __future__ import annotations

import datetime as dt
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class GoalPriority(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"


class HabitCadence(str, Enum):
    none = "none"
    daily = "daily"
    weekly = "weekly"
    monthly = "monthly"


# ---------------------------------------------------------------------------
# Source entities (read-only snapshots)
# ---------------------------------------------------------------------------


class Goal(CamelModel):
    id: str
    name: str
    color: str = "#10B981"
    category: str | None = None
    target_hours: float = 1.0
    priority: GoalPriority = GoalPriority.medium
    is_active: bool = True


class Task(CamelModel):
    id: str
    title: str = ""
    goal_ids: list[str] = Field(default_factory=list)
    completed_at: dt.datetime | None = None
    mindful_rating: int | None = Field(default=None, ge=1, le=5)
    duration_minutes: float | None = None  # None -> default_task_minutes at aggregation
    is_habit: bool = False
    habit_cadence: HabitCadence = HabitCadence.none


class BlockItem(CamelModel):
    start_time: dt.datetime | None = None
    duration: float | None = None
    goal_id: str | None = None
    task_id: str | None = None


class ScheduledBlock(CamelModel):
    id: str
    date: dt.datetime
    items: list[BlockItem] = Field(default_factory=list)


class HabitCheckin(CamelModel):
    id: str
    date: dt.datetime
    habit_name: str = ""
    value_min: float = 0.0
    goal_id: str | None = None
    quality: int | None = None


# ---------------------------------------------------------------------------
# Engine output
# ---------------------------------------------------------------------------


class GoalBreakdownEntry(CamelModel):
    goal_id: str
    name: str
    color: str
    minutes: float
    percentage_of_day: float = 0.0  # 0–100, relative to the day's total
    mindful_minutes: float = 0.0


class GoalAlignedDayRecord(CamelModel):
    """One row per (user, calendar day); overwritten on every recomputation."""

    user_id: str
    date: dt.date
    tasks_goal_aligned: int = 0
    block_minutes: float = 0.0
    habit_minutes: float = 0.0
    task_minutes: float = 0.0
    total_goal_aligned_minutes: float = Field(default=0.0, ge=0.0, le=1440.0)
    score24: float = Field(default=0.0, ge=0.0, le=24.0)
    score_percentage: float = Field(default=0.0, ge=0.0, le=100.0)
    goal_breakdown: list[GoalBreakdownEntry] = Field(default_factory=list)
    mindful_task_count: int = 0
    mindful_minutes: float = 0.0
    average_mindful_rating: float = Field(default=1.0, ge=1.0, le=5.0)
    current_streak: int = 0
    longest_streak: int = 0
    target_hours: float = 8.0


# ---------------------------------------------------------------------------
# Read-path shapes
# ---------------------------------------------------------------------------


class StreakInfo(CamelModel):
    current_streak: int = 0
    longest_streak: int = 0
    target_hours: float = 8.0
    date: dt.date | None = None


class WeeklyPoint(CamelModel):
    date: dt.date
    score24: float
    score_percentage: float
    total_minutes: float


class HistoryPage(CamelModel):
    history: list[GoalAlignedDayRecord] = Field(default_factory=list)
    total_pages: int = 0
    current_page: int = 1
    total: int = 0

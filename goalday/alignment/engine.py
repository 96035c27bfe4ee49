"""Daily goal-alignment engine.

Reads goals, tasks, time blocks and habit check-ins for one user-day
concurrently, reduces them to a GoalAlignedDayRecord and upserts it.
The record is a pure function of the source rows plus the previous day's
streak, so recomputing a day is safe and repeatable.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Awaitable, Callable, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from goalday.alignment import connector, store
from goalday.alignment.features import (
    average_rating,
    build_breakdown,
    clamp_total,
    classify_tasks,
    compute_scores,
    is_goal_aligned,
    merge_goal_minutes,
    tally_blocks,
    tally_checkins,
    tally_tasks,
)
from goalday.alignment.models import Goal, GoalAlignedDayRecord, HabitCheckin, ScheduledBlock, Task
from goalday.alignment.streak import apply_streak
from goalday.alignment.window import DayWindow, day_window
from goalday.config import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class DaySources:
    goals: list[Goal]
    tasks: list[Task]
    blocks: list[ScheduledBlock]
    checkins: list[HabitCheckin]


async def _read(
    session_factory: async_sessionmaker[AsyncSession],
    fetch: Callable[..., Awaitable[T]],
    *args: Any,
) -> T:
    async with session_factory() as session:
        return await fetch(session, *args)


async def load_sources(
    session_factory: async_sessionmaker[AsyncSession],
    user_id: str,
    window: DayWindow,
) -> DaySources:
    """Fan out the four source reads; the first failure cancels the rest."""
    span = (user_id, window.start, window.end)
    reads = [
        asyncio.ensure_future(_read(session_factory, connector.fetch_active_goals, user_id)),
        asyncio.ensure_future(_read(session_factory, connector.fetch_completed_tasks, *span)),
        asyncio.ensure_future(_read(session_factory, connector.fetch_blocks, *span)),
        asyncio.ensure_future(_read(session_factory, connector.fetch_checkins, *span)),
    ]
    try:
        goals, tasks, blocks, checkins = await asyncio.gather(*reads)
    except BaseException:
        for read in reads:
            read.cancel()
        await asyncio.gather(*reads, return_exceptions=True)
        raise
    return DaySources(goals=goals, tasks=tasks, blocks=blocks, checkins=checkins)


def aggregate_day(user_id: str, day: date, sources: DaySources) -> GoalAlignedDayRecord:
    """Reduce one day's sources to a record with zeroed streak fields."""
    goal_map = {g.id: g for g in sources.goals}
    aligned = [t for t in sources.tasks if is_goal_aligned(t)]

    blocks = tally_blocks(sources.blocks)
    habits = tally_checkins(sources.checkins)
    units = classify_tasks(
        aligned,
        blocks.consumed_task_ids,
        default_minutes=settings.default_task_minutes,
        mindful_threshold=settings.mindful_rating_threshold,
    )
    tasks = tally_tasks(units)

    raw_total = blocks.minutes + habits.minutes + tasks.minutes
    total = clamp_total(raw_total)
    score24, score_pct = compute_scores(total)

    breakdown = build_breakdown(
        merge_goal_minutes(blocks.goal_minutes, habits.goal_minutes, tasks.goal_minutes),
        tasks.mindful_goal_minutes,
        goal_map,
        total,
        raw_total,
    )

    return GoalAlignedDayRecord(
        user_id=user_id,
        date=day,
        tasks_goal_aligned=len(aligned),
        block_minutes=blocks.minutes,
        habit_minutes=habits.minutes,
        task_minutes=tasks.minutes,
        total_goal_aligned_minutes=total,
        score24=score24,
        score_percentage=score_pct,
        goal_breakdown=breakdown,
        mindful_task_count=tasks.mindful_count,
        mindful_minutes=tasks.mindful_minutes,
        average_mindful_rating=average_rating(aligned, settings.default_mindful_rating),
        target_hours=settings.default_target_hours,
    )


async def compute_daily_metrics(
    session_factory: async_sessionmaker[AsyncSession],
    user_id: str,
    when: date | datetime | None = None,
) -> GoalAlignedDayRecord:
    """Compute, streak and persist the goal-aligned record for one user-day.

    Source failures propagate as SourceUnavailableError before anything is
    written. The day row is replaced in a single upsert.
    """
    window = day_window(when)
    logger.debug("Computing %s for %s: [%s, %s)", window.day, user_id, window.start, window.end)

    sources = await load_sources(session_factory, user_id, window)
    record = aggregate_day(user_id, window.day, sources)

    async with session_factory() as session:
        async with session.begin():
            existing = await store.get_record(session, user_id, window.day)
            previous = await store.get_latest_before(session, user_id, window.day)
            if existing is not None:
                record = record.model_copy(update={"target_hours": existing.target_hours})
            record = apply_streak(record, previous, existing, settings.streak_min_minutes)
            await store.upsert_record(session, record)

    logger.info(
        "Goal-aligned day %s for %s: %.1f min (block %.1f, habit %.1f, task %.1f), streak %d",
        record.date,
        user_id,
        record.total_goal_aligned_minutes,
        record.block_minutes,
        record.habit_minutes,
        record.task_minutes,
        record.current_streak,
    )
    return record

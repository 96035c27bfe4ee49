"""Source connector — async reads of goals, tasks, time blocks and habit check-ins.

Tables share an owner column (user_id). Ids are cast to text in SQL so rows
validate straight into the pydantic entities. Time blocks keep their
sub-intervals in a JSONB ``blocks`` array with camelCase keys
(startTime, duration, goalId, taskId).

Any query failure or malformed row is raised as SourceUnavailableError;
callers never get a partial result.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from goalday.alignment.errors import SourceUnavailableError
from goalday.alignment.models import BlockItem, Goal, HabitCheckin, ScheduledBlock, Task

logger = logging.getLogger(__name__)

_PRIORITY_RANK = {"high": 0, "medium": 1, "low": 2}

M = TypeVar("M", bound=BaseModel)


async def fetch_rows(
    session: AsyncSession,
    source: str,
    query: str,
    params: dict[str, Any],
) -> list[dict[str, Any]]:
    try:
        result = await session.execute(text(query), params)
        columns = list(result.keys())
        return [dict(zip(columns, r)) for r in result.fetchall()]
    except (SQLAlchemyError, OSError) as exc:
        logger.error("Query against %s failed: %s", source, exc)
        raise SourceUnavailableError(source, str(exc)) from exc


def _validate(source: str, model: type[M], rows: list[dict[str, Any]]) -> list[M]:
    try:
        return [model.model_validate(r) for r in rows]
    except ValidationError as exc:
        logger.error("Malformed row from %s: %s", source, exc)
        raise SourceUnavailableError(source, f"malformed row: {exc}") from exc


def _json(value: Any) -> Any:
    if isinstance(value, (str, bytes)):
        return json.loads(value)
    return value


async def fetch_active_goals(session: AsyncSession, user_id: str) -> list[Goal]:
    """Active goals for a user, high priority first, then by name."""
    query = (
        "SELECT CAST(id AS TEXT) AS id, name, COALESCE(color, '#10B981') AS color, category, "
        "COALESCE(target_hours, 1) AS target_hours, COALESCE(priority, 'medium') AS priority, is_active "
        "FROM goals "
        "WHERE user_id = :user_id AND is_active = TRUE"
    )
    rows = await fetch_rows(session, "goals", query, {"user_id": user_id})
    goals = _validate("goals", Goal, rows)
    goals.sort(key=lambda g: (_PRIORITY_RANK.get(g.priority.value, 1), g.name))
    return goals


async def fetch_completed_tasks(
    session: AsyncSession,
    user_id: str,
    start: datetime,
    end: datetime,
) -> list[Task]:
    """Tasks completed in [start, end) that carry at least one goal id."""
    query = (
        "SELECT CAST(id AS TEXT) AS id, COALESCE(title, '') AS title, CAST(goal_ids AS TEXT[]) AS goal_ids, "
        "completed_at, mindful_rating, duration_minutes, COALESCE(is_habit, FALSE) AS is_habit, habit_cadence "
        "FROM tasks "
        "WHERE user_id = :user_id "
        "AND completed_at >= :start AND completed_at < :end "
        "AND goal_ids IS NOT NULL AND cardinality(goal_ids) > 0 "
        "ORDER BY completed_at"
    )
    rows = await fetch_rows(session, "tasks", query, {"user_id": user_id, "start": start, "end": end})
    for r in rows:
        r["goal_ids"] = list(r.get("goal_ids") or [])
        r["habit_cadence"] = r.get("habit_cadence") or "none"
        # A zero rating means unrated.
        r["mindful_rating"] = r.get("mindful_rating") or None
    return _validate("tasks", Task, rows)


async def fetch_blocks(
    session: AsyncSession,
    user_id: str,
    start: datetime,
    end: datetime,
) -> list[ScheduledBlock]:
    """Per-day time block containers dated within [start, end)."""
    query = (
        "SELECT CAST(id AS TEXT) AS id, date, blocks "
        "FROM time_blocks "
        "WHERE user_id = :user_id AND date >= :start AND date < :end "
        "ORDER BY date"
    )
    rows = await fetch_rows(session, "time_blocks", query, {"user_id": user_id, "start": start, "end": end})
    blocks: list[ScheduledBlock] = []
    for r in rows:
        try:
            raw = _json(r.get("blocks")) or []
        except ValueError as exc:
            logger.error("Malformed blocks JSON in time_blocks %s: %s", r.get("id"), exc)
            raise SourceUnavailableError("time_blocks", f"malformed blocks JSON: {exc}") from exc
        items = _validate("time_blocks", BlockItem, [i for i in raw if isinstance(i, dict)])
        blocks.append(ScheduledBlock(id=r["id"], date=r["date"], items=items))
    return blocks


async def fetch_checkins(
    session: AsyncSession,
    user_id: str,
    start: datetime,
    end: datetime,
) -> list[HabitCheckin]:
    """Goal-tagged habit check-ins dated within [start, end)."""
    query = (
        "SELECT CAST(id AS TEXT) AS id, date, COALESCE(habit_name, '') AS habit_name, "
        "COALESCE(value_min, 0) AS value_min, "
        "CAST(goal_id AS TEXT) AS goal_id, quality "
        "FROM habit_checkins "
        "WHERE user_id = :user_id AND date >= :start AND date < :end "
        "AND goal_id IS NOT NULL "
        "ORDER BY date"
    )
    rows = await fetch_rows(
        session, "habit_checkins", query, {"user_id": user_id, "start": start, "end": end}
    )
    return _validate("habit_checkins", HabitCheckin, rows)

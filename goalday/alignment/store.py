"""Day record store — one goal_aligned_days row per (user_id, day).

Rows are a materialized view of the engine's output: they are replaced as a
whole by a single INSERT ... ON CONFLICT statement, never patched field by
field. The breakdown is kept as JSONB in its camelCase wire shape.
"""

from __future__ import annotations

import json
import logging
from datetime import date
from typing import Any

from sqlalchemy import bindparam, text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncSession

from goalday.alignment.connector import fetch_rows
from goalday.alignment.errors import SourceUnavailableError
from goalday.alignment.models import GoalAlignedDayRecord, GoalBreakdownEntry

logger = logging.getLogger(__name__)

TABLE = "goal_aligned_days"

DDL = f"""
CREATE TABLE IF NOT EXISTS {TABLE} (
    user_id TEXT NOT NULL,
    day DATE NOT NULL,
    tasks_goal_aligned INTEGER NOT NULL DEFAULT 0,
    block_minutes DOUBLE PRECISION NOT NULL DEFAULT 0,
    habit_minutes DOUBLE PRECISION NOT NULL DEFAULT 0,
    task_minutes DOUBLE PRECISION NOT NULL DEFAULT 0,
    total_goal_aligned_minutes DOUBLE PRECISION NOT NULL DEFAULT 0
        CHECK (total_goal_aligned_minutes BETWEEN 0 AND 1440),
    score24 DOUBLE PRECISION NOT NULL DEFAULT 0 CHECK (score24 BETWEEN 0 AND 24),
    score_percentage DOUBLE PRECISION NOT NULL DEFAULT 0 CHECK (score_percentage BETWEEN 0 AND 100),
    goal_breakdown JSONB NOT NULL DEFAULT '[]'::jsonb,
    mindful_task_count INTEGER NOT NULL DEFAULT 0,
    mindful_minutes DOUBLE PRECISION NOT NULL DEFAULT 0,
    average_mindful_rating DOUBLE PRECISION NOT NULL DEFAULT 1,
    current_streak INTEGER NOT NULL DEFAULT 0,
    longest_streak INTEGER NOT NULL DEFAULT 0,
    target_hours DOUBLE PRECISION NOT NULL DEFAULT 8,
    updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
    PRIMARY KEY (user_id, day)
)
"""

_COLUMNS = (
    "user_id",
    "tasks_goal_aligned",
    "block_minutes",
    "habit_minutes",
    "task_minutes",
    "total_goal_aligned_minutes",
    "score24",
    "score_percentage",
    "goal_breakdown",
    "mindful_task_count",
    "mindful_minutes",
    "average_mindful_rating",
    "current_streak",
    "longest_streak",
    "target_hours",
)

_SELECT = f"SELECT day AS date, {', '.join(_COLUMNS)} FROM {TABLE} "


def _to_record(row: dict[str, Any]) -> GoalAlignedDayRecord:
    breakdown = row.get("goal_breakdown") or []
    if isinstance(breakdown, (str, bytes)):
        breakdown = json.loads(breakdown)
    data = dict(row)
    data["goal_breakdown"] = [GoalBreakdownEntry.model_validate(e) for e in breakdown]
    return GoalAlignedDayRecord.model_validate(data)


async def ensure_schema(conn: AsyncConnection) -> None:
    await conn.execute(text(DDL))


async def get_record(session: AsyncSession, user_id: str, day: date) -> GoalAlignedDayRecord | None:
    rows = await fetch_rows(
        session, TABLE, _SELECT + "WHERE user_id = :user_id AND day = :day", {"user_id": user_id, "day": day}
    )
    return _to_record(rows[0]) if rows else None


async def get_latest_before(session: AsyncSession, user_id: str, day: date) -> GoalAlignedDayRecord | None:
    """Most recent record strictly before `day`."""
    rows = await fetch_rows(
        session,
        TABLE,
        _SELECT + "WHERE user_id = :user_id AND day < :day ORDER BY day DESC LIMIT 1",
        {"user_id": user_id, "day": day},
    )
    return _to_record(rows[0]) if rows else None


async def get_latest(session: AsyncSession, user_id: str) -> GoalAlignedDayRecord | None:
    rows = await fetch_rows(
        session, TABLE, _SELECT + "WHERE user_id = :user_id ORDER BY day DESC LIMIT 1", {"user_id": user_id}
    )
    return _to_record(rows[0]) if rows else None


def _range_clause(start: date | None, end_exclusive: date | None, params: dict[str, Any]) -> str:
    clause = "WHERE user_id = :user_id"
    if start is not None:
        clause += " AND day >= :start"
        params["start"] = start
    if end_exclusive is not None:
        clause += " AND day < :end"
        params["end"] = end_exclusive
    return clause


async def list_records(
    session: AsyncSession,
    user_id: str,
    start: date | None = None,
    end_exclusive: date | None = None,
    newest_first: bool = False,
    limit: int | None = None,
    offset: int = 0,
) -> list[GoalAlignedDayRecord]:
    """Records with day in [start, end_exclusive); either bound may be open."""
    params: dict[str, Any] = {"user_id": user_id}
    query = _SELECT + _range_clause(start, end_exclusive, params)
    query += " ORDER BY day DESC" if newest_first else " ORDER BY day"
    if limit is not None:
        query += " LIMIT :limit OFFSET :offset"
        params["limit"] = limit
        params["offset"] = offset
    rows = await fetch_rows(session, TABLE, query, params)
    return [_to_record(r) for r in rows]


async def count_records(
    session: AsyncSession,
    user_id: str,
    start: date | None = None,
    end_exclusive: date | None = None,
) -> int:
    params: dict[str, Any] = {"user_id": user_id}
    query = f"SELECT COUNT(*) AS total FROM {TABLE} " + _range_clause(start, end_exclusive, params)
    rows = await fetch_rows(session, TABLE, query, params)
    return int(rows[0]["total"]) if rows else 0


async def upsert_record(session: AsyncSession, record: GoalAlignedDayRecord) -> None:
    """Replace the whole row for (user_id, day) in one statement."""
    columns = ("day",) + _COLUMNS
    updates = ", ".join(f"{c} = EXCLUDED.{c}" for c in _COLUMNS if c != "user_id")
    query = (
        f"INSERT INTO {TABLE} ({', '.join(columns)}) "
        f"VALUES ({', '.join(':' + c for c in columns)}) "
        f"ON CONFLICT (user_id, day) DO UPDATE SET {updates}, updated_at = now()"
    )
    stmt = text(query).bindparams(bindparam("goal_breakdown", type_=JSONB))

    params = record.model_dump(exclude={"date", "goal_breakdown"})
    params["day"] = record.date
    params["goal_breakdown"] = [e.model_dump(mode="json", by_alias=True) for e in record.goal_breakdown]

    try:
        await session.execute(stmt, params)
    except (SQLAlchemyError, OSError) as exc:
        logger.error("Upsert into %s failed for %s/%s: %s", TABLE, record.user_id, record.date, exc)
        raise SourceUnavailableError(TABLE, str(exc)) from exc

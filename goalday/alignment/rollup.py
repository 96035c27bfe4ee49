"""Read paths over stored day records.

None of these recompute anything; a day that was never computed is absent.
"""

from __future__ import annotations

import math
from datetime import date, datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from goalday.alignment import store
from goalday.alignment.models import HistoryPage, StreakInfo, WeeklyPoint
from goalday.alignment.window import week_window
from goalday.config import settings


async def weekly_summary(
    session: AsyncSession,
    user_id: str,
    when: date | datetime | None = None,
) -> list[WeeklyPoint]:
    """Stored days of the Sunday–Saturday week containing `when`, oldest first."""
    week = week_window(when)
    records = await store.list_records(session, user_id, week.day, week.day + timedelta(days=7))
    return [
        WeeklyPoint(
            date=r.date,
            score24=r.score24,
            score_percentage=r.score_percentage,
            total_minutes=r.total_goal_aligned_minutes,
        )
        for r in records
    ]


async def streak_info(session: AsyncSession, user_id: str) -> StreakInfo:
    latest = await store.get_latest(session, user_id)
    if latest is None:
        return StreakInfo(target_hours=settings.default_target_hours)
    return StreakInfo(
        current_streak=latest.current_streak,
        longest_streak=latest.longest_streak,
        target_hours=latest.target_hours,
        date=latest.date,
    )


async def history(
    session: AsyncSession,
    user_id: str,
    page: int = 1,
    limit: int = 30,
    start: date | None = None,
    end: date | None = None,
) -> HistoryPage:
    """Newest-first page of stored records, optionally within [start, end] inclusive."""
    page = max(page, 1)
    limit = min(max(limit, 1), settings.history_max_limit)
    end_exclusive = end + timedelta(days=1) if end is not None else None

    total = await store.count_records(session, user_id, start, end_exclusive)
    records = await store.list_records(
        session,
        user_id,
        start,
        end_exclusive,
        newest_first=True,
        limit=limit,
        offset=(page - 1) * limit,
    )
    return HistoryPage(
        history=records,
        total_pages=math.ceil(total / limit) if total else 0,
        current_page=page,
        total=total,
    )

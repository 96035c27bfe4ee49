"""Goal alignment HTTP router."""

from __future__ import annotations

from datetime import date, datetime

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from goalday.alignment import connector, engine, rollup
from goalday.alignment.errors import InvalidDateError, SourceUnavailableError
from goalday.alignment.models import Goal, GoalAlignedDayRecord, HistoryPage, StreakInfo, WeeklyPoint
from goalday.alignment.window import local_day, parse_when
from goalday.auth import current_user_id, verify_api_key
from goalday.db import get_session, get_session_factory

router = APIRouter(prefix="/goals", tags=["goals"], dependencies=[Depends(verify_api_key)])


def _parse_when(value: str | None, name: str) -> date | datetime | None:
    try:
        return parse_when(value)
    except InvalidDateError:
        raise HTTPException(status_code=422, detail=f"Invalid date for '{name}': {value}")


def _parse_day(value: str | None, name: str) -> date | None:
    parsed = _parse_when(value, name)
    if parsed is None:
        return None
    return local_day(parsed)


def _unavailable(exc: SourceUnavailableError) -> HTTPException:
    return HTTPException(status_code=503, detail=f"Data source unavailable: {exc.source}")


# ---------------------------------------------------------------------------
# /goals
# ---------------------------------------------------------------------------


@router.get("", response_model=list[Goal])
async def goals_list(
    session: AsyncSession = Depends(get_session),
    user_id: str = Depends(current_user_id),
) -> list[Goal]:
    try:
        return await connector.fetch_active_goals(session, user_id)
    except SourceUnavailableError as exc:
        raise _unavailable(exc)


# ---------------------------------------------------------------------------
# /goals/today
# ---------------------------------------------------------------------------


@router.get("/today", response_model=GoalAlignedDayRecord)
async def today_metrics(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    user_id: str = Depends(current_user_id),
    date_param: str | None = Query(default=None, alias="date", description="Date or datetime (default: now)"),
) -> GoalAlignedDayRecord:
    when = _parse_when(date_param, "date")
    try:
        return await engine.compute_daily_metrics(session_factory, user_id, when)
    except SourceUnavailableError as exc:
        raise _unavailable(exc)


# ---------------------------------------------------------------------------
# /goals/streak, /goals/weekly, /goals/history
# ---------------------------------------------------------------------------


@router.get("/streak", response_model=StreakInfo)
async def streak(
    session: AsyncSession = Depends(get_session),
    user_id: str = Depends(current_user_id),
) -> StreakInfo:
    try:
        return await rollup.streak_info(session, user_id)
    except SourceUnavailableError as exc:
        raise _unavailable(exc)


@router.get("/weekly", response_model=list[WeeklyPoint])
async def weekly(
    session: AsyncSession = Depends(get_session),
    user_id: str = Depends(current_user_id),
    start_date: str | None = Query(default=None, alias="startDate", description="Any date in the week"),
) -> list[WeeklyPoint]:
    when = _parse_when(start_date, "startDate")
    try:
        return await rollup.weekly_summary(session, user_id, when)
    except SourceUnavailableError as exc:
        raise _unavailable(exc)


@router.get("/history", response_model=HistoryPage)
async def history(
    session: AsyncSession = Depends(get_session),
    user_id: str = Depends(current_user_id),
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=30, ge=1, le=100),
    start_date: str | None = Query(default=None, alias="startDate"),
    end_date: str | None = Query(default=None, alias="endDate"),
) -> HistoryPage:
    start = _parse_day(start_date, "startDate")
    end = _parse_day(end_date, "endDate")
    if start is not None and end is not None and end < start:
        raise HTTPException(status_code=422, detail="'endDate' is before 'startDate'")
    try:
        return await rollup.history(session, user_id, page=page, limit=limit, start=start, end=end)
    except SourceUnavailableError as exc:
        raise _unavailable(exc)

"""Shared fixtures for the test suite."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient

from goalday.alignment import connector, store
from goalday.alignment.models import (
    BlockItem,
    Goal,
    GoalAlignedDayRecord,
    HabitCheckin,
    ScheduledBlock,
    Task,
)
from goalday.db import get_session, get_session_factory
from goalday.main import app


# ---------------------------------------------------------------------------
# Fake DB session (no real Postgres needed)
# ---------------------------------------------------------------------------

class FakeSession:
    """Minimal stand-in for AsyncSession; records every statement it sees."""

    def __init__(self, rows: list[dict[str, Any]] | None = None, error: Exception | None = None):
        self._rows = rows or []
        self._error = error
        self.statements: list[tuple[str, dict[str, Any] | None]] = []

    async def execute(self, stmt, params=None):
        self.statements.append((str(stmt), params))
        if self._error is not None:
            raise self._error
        return FakeResult(self._rows)

    def begin(self):
        return self

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        pass


class FakeResult:
    def __init__(self, rows: list[dict[str, Any]]):
        self._rows = rows
        self._keys = list(rows[0].keys()) if rows else []

    def keys(self):
        return self._keys

    def fetchall(self):
        return [tuple(r[k] for k in self._keys) for r in self._rows]


# ---------------------------------------------------------------------------
# In-memory stand-ins for the sources and the day record store
# ---------------------------------------------------------------------------

class FakeSources:
    def __init__(self):
        self.goals: list[Goal] = []
        self.tasks: list[Task] = []
        self.blocks: list[ScheduledBlock] = []
        self.checkins: list[HabitCheckin] = []
        self.calls: list[str] = []

    async def fetch_active_goals(self, session, user_id):
        self.calls.append("goals")
        return list(self.goals)

    async def fetch_completed_tasks(self, session, user_id, start, end):
        self.calls.append("tasks")
        return list(self.tasks)

    async def fetch_blocks(self, session, user_id, start, end):
        self.calls.append("blocks")
        return list(self.blocks)

    async def fetch_checkins(self, session, user_id, start, end):
        self.calls.append("checkins")
        return list(self.checkins)


class MemoryStore:
    def __init__(self):
        self.rows: dict[tuple[str, date], GoalAlignedDayRecord] = {}
        self.upserts = 0

    def _for_user(self, user_id: str) -> list[GoalAlignedDayRecord]:
        return sorted((r for (u, _), r in self.rows.items() if u == user_id), key=lambda r: r.date)

    async def get_record(self, session, user_id, day):
        return self.rows.get((user_id, day))

    async def get_latest_before(self, session, user_id, day):
        earlier = [r for r in self._for_user(user_id) if r.date < day]
        return earlier[-1] if earlier else None

    async def get_latest(self, session, user_id):
        records = self._for_user(user_id)
        return records[-1] if records else None

    async def upsert_record(self, session, record):
        self.upserts += 1
        self.rows[(record.user_id, record.date)] = record

    async def list_records(
        self, session, user_id, start=None, end_exclusive=None, newest_first=False, limit=None, offset=0
    ):
        records = [
            r
            for r in self._for_user(user_id)
            if (start is None or r.date >= start) and (end_exclusive is None or r.date < end_exclusive)
        ]
        if newest_first:
            records.reverse()
        if limit is not None:
            records = records[offset : offset + limit]
        return records

    async def count_records(self, session, user_id, start=None, end_exclusive=None):
        return len(await self.list_records(session, user_id, start, end_exclusive))


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def fake_session():
    """Return a FakeSession with no rows (override _rows in tests if needed)."""
    return FakeSession()


@pytest.fixture()
def session_factory(fake_session):
    def _factory():
        return fake_session

    return _factory


@pytest.fixture()
def sources(monkeypatch):
    fake = FakeSources()
    for name in ("fetch_active_goals", "fetch_completed_tasks", "fetch_blocks", "fetch_checkins"):
        monkeypatch.setattr(connector, name, getattr(fake, name))
    return fake


@pytest.fixture()
def memory_store(monkeypatch):
    mem = MemoryStore()
    for name in ("get_record", "get_latest_before", "get_latest", "upsert_record", "list_records", "count_records"):
        monkeypatch.setattr(store, name, getattr(mem, name))
    return mem


@pytest.fixture()
def override_session(fake_session, session_factory):
    """Override the FastAPI dependencies so no real DB is needed."""
    async def _override():
        yield fake_session

    app.dependency_overrides[get_session] = _override
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    yield fake_session
    app.dependency_overrides.clear()


@pytest.fixture()
async def client(override_session):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------

DAY = date(2026, 2, 15)
NOON_IST = datetime(2026, 2, 15, 6, 30, tzinfo=timezone.utc)


def make_goal(goal_id: str = "g1", name: str = "Deep Work", **kwargs) -> Goal:
    kwargs.setdefault("color", "#2563EB")
    return Goal(id=goal_id, name=name, **kwargs)


def make_task(
    task_id: str = "t1",
    goal_ids: list[str] | None = None,
    duration_minutes: float | None = 30.0,
    mindful_rating: int | None = 3,
    completed_at: datetime | None = NOON_IST,
    **kwargs,
) -> Task:
    return Task(
        id=task_id,
        title=kwargs.pop("title", f"Task {task_id}"),
        goal_ids=["g1"] if goal_ids is None else goal_ids,
        duration_minutes=duration_minutes,
        mindful_rating=mindful_rating,
        completed_at=completed_at,
        **kwargs,
    )


def make_block(*items: BlockItem, block_id: str = "b1") -> ScheduledBlock:
    return ScheduledBlock(id=block_id, date=NOON_IST, items=list(items))


def make_checkin(
    checkin_id: str = "c1",
    value_min: float = 20.0,
    goal_id: str | None = "g1",
    **kwargs,
) -> HabitCheckin:
    return HabitCheckin(
        id=checkin_id,
        date=NOON_IST,
        habit_name=kwargs.pop("habit_name", "Meditation"),
        value_min=value_min,
        goal_id=goal_id,
        **kwargs,
    )


def make_record(day: date, total: float = 60.0, current: int = 1, longest: int = 1, **kwargs) -> GoalAlignedDayRecord:
    return GoalAlignedDayRecord(
        user_id=kwargs.pop("user_id", "u1"),
        date=day,
        total_goal_aligned_minutes=total,
        current_streak=current,
        longest_streak=longest,
        **kwargs,
    )

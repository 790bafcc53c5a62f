"""Pytest fixtures for talent logistics tests."""

from __future__ import annotations

from datetime import date, time
from decimal import Decimal
from typing import AsyncGenerator
from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from talent_logistics.models import (
    Base,
    Profile,
    Project,
    SystemSettings,
    TimecardDailyEntry,
    TimecardHeader,
)
from talent_logistics.services.cache import ReadinessCache
from talent_logistics.services.permissions import Actor

# In-memory SQLite shared by every connection of one engine
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

PROJECT_START = date(2026, 3, 1)
PROJECT_END = date(2026, 3, 31)


class RecordingPublisher:
    """Collects published events for assertions."""

    def __init__(self) -> None:
        self.events = []

    def publish(self, event) -> None:
        self.events.append(event)

    def of_type(self, event_cls):
        return [e for e in self.events if isinstance(e, event_cls)]


@pytest.fixture
async def engine():
    """Create a fresh test database per test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest.fixture
async def session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def publisher() -> RecordingPublisher:
    return RecordingPublisher()


@pytest.fixture
def readiness_cache() -> ReadinessCache:
    return ReadinessCache(ttl_seconds=30)


@pytest.fixture
async def profiles(session: AsyncSession) -> dict[str, Profile]:
    """One profile per role, plus an owner for timecards."""
    people = {
        "admin": Profile(id=uuid4(), full_name="Ada Admin", role="admin"),
        "in_house": Profile(id=uuid4(), full_name="Ian House", role="in_house"),
        "supervisor": Profile(id=uuid4(), full_name="Sam Super", role="supervisor"),
        "coordinator": Profile(id=uuid4(), full_name="Cora Coord", role="coordinator"),
        "owner": Profile(id=uuid4(), full_name="Olive Escort", role="talent_escort"),
        "other_escort": Profile(id=uuid4(), full_name="Eli Escort", role="talent_escort"),
    }
    session.add_all(people.values())
    session.add(SystemSettings(id=1))
    await session.commit()
    return people


@pytest.fixture
def actors(profiles: dict[str, Profile]) -> dict[str, Actor]:
    return {key: Actor(user_id=p.id, role=p.role) for key, p in profiles.items()}


@pytest.fixture
async def project(session: AsyncSession) -> Project:
    """A month-long project with nothing configured."""
    project = Project(id=uuid4(), name="Spring Showcase", start_date=PROJECT_START, end_date=PROJECT_END)
    session.add(project)
    await session.commit()
    return project


@pytest.fixture
async def timecard(
    session: AsyncSession,
    profiles: dict[str, Profile],
    project: Project,
) -> TimecardHeader:
    """Draft timecard with one worked day (8h) and one empty day."""
    timecard = TimecardHeader(
        id=uuid4(),
        user_id=profiles["owner"].id,
        project_id=project.id,
        period_start_date=date(2026, 3, 2),
        period_end_date=date(2026, 3, 8),
        status="draft",
        total_hours=Decimal("8.00"),
        pay_rate=Decimal("25.00"),
        daily_entries=[
            TimecardDailyEntry(
                id=uuid4(),
                work_date=date(2026, 3, 2),
                check_in_time=time(9, 0),
                check_out_time=time(17, 30),
                break_start_time=time(12, 0),
                break_end_time=time(12, 30),
                hours_worked=Decimal("8.00"),
            ),
            TimecardDailyEntry(
                id=uuid4(),
                work_date=date(2026, 3, 3),
                hours_worked=Decimal("0.00"),
            ),
        ],
    )
    session.add(timecard)
    await session.commit()
    return timecard


@pytest.fixture
def force_status(session: AsyncSession):
    """Force a timecard into a status for setup."""

    async def _force(timecard: TimecardHeader, status: str) -> None:
        timecard.status = status
        await session.commit()

    return _force


@pytest.fixture
def enable_approval(session: AsyncSession, profiles):
    """Turn on the deployment toggle letting a project role approve."""

    async def _enable(role: str) -> None:
        settings = await session.get(SystemSettings, 1)
        setattr(settings, f"{role}_can_approve_timecards", True)
        await session.commit()

    return _enable

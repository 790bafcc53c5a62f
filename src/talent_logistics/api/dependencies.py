"""FastAPI dependencies for dependency injection."""

from collections.abc import AsyncGenerator
from functools import lru_cache
from typing import Annotated
from uuid import UUID

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from talent_logistics.config import get_settings
from talent_logistics.database import init_db
from talent_logistics.events import EventEmitter
from talent_logistics.models import Profile
from talent_logistics.services.cache import ReadinessCache
from talent_logistics.services.errors import AuthenticationError, NotFoundError
from talent_logistics.services.permissions import Actor
from talent_logistics.services.readiness_service import ReadinessService
from talent_logistics.services.timecard_service import TimecardService


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency."""
    _, factory = init_db()
    async with factory() as session:
        try:
            yield session
        finally:
            await session.close()


@lru_cache(maxsize=1)
def get_readiness_cache() -> ReadinessCache:
    """Process-wide readiness cache."""
    return ReadinessCache(ttl_seconds=get_settings().readiness_cache_ttl_seconds)


@lru_cache(maxsize=1)
def get_event_emitter() -> EventEmitter:
    """Process-wide event emitter; realtime bridges register handlers here."""
    return EventEmitter()


DbSession = Annotated[AsyncSession, Depends(get_db_session)]
Cache = Annotated[ReadinessCache, Depends(get_readiness_cache)]
Emitter = Annotated[EventEmitter, Depends(get_event_emitter)]


async def get_current_actor(
    db: DbSession,
    x_user_id: Annotated[str | None, Header()] = None,
) -> Actor:
    """Resolve the already-authenticated caller from the X-User-ID header."""
    if not x_user_id:
        raise AuthenticationError("Unauthorized")
    try:
        user_id = UUID(x_user_id)
    except ValueError:
        raise AuthenticationError("Invalid X-User-ID format")

    profile = await db.get(Profile, user_id)
    if profile is None:
        raise NotFoundError("User profile", user_id, code="PROFILE_NOT_FOUND")
    return Actor(user_id=profile.id, role=profile.role)


def get_timecard_service(db: DbSession, emitter: Emitter) -> TimecardService:
    return TimecardService(db, publisher=emitter)


def get_readiness_service(db: DbSession, cache: Cache, emitter: Emitter) -> ReadinessService:
    return ReadinessService(db, cache=cache, publisher=emitter)


# Type aliases for cleaner dependency injection
CurrentActor = Annotated[Actor, Depends(get_current_actor)]
Timecards = Annotated[TimecardService, Depends(get_timecard_service)]
Readiness = Annotated[ReadinessService, Depends(get_readiness_service)]

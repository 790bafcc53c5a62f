"""API test fixtures backed by the in-memory test database."""

from collections.abc import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient

from talent_logistics.api.app import create_app
from talent_logistics.api.dependencies import (
    get_db_session,
    get_event_emitter,
    get_readiness_cache,
)
from talent_logistics.events import EventEmitter


@pytest.fixture
def emitter(publisher) -> EventEmitter:
    """Emitter forwarding every event to the recording publisher."""
    emitter = EventEmitter()
    emitter.on_all(publisher.publish)
    return emitter


@pytest.fixture
async def client(session_factory, readiness_cache, emitter) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for API testing."""
    app = create_app()

    async def _session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db_session] = _session
    app.dependency_overrides[get_readiness_cache] = lambda: readiness_cache
    app.dependency_overrides[get_event_emitter] = lambda: emitter

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def auth(profiles):
    """X-User-ID headers per fixture profile."""
    return {key: {"X-User-ID": str(profile.id)} for key, profile in profiles.items()}

"""
Shared fixtures: in-memory store, change feed, cache, actors and an API client.
"""
import uuid
from datetime import datetime, timedelta, timezone

import pytest
from httpx import ASGITransport, AsyncClient

from internhub.api.deps import get_cache, get_store
from internhub.infra.change_feed import ChangeFeed
from internhub.infra.memory_store import MemoryRowStore
from internhub.main import app
from internhub.models.notification import Actor, Notification
from internhub.services.query_cache import QueryCache

BASE_TIME = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def change_feed():
    return ChangeFeed()


@pytest.fixture
def store(change_feed):
    return MemoryRowStore(change_feed)


@pytest.fixture
def cache():
    return QueryCache()


@pytest.fixture
def student():
    return Actor(id="student-1", role="student")


@pytest.fixture
def admin():
    return Actor(id="admin-1", role="admin")


@pytest.fixture
def software_house():
    return Actor(id="sh-1", role="software_house")


@pytest.fixture
def add_notification(store):
    """Insert a notification row and return the model."""
    counter = {"n": 0}

    async def _add(user_id, type, status=None, is_read=False, created_at=None, **extra):
        counter["n"] += 1
        metadata = dict(extra.pop("metadata", {}))
        if status is not None:
            metadata["status"] = status
        notification = Notification(
            id=extra.pop("id", str(uuid.uuid4())),
            user_id=user_id,
            type=type,
            title=extra.pop("title", f"{type} #{counter['n']}"),
            message=extra.pop("message", "hello"),
            metadata=metadata,
            is_read=is_read,
            created_at=created_at or BASE_TIME + timedelta(minutes=counter["n"]),
        )
        await store.insert_notification(notification.to_row())
        return notification

    return _add


@pytest.fixture
def apply_overrides(store, cache):
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_cache] = lambda: cache
    yield
    app.dependency_overrides = {}


@pytest.fixture
async def client(apply_overrides):
    """Async client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

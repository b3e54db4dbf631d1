"""
Shared fixtures: an in-memory database per test and mocked upstream HTTP.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("SESSION_SECRET", "test-secret")

import httpx
import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from moments_admin.core.config import Settings
from moments_admin.core.database import Base
from moments_admin.core.ids import new_id
from moments_admin.models import User


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


async def _create_user(db, email):
    user = User(id=new_id(), email=email, first_name="Test", role="owner")
    db.add(user)
    await db.commit()
    return user


@pytest.fixture
async def owner(db):
    return await _create_user(db, "owner@example.com")


@pytest.fixture
async def other_owner(db):
    return await _create_user(db, "other@example.com")


@pytest.fixture
def config():
    """Settings with every backend configured."""
    return Settings(
        _env_file=None,
        DATABASE_URL="sqlite+aiosqlite://",
        WEBDAV_BASE_URL="https://dav.example.com/photos/",
        WEBDAV_USERNAME="dav-user",
        WEBDAV_PASSWORD="dav-pass",
        PHOTOPRISM_BASE_URL="https://pp.example.com",
        PHOTOPRISM_USERNAME=None,
        PHOTOPRISM_PASSWORD=None,
        CF_IMAGES_ACCOUNT_ID="acct",
        CF_IMAGES_API_TOKEN="token",
        CF_IMAGES_DELIVERY_HASH="dh",
        CDN_ORIGIN="https://cdn.example.com",
        ADMIN_BASE_URL="https://admin.example.com",
        REDIS_URL=None,
    )


@pytest.fixture
def bare_config():
    """Settings with no image backend configured."""
    return Settings(
        _env_file=None,
        DATABASE_URL="sqlite+aiosqlite://",
        WEBDAV_BASE_URL=None,
        WEBDAV_USERNAME=None,
        WEBDAV_PASSWORD=None,
        PHOTOPRISM_BASE_URL=None,
        PHOTOPRISM_USERNAME=None,
        PHOTOPRISM_PASSWORD=None,
        CF_IMAGES_ACCOUNT_ID=None,
        CF_IMAGES_API_TOKEN=None,
        CF_IMAGES_DELIVERY_HASH=None,
        CDN_ORIGIN=None,
        REDIS_URL=None,
    )


class RecordingTransport(httpx.MockTransport):
    """MockTransport that keeps every request it served."""

    def __init__(self, handler):
        self.requests = []

        def recording_handler(request):
            self.requests.append(request)
            return handler(request)

        super().__init__(recording_handler)


@pytest.fixture
async def make_client():
    """Return ``(client, requests)`` for a handler; ``requests`` fills as calls are made."""
    clients = []

    def factory(handler):
        transport = RecordingTransport(handler)
        client = httpx.AsyncClient(transport=transport)
        clients.append(client)
        return client, transport.requests

    yield factory
    for client in clients:
        await client.aclose()

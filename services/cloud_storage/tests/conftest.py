"""Pytest fixtures for Cloud Storage tests."""

from fnmatch import fnmatchcase
from typing import Any, AsyncGenerator, Mapping
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import JSON
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from services.cloud_storage.app.config import Settings, get_settings
from services.cloud_storage.app.core.directory import DirectoryService
from services.cloud_storage.app.db.models import Base
from services.cloud_storage.app.dependencies import (
    get_db,
    get_ephemeral_store,
    get_object_storage,
)
from services.cloud_storage.app.main import app
from services.cloud_storage.app.storage import ObjectStorage
from services.cloud_storage.app.upload.service import UploadSessionService


# Patch JSONB to JSON for SQLite compatibility in tests
# This must happen before tables are created
def _patch_jsonb_for_sqlite():
    """Replace JSONB columns with JSON for SQLite compatibility."""
    for table in Base.metadata.tables.values():
        for column in table.columns:
            if isinstance(column.type, JSONB):
                column.type = JSON()


class FakeEphemeralStore:
    """In-memory stand-in for RedisStore.

    TTLs are recorded but never elapse on their own; call ``expire`` to
    simulate a session timing out.
    """

    def __init__(self):
        self.hashes: dict[str, dict[str, str]] = {}
        self.ttls: dict[str, int] = {}

    async def hmset(self, key: str, mapping: Mapping[str, Any], ttl: int) -> None:
        self.hashes.setdefault(key, {}).update(
            {field: str(value) for field, value in mapping.items()}
        )
        self.ttls[key] = ttl

    async def hmget(self, key: str, fields: list[str]) -> list[str | None]:
        values = self.hashes.get(key, {})
        return [values.get(field) for field in fields]

    async def scan(self, pattern: str, limit: int) -> list[str]:
        return [key for key in self.hashes if fnmatchcase(key, pattern)][: max(limit, 0)]

    async def delete(self, *keys: str) -> int:
        deleted = 0
        for key in keys:
            if self.hashes.pop(key, None) is not None:
                deleted += 1
            self.ttls.pop(key, None)
        return deleted

    def expire(self, key: str) -> None:
        self.hashes.pop(key, None)
        self.ttls.pop(key, None)


@pytest.fixture
async def db_engine():
    """Create in-memory SQLite database engine for testing."""
    _patch_jsonb_for_sqlite()

    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create database session for testing."""
    session_factory = async_sessionmaker(
        bind=db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with session_factory() as session:
        yield session


@pytest.fixture
def test_settings():
    """Create test settings with small quotas."""
    return Settings(
        environment="test",
        database_url="sqlite+aiosqlite:///:memory:",
        storage_domain="https://files.example.com",
        prefix_path="cloud-storage",
        concurrent_limit=3,
        total_size_limit=10_000,
        upload_session_ttl_seconds=1200,
        whiteboard_convert_region="us-sv",
    )


@pytest.fixture
def ephemeral_store():
    """Create an in-memory upload session store."""
    return FakeEphemeralStore()


@pytest.fixture
def mock_storage_client():
    """Create mock storage client for testing."""
    mock = MagicMock()
    mock.generate_presigned_post = AsyncMock(
        return_value={
            "url": "https://bucket.example.com",
            "fields": {"key": "k", "policy": "test-policy", "x-amz-signature": "test-signature"},
            "policy": "test-policy",
            "signature": "test-signature",
            "expires_at": None,
        }
    )
    mock.check_object_exists = AsyncMock(return_value=True)
    return mock


@pytest.fixture
def object_storage(mock_storage_client, test_settings):
    """Object storage over the mock client."""
    return ObjectStorage(
        client=mock_storage_client,
        domain=test_settings.storage_domain,
        policy_expires_in=test_settings.upload_policy_expiry_seconds,
    )


@pytest.fixture
def user_id():
    """Id of the user performing uploads."""
    return uuid4()


@pytest.fixture
async def docs_directory(db_session, user_id) -> str:
    """Create the /docs/ directory for the test user."""
    return await DirectoryService(db_session, user_id).create("/", "docs")


@pytest.fixture
def upload_service(db_session, user_id, ephemeral_store, object_storage, test_settings):
    """Upload service wired to SQLite and in-memory fakes."""
    return UploadSessionService(
        session=db_session,
        user_id=user_id,
        ephemeral_store=ephemeral_store,
        object_storage=object_storage,
        settings=test_settings,
    )


@pytest.fixture
async def test_client(
    db_engine,
    ephemeral_store,
    object_storage,
    test_settings,
) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with mocked dependencies."""
    session_factory = async_sessionmaker(
        bind=db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_ephemeral_store] = lambda: ephemeral_store
    app.dependency_overrides[get_object_storage] = lambda: object_storage
    app.dependency_overrides[get_settings] = lambda: test_settings

    app.state.redis = MagicMock()
    app.state.redis.ping = AsyncMock(return_value=True)

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(user_id) -> dict[str, str]:
    """Headers the gateway forwards for an authenticated user."""
    return {"X-User-ID": str(user_id)}

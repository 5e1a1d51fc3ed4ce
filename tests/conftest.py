"""
Pytest configuration and fixtures for Taskboard API tests
"""
import os

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ["CACHE_ENABLED"] = "false"
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from collections import Counter
from typing import AsyncGenerator
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from app.db.database import get_db, Base
from app.db import crud
from app.db.crud import task as task_crud
from app.core.cache import RedisCacheStore, NullCacheStore
from app.core.cache_keys import CacheTTL, TaskCacheKeys
from app.services.task_repository import TaskRepository
from tests.fakes import FakeRedis

import app.db.models  # noqa: F401

TEST_TTL = CacheTTL(task=300, tasks=60, tasks_page=45)
STORE_FUNCTIONS = ("find_tasks", "count_tasks", "get_task_by_id", "create_task", "save_task", "delete_task")


@pytest.fixture
async def db_engine():
    """Fresh in-memory SQLite database per test"""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False}
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    session_factory = async_sessionmaker(bind=db_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def cache(fake_redis) -> RedisCacheStore:
    return RedisCacheStore(fake_redis)


@pytest.fixture
def keys() -> TaskCacheKeys:
    return TaskCacheKeys(prefix="test")


@pytest.fixture
def repository(db_session, cache, keys) -> TaskRepository:
    return TaskRepository(db_session, cache=cache, keys=keys, ttl=TEST_TTL)


@pytest.fixture
def uncached_repository(db_session, keys) -> TaskRepository:
    return TaskRepository(db_session, cache=NullCacheStore(), keys=keys, ttl=TEST_TTL)


@pytest.fixture
def store_calls(monkeypatch) -> Counter:
    """Count every call the repository makes into the store adapter"""
    calls = Counter()

    def counting(name, original):
        async def wrapper(*args, **kwargs):
            calls[name] += 1
            return await original(*args, **kwargs)
        return wrapper

    for name in STORE_FUNCTIONS:
        monkeypatch.setattr(task_crud, name, counting(name, getattr(task_crud, name)))
    return calls


@pytest.fixture
async def assignee(db_session):
    return await crud.user.create_user(db_session, "Ada", "Lovelace", "ada@example.com")


@pytest.fixture
async def client(db_session, cache) -> AsyncGenerator[AsyncClient, None]:
    """Test client wired to the test session and the fake-Redis cache"""
    from app.main import app

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.state.cache = cache

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
